"""
Pipeline stage enumeration.

Rules:
- This enum identifies the remote calls made by the pipeline.
- It must NOT encode behavior or retry rules.
"""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """
    One remote call within the transcribe -> generate -> synthesize sequence.

    SIGNALING is the SDP relay used by the WebRTC path; it shares the
    retry/classification machinery but is not part of the pipeline proper.
    """

    TRANSCRIBE = "TRANSCRIBE"
    GENERATE = "GENERATE"
    SYNTHESIZE = "SYNTHESIZE"
    SIGNALING = "SIGNALING"
