"""
UI collaborator contract.

The controllers call into the UI through this interface only. All hooks
are no-ops by default; a UI overrides what it renders.
"""

from __future__ import annotations


class VoiceUICollaborator:
    """Callbacks from a voice controller to the surrounding UI."""

    def on_bear_action(self, action: str) -> None:
        """The bear should perform `action` (feed, play or bathroom)."""

    def on_listening_changed(self, listening: bool) -> None:
        """Microphone capture started or stopped."""

    def on_speaking_changed(self, speaking: bool) -> None:
        """Reply audio started or stopped."""

    def on_alert(self, message: str) -> None:
        """Show a user-facing failure message."""
