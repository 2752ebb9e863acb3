"""
PCM container helpers: WAV encoding of captured audio, decoding of replies.

Runtime-safe, adapter-agnostic utilities.
No resampling. No device access.
"""
from __future__ import annotations

import io

import numpy as np
import soundfile as sf

from spec import CAPTURE_CHANNELS, CAPTURE_SAMPLE_RATE_HZ


def encode_wav(
    pcm_bytes: bytes,
    *,
    sample_rate: int = CAPTURE_SAMPLE_RATE_HZ,
    channels: int = CAPTURE_CHANNELS,
) -> bytes:
    """
    Wrap raw interleaved PCM16 in a WAV container.

    Empty input yields empty output (no header-only files).
    """
    if not pcm_bytes:
        return b""

    samples = np.frombuffer(pcm_bytes[: len(pcm_bytes) - len(pcm_bytes) % 2], dtype="<i2")
    if channels > 1:
        samples = samples[: len(samples) - len(samples) % channels].reshape(-1, channels)

    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


def decode_audio(data: bytes) -> tuple[np.ndarray, int]:
    """
    Decode an encoded audio payload (WAV/FLAC/OGG/MP3 as supported by
    libsndfile) into float32 samples and the sample rate.

    Raises:
        ValueError if the payload is empty or not decodable.
    """
    if not data:
        raise ValueError("audio payload is empty")

    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32")
    except (sf.LibsndfileError, RuntimeError) as exc:
        raise ValueError(f"undecodable audio payload: {exc}") from exc

    return samples, int(sample_rate)
