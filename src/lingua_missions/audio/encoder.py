"""PCM16 and WAV conversions for the speech endpoints."""

import io
import wave

import numpy as np


def pcm16_bytes_to_float(data: bytes) -> np.ndarray:
    """Convert raw little-endian PCM16 to float32 audio in [-1.0, 1.0]."""
    usable = len(data) - len(data) % 2
    pcm16 = np.frombuffer(data[:usable], dtype=np.int16)
    return pcm16.astype(np.float32) / 32767.0


def float_to_pcm16_bytes(audio: np.ndarray) -> bytes:
    """Convert float32 audio to raw PCM16, clipping out-of-range samples."""
    clipped = np.clip(audio, -1.0, 1.0)
    return (clipped * 32767).astype(np.int16).tobytes()


def float_to_wav_bytes(audio: np.ndarray, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap float32 audio in an in-memory 16-bit WAV file.

    Args:
        audio: Float32 samples (interleaved when ``channels`` > 1).
        sample_rate: Sample rate in Hz.
        channels: Channel count.

    Returns:
        Complete WAV file contents.
    """
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(float_to_pcm16_bytes(audio))
    return buf.getvalue()
