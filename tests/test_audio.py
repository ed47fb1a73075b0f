"""Tests for audio encoding and the speech adapters."""

import asyncio
import io
import wave
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest
from openai import OpenAIError
from structlog.testing import capture_logs

from lingua_missions.audio.encoder import (
    float_to_pcm16_bytes,
    float_to_wav_bytes,
    pcm16_bytes_to_float,
)
from lingua_missions.audio.speech import OpenAISpeechRecognizer, OpenAISpeechSynthesizer
from lingua_missions.errors import RecognitionFailure


class TestEncoder:
    def test_pcm16_roundtrip(self):
        original = np.random.uniform(-0.5, 0.5, size=2400).astype(np.float32)
        decoded = pcm16_bytes_to_float(float_to_pcm16_bytes(original))
        assert len(decoded) == len(original)
        np.testing.assert_allclose(decoded, original, atol=1e-4)

    def test_clipping(self):
        decoded = pcm16_bytes_to_float(float_to_pcm16_bytes(np.array([2.0, -2.0, 0.0])))
        assert decoded[0] > 0.99
        assert decoded[1] < -0.99
        assert abs(decoded[2]) < 1e-5

    def test_odd_byte_count(self):
        assert len(pcm16_bytes_to_float(b"\x00\x01\x02")) == 1

    def test_wav_header(self):
        audio = np.zeros(24000, dtype=np.float32)
        with wave.open(io.BytesIO(float_to_wav_bytes(audio, 24000))) as wf:
            assert wf.getframerate() == 24000
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getnframes() == 24000


class FakePlayback:
    def __init__(self):
        self.play = AsyncMock()
        self.clear = MagicMock()


class FakeCapture:
    sample_rate = 24000

    def __init__(self, audio: np.ndarray | None = None, error: Exception | None = None):
        self.audio = np.zeros(4800, dtype=np.float32) if audio is None else audio
        self.error = error
        self.gate: asyncio.Event | None = None
        self.stop = MagicMock()

    async def record(self, seconds):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.audio


class TestSpeechSynthesizer:
    def _synthesizer(self, playback, **create_kwargs) -> OpenAISpeechSynthesizer:
        synthesizer = OpenAISpeechSynthesizer(playback, api_key="test-key")
        synthesizer.client = MagicMock()
        synthesizer.client.audio.speech.create = AsyncMock(**create_kwargs)
        return synthesizer

    async def test_speaks_through_playback(self):
        playback = FakePlayback()
        response = MagicMock(content=b"\x00\x00\xff\x7f")
        synthesizer = self._synthesizer(playback, return_value=response)
        synthesizer.speak("Hello, cadet!", "en-US")
        await synthesizer._task

        kwargs = synthesizer.client.audio.speech.create.call_args.kwargs
        assert kwargs["input"] == "Hello, cadet!"
        assert kwargs["response_format"] == "pcm"
        assert "en-US" in kwargs["instructions"]
        audio = playback.play.call_args.args[0]
        assert audio[1] == pytest.approx(1.0)

    async def test_new_utterance_cancels_previous(self):
        playback = FakePlayback()
        gate = asyncio.Event()

        async def slow_create(**kwargs):
            await gate.wait()
            return MagicMock(content=b"\x00\x00")

        synthesizer = self._synthesizer(playback, side_effect=slow_create)
        synthesizer.speak("first", "en-US")
        first = synthesizer._task
        await asyncio.sleep(0)
        synthesizer.speak("second", "en-US")
        with pytest.raises(asyncio.CancelledError):
            await first
        assert synthesizer.is_speaking
        gate.set()
        await synthesizer._task
        assert playback.play.await_count == 1

    async def test_stop_clears_playback(self):
        playback = FakePlayback()
        synthesizer = self._synthesizer(playback, return_value=MagicMock(content=b""))
        synthesizer.stop()
        playback.clear.assert_called_once()
        assert not synthesizer.is_speaking

    async def test_failure_is_logged_not_raised(self):
        playback = FakePlayback()
        synthesizer = self._synthesizer(playback, side_effect=OpenAIError("unavailable"))
        synthesizer.speak("Hello", "en-US")
        await synthesizer._task
        playback.play.assert_not_awaited()

    async def test_playback_failure_is_logged_not_raised(self):
        playback = FakePlayback()
        playback.play.side_effect = RuntimeError("output device gone")
        synthesizer = self._synthesizer(playback, return_value=MagicMock(content=b"\x00\x00"))
        with capture_logs() as logs:
            synthesizer.speak("Hello", "en-US")
            await synthesizer._task
        assert synthesizer._task.exception() is None
        assert "speech_playback_failed" in [log["event"] for log in logs]


class TestSpeechRecognizer:
    def _recognizer(self, capture, **create_kwargs) -> OpenAISpeechRecognizer:
        recognizer = OpenAISpeechRecognizer(capture, api_key="test-key", window_seconds=2.0)
        recognizer.client = MagicMock()
        recognizer.client.audio.transcriptions.create = AsyncMock(**create_kwargs)
        return recognizer

    async def test_transcribes_recorded_window(self):
        recognizer = self._recognizer(
            FakeCapture(), return_value=MagicMock(text="  I like playing football. ")
        )
        assert await recognizer.listen() == "I like playing football."

        kwargs = recognizer.client.audio.transcriptions.create.call_args.kwargs
        name, wav, mime = kwargs["file"]
        assert mime == "audio/wav"
        assert wav.startswith(b"RIFF")
        assert kwargs["language"] == "en"

    async def test_silence_skips_transcription(self):
        recognizer = self._recognizer(FakeCapture(audio=np.zeros(0, dtype=np.float32)))
        assert await recognizer.listen() == ""
        recognizer.client.audio.transcriptions.create.assert_not_awaited()

    async def test_one_in_flight(self):
        capture = FakeCapture()
        capture.gate = asyncio.Event()
        recognizer = self._recognizer(capture, return_value=MagicMock(text="hi"))
        first = asyncio.create_task(recognizer.listen())
        await asyncio.sleep(0)
        with pytest.raises(RecognitionFailure):
            await recognizer.listen()
        capture.gate.set()
        assert await first == "hi"

    async def test_transcription_error(self):
        recognizer = self._recognizer(FakeCapture(), side_effect=OpenAIError("bad audio"))
        with pytest.raises(RecognitionFailure):
            await recognizer.listen()
        # A failed attempt frees the recognizer
        recognizer.client.audio.transcriptions.create = AsyncMock(
            return_value=MagicMock(text="ok")
        )
        assert await recognizer.listen() == "ok"

    async def test_microphone_error(self):
        recognizer = self._recognizer(FakeCapture(error=RecognitionFailure("no device")))
        with pytest.raises(RecognitionFailure):
            await recognizer.listen()

    def test_stop_stops_capture(self):
        capture = FakeCapture()
        recognizer = self._recognizer(capture)
        recognizer.stop()
        capture.stop.assert_called_once()
