"""Speech synthesis and recognition over the OpenAI audio endpoints.

The adapters take their capture and playback devices as arguments, so this module does
not load PortAudio itself.
"""

import asyncio

import structlog
from openai import AsyncOpenAI, OpenAIError

from lingua_missions.audio.encoder import float_to_wav_bytes, pcm16_bytes_to_float
from lingua_missions.errors import RecognitionFailure

logger = structlog.get_logger()

SPEECH_INSTRUCTIONS = (
    "Read the text aloud clearly and warmly for a young English learner. "
    "Language: {language_tag}."
)


class OpenAISpeechSynthesizer:
    """Fire-and-forget text to speech with at most one utterance playing.

    Args:
        playback: ``AudioPlayback`` (or anything with async ``play`` and ``clear``).
        api_key: API key for the speech endpoint.
        model: TTS model name.
        voice: Voice name.
        base_url: Endpoint base URL. Defaults to OpenAI when None.
    """

    def __init__(
        self,
        playback,
        api_key: str,
        model: str = "gpt-4o-mini-tts",
        voice: str = "alloy",
        base_url: str | None = None,
    ):
        self.playback = playback
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.voice = voice
        self._task: asyncio.Task | None = None

    @property
    def is_speaking(self) -> bool:
        return self._task is not None and not self._task.done()

    def speak(self, text: str, language_tag: str) -> None:
        """Start an utterance, cancelling the current one. Needs a running event loop."""
        self.stop()
        self._task = asyncio.create_task(self._speak(text, language_tag))

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.playback.clear()

    async def _speak(self, text: str, language_tag: str) -> None:
        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
                instructions=SPEECH_INSTRUCTIONS.format(language_tag=language_tag),
                response_format="pcm",
            )
        except OpenAIError as e:
            logger.warning("speech_synthesis_failed", error=str(e))
            return
        try:
            await self.playback.play(pcm16_bytes_to_float(response.content))
        except Exception:
            # Fire-and-forget task: failures end here
            logger.exception("speech_playback_failed", language=language_tag)
            return
        logger.debug("speech_queued", chars=len(text), language=language_tag)


class OpenAISpeechRecognizer:
    """Single-shot recognition: record a bounded window, then transcribe it.

    Args:
        capture: ``AudioCapture`` (or anything with async ``record``, ``stop`` and
            ``sample_rate``).
        api_key: API key for the transcription endpoint.
        model: Transcription model name.
        base_url: Endpoint base URL. Defaults to OpenAI when None.
        window_seconds: Longest utterance recorded per ``listen`` call.
        language: ISO-639-1 language hint for the transcriber.
    """

    def __init__(
        self,
        capture,
        api_key: str,
        model: str = "whisper-1",
        base_url: str | None = None,
        window_seconds: float = 6.0,
        language: str = "en",
    ):
        self.capture = capture
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.window_seconds = window_seconds
        self.language = language
        self._listening = False

    async def listen(self) -> str:
        """Record and transcribe one utterance.

        Raises:
            RecognitionFailure: Already listening, microphone unavailable, or the
                transcription request failed.
        """
        if self._listening:
            raise RecognitionFailure("a recognition is already in progress")
        self._listening = True
        try:
            audio = await self.capture.record(self.window_seconds)
            if audio.size == 0:
                return ""
            wav = float_to_wav_bytes(audio, self.capture.sample_rate)
            try:
                result = await self.client.audio.transcriptions.create(
                    model=self.model,
                    file=("utterance.wav", wav, "audio/wav"),
                    language=self.language,
                )
            except OpenAIError as e:
                logger.warning("transcription_failed", error=str(e))
                raise RecognitionFailure(f"transcription failed: {e}") from e
            transcript = result.text.strip()
            logger.info("utterance_recognized", chars=len(transcript))
            return transcript
        finally:
            self._listening = False

    def stop(self) -> None:
        self.capture.stop()
