"""Microphone capture using sounddevice."""

import asyncio

import numpy as np
import sounddevice as sd
import structlog

from lingua_missions.errors import RecognitionFailure

logger = structlog.get_logger()

# Poll interval while waiting for the next block, so stop() is noticed promptly
_CHUNK_WAIT_SECONDS = 0.5


class AudioCapture:
    """Records bounded windows of microphone audio.

    Blocks arrive on the PortAudio thread and are handed to the event loop through an
    asyncio queue.

    Args:
        sample_rate: Audio sample rate in Hz.
        channels: Number of audio channels.
        chunk_size: Number of samples per block.
        device: Input device index (None for default).
    """

    def __init__(
        self,
        sample_rate: int = 24000,
        channels: int = 1,
        chunk_size: int = 2400,
        device: int | None = None,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_size = chunk_size
        self.device = device
        self._queue: asyncio.Queue[np.ndarray] = asyncio.Queue(maxsize=200)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stream: sd.InputStream | None = None
        self._running = False
        self._dropped_blocks = 0

    @property
    def is_recording(self) -> bool:
        return self._running

    def _audio_callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info: object,
        status: sd.CallbackFlags,
    ) -> None:
        if status:
            logger.warning("audio_capture_status", status=str(status))
        if self._running and self._loop is not None:
            self._loop.call_soon_threadsafe(self._enqueue, indata.copy().flatten())

    def _enqueue(self, block: np.ndarray) -> None:
        try:
            self._queue.put_nowait(block)
        except asyncio.QueueFull:
            self._dropped_blocks += 1

    def start(self) -> None:
        """Open the input stream. Must be called from a running event loop."""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="float32",
            blocksize=self.chunk_size,
            device=self.device,
            callback=self._audio_callback,
        )
        self._stream.start()
        self._running = True
        logger.info("audio_capture_started", sample_rate=self.sample_rate, device=self.device)

    def stop(self) -> None:
        """Close the stream. An in-progress ``record`` returns what it has so far."""
        if not self._running and self._stream is None:
            return
        self._running = False
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        if self._dropped_blocks:
            logger.warning("audio_capture_dropped_blocks", dropped=self._dropped_blocks)
            self._dropped_blocks = 0
        logger.info("audio_capture_stopped")

    async def record(self, seconds: float) -> np.ndarray:
        """Record up to ``seconds`` of audio.

        Returns:
            Float32 samples; shorter than requested if ``stop`` was called.

        Raises:
            RecognitionFailure: The input device could not be opened.
        """
        target = int(self.sample_rate * seconds)
        while not self._queue.empty():
            self._queue.get_nowait()
        try:
            self.start()
        except sd.PortAudioError as e:
            logger.warning("microphone_unavailable", error=str(e))
            raise RecognitionFailure(f"microphone unavailable: {e}") from e

        blocks: list[np.ndarray] = []
        collected = 0
        try:
            while self._running and collected < target:
                try:
                    block = await asyncio.wait_for(self._queue.get(), _CHUNK_WAIT_SECONDS)
                except TimeoutError:
                    continue
                blocks.append(block)
                collected += len(block)
        finally:
            self.stop()

        if not blocks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(blocks)[:target]
