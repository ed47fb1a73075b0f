"""Speaker playback using sounddevice blocking writes in a dedicated thread."""

import queue
import threading

import numpy as np
import sounddevice as sd
import structlog

logger = structlog.get_logger()

_STOP = None


class AudioPlayback:
    """Plays synthesized speech through the speaker.

    A writer thread pulls float32 buffers from a queue and writes them to an
    ``sd.OutputStream``. ``clear`` drops everything not yet written, which is how an
    utterance is interrupted.

    Args:
        sample_rate: Audio sample rate in Hz.
        channels: Number of audio channels.
        chunk_size: Samples per write.
        device: Output device index (None for default).
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
        self._queue: queue.Queue[np.ndarray | None] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._running = False
        self._is_playing = False

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._writer_loop, daemon=True)
        self._thread.start()
        logger.info("audio_playback_started", sample_rate=self.sample_rate, device=self.device)

    def stop(self) -> None:
        """Stop the writer thread and discard queued audio."""
        self._running = False
        self._queue.put(_STOP)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        self.clear()
        logger.info("audio_playback_stopped")

    def clear(self) -> None:
        """Drop queued audio that has not been written yet."""
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        self._is_playing = False

    async def play(self, audio: np.ndarray) -> None:
        """Queue float32 audio, starting the writer thread on first use."""
        if not self._running:
            self.start()
        self._is_playing = True
        # Split so clear() can cut an utterance short
        for start in range(0, len(audio), self.chunk_size):
            self._queue.put(audio[start:start + self.chunk_size])

    def _writer_loop(self) -> None:
        try:
            stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                blocksize=self.chunk_size,
                device=self.device,
            )
            stream.start()
        except sd.PortAudioError:
            logger.exception("audio_stream_open_failed")
            self._running = False
            return

        try:
            while self._running:
                try:
                    chunk = self._queue.get(timeout=0.1)
                except queue.Empty:
                    self._is_playing = False
                    continue
                if chunk is _STOP:
                    break
                data = chunk.reshape(-1, 1) if chunk.ndim == 1 else chunk
                try:
                    stream.write(data)
                except sd.PortAudioError:
                    logger.warning("audio_write_error")
        except Exception:
            logger.exception("audio_writer_loop_error")
        finally:
            self._running = False
            self._is_playing = False
            stream.stop()
            stream.close()
