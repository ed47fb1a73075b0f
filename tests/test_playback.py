"""Tests for the playback writer thread with a mocked output stream."""

from unittest.mock import MagicMock

import numpy as np
import pytest
from structlog.testing import capture_logs

try:
    from lingua_missions.audio import playback as playback_module
except OSError:
    pytest.skip("PortAudio library not available", allow_module_level=True)


@pytest.fixture
def stream(monkeypatch):
    stream = MagicMock()
    monkeypatch.setattr(playback_module.sd, "OutputStream", MagicMock(return_value=stream))
    return stream


def test_writer_loop_logs_unexpected_error(stream):
    stream.write.side_effect = RuntimeError("device unplugged")
    player = playback_module.AudioPlayback(chunk_size=4)
    player._running = True
    player._queue.put(np.zeros(4, dtype=np.float32))

    with capture_logs() as logs:
        player._writer_loop()

    assert "audio_writer_loop_error" in [log["event"] for log in logs]
    assert not player.is_playing
    assert not player._running
    stream.close.assert_called_once()


def test_writer_loop_writes_mono_chunks(stream):
    player = playback_module.AudioPlayback(chunk_size=4)
    player._running = True
    player._queue.put(np.ones(4, dtype=np.float32))
    player._queue.put(playback_module._STOP)

    player._writer_loop()

    written = stream.write.call_args.args[0]
    assert written.shape == (4, 1)
    stream.close.assert_called_once()
