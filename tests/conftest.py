"""Pytest configuration and fixtures for livescribe tests."""

import asyncio
import logging
import tempfile
from unittest.mock import Mock, patch

import numpy as np
import pytest

from livescribe.errors import EngineStateError
from livescribe.models.audio import AudioSegment
from livescribe.transcription.base import AbstractTranscriptionProvider
from livescribe.transcription.streaming import RecognitionEngine, RecognitionSegment


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: tests wiring several components together")


class FakeTimerHandle:
    """Stand-in for asyncio.TimerHandle."""

    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeTask:
    """Stand-in for asyncio.Task; the coroutine only runs when asked to."""

    def __init__(self, coro):
        self.coro = coro
        self._done = False
        self._callbacks = []
        self.was_cancelled = False

    def add_done_callback(self, callback):
        self._callbacks.append(callback)

    def done(self):
        return self._done

    def cancel(self):
        if self._done:
            return
        self.was_cancelled = True
        self.coro.close()
        self._finish()

    def run(self):
        if self._done:
            return
        try:
            asyncio.run(self.coro)
        finally:
            self._finish()

    def _finish(self):
        self._done = True
        for callback in self._callbacks:
            callback(self)


class FakeLoop:
    """Deterministic event loop: time only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self.timers = []
        self.tasks = []

    def time(self):
        return self.now

    def call_later(self, delay, callback, *args):
        handle = FakeTimerHandle(self.now + delay, callback, args)
        self.timers.append(handle)
        return handle

    def call_soon_threadsafe(self, callback, *args):
        callback(*args)

    call_soon = call_soon_threadsafe

    def create_task(self, coro):
        task = FakeTask(coro)
        self.tasks.append(task)
        return task

    def is_closed(self):
        return False

    @property
    def pending_timers(self):
        return [h for h in self.timers if not h.cancelled]

    def advance(self, seconds):
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [h for h in self.pending_timers if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.timers.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback(*handle.args)
        self.now = target

    def run_tasks(self):
        """Run every task created so far (and any they create) to completion."""
        while True:
            pending = [t for t in self.tasks if not t.done()]
            if not pending:
                break
            for task in pending:
                task.run()


class FakeEngine(RecognitionEngine):
    """Recognition engine driven by the test."""

    def __init__(self):
        super().__init__()
        self.listening = False
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error = None

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        if self.listening:
            raise EngineStateError("already listening")
        self.start_calls += 1
        self.listening = True

    def stop(self):
        self.stop_calls += 1
        self.listening = False

    def emit_result(self, *segments):
        self.on_result([RecognitionSegment(transcript=t, is_final=f) for t, f in segments])

    def emit_error(self, kind, message=""):
        self.listening = False
        self.on_error(kind, message)

    def emit_end(self):
        self.listening = False
        self.on_end()


class FakeProvider(AbstractTranscriptionProvider):
    """Provider recording how the controller drives it."""

    name = "fake"

    def __init__(self, supported=True, start_error=None, release=None):
        self.supported = supported
        self.start_error = start_error
        self.release = release
        self.language = None
        self.start_calls = 0
        self.stop_calls = 0
        self.on_result = None
        self.on_error = None
        self.wait_closed_calls = 0

    async def start(self, language, on_result, on_error):
        self.start_calls += 1
        self.language = language
        self.on_result = on_result
        self.on_error = on_error
        if self.release is not None:
            await self.release.wait()
        if self.start_error is not None:
            raise self.start_error

    def stop(self):
        self.stop_calls += 1

    def is_supported(self):
        return self.supported

    async def wait_closed(self):
        self.wait_closed_calls += 1


class FakeCapture:
    """AudioCapture replacement; tests push audio through `callback`."""

    instances = []

    def __init__(self, callback, sample_rate=16000, chunk_size=1600, channels=1, start_error=None):
        self.callback = callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.start_error = start_error
        self.is_recording = False
        self.stop_calls = 0
        FakeCapture.instances.append(self)

    def start_recording(self):
        if self.start_error is not None:
            raise self.start_error
        self.is_recording = True

    def stop_recording(self):
        self.stop_calls += 1
        self.is_recording = False


class FakeChunker:
    """AudioChunker replacement producing canned segments."""

    def __init__(self, frames_per_segment=16000, open_error=None):
        self.frames_per_segment = frames_per_segment
        self.open_error = open_error
        self.opened = False
        self.closed = False
        self.rotations = 0

    def open(self):
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    def rotate(self):
        self.rotations += 1
        frames = self.frames_per_segment
        return AudioSegment(
            data=b"RIFF" + b"\x00" * 40 if frames else b"",
            frame_count=frames,
            sequence_number=self.rotations,
            duration_seconds=frames / 16000.0,
        )

    def close(self):
        self.closed = True


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
