"""Pytest configuration and fixtures for DevVoice tests."""

import pytest
import tempfile
import logging
from pathlib import Path
from unittest.mock import Mock

from pubsub import pub

from devvoice.config import DevVoiceConfig


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without processes or timers")
    config.addinivalue_line("markers", "integration: tests spanning panel, store and decorations")


@pytest.fixture(autouse=True)
def clean_pubsub():
    """Drop listeners left behind by a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def workspace_dir(temp_data_dir):
    workspace = Path(temp_data_dir) / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def test_config(temp_data_dir, workspace_dir):
    """Configuration pointing scratch, workspace and log paths at the temp dir."""
    return DevVoiceConfig(overrides={
        "recorder": {
            "scratch_dir": str(Path(temp_data_dir) / "scratch"),
            "device": "default",
        },
        "workspace": {
            "folders": [str(workspace_dir)],
        },
        "logging": {
            "file_path": str(Path(temp_data_dir) / "logs" / "devvoice.log"),
            "console_output": False,
        },
    })


class ManualHandle:
    """Timer handle returned by ManualLoop.call_later."""

    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualLoop:
    """Stands in for an asyncio loop where only call_later is used.

    Time moves only through advance(), so poll schedules are deterministic.
    """

    def __init__(self):
        self.now = 0.0
        self.scheduled = []

    def time(self):
        return self.now

    def call_later(self, delay, callback, *args):
        handle = ManualHandle(self.now + delay, callback, args)
        self.scheduled.append(handle)
        return handle

    @property
    def pending(self):
        return [handle for handle in self.scheduled if not handle.cancelled]

    def advance(self, seconds):
        """Run every callback due within the next ``seconds``, in time order."""
        target = self.now + seconds
        while True:
            due = [handle for handle in self.pending if handle.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.scheduled.remove(handle)
            self.now = handle.when
            handle.callback(*handle.args)
        self.now = target


@pytest.fixture
def manual_loop():
    return ManualLoop()


@pytest.fixture
def mock_recorder_factory():
    """Recorder factory whose handles never spawn a process."""
    factory = Mock()

    def build(command_template, output_path, duration_seconds=300, device=None):
        recorder = Mock()
        recorder.output_path = output_path
        recorder.duration_seconds = duration_seconds
        recorder.device = device
        recorder.is_running = True
        recorder.returncode = None
        recorder.diagnostics.return_value = ""
        factory.recorders.append(recorder)
        return recorder

    factory.recorders = []
    factory.side_effect = build
    return factory


@pytest.fixture
def sample_audio():
    """Fake WAV bytes well above the size threshold."""
    return b"RIFF" + bytes(range(256)) * 20
