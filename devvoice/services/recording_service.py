"""Recording session controller for one external recorder process."""

import asyncio
import base64
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..config import DevVoiceConfig
from ..exceptions import (
    AudioReadError,
    DevVoiceError,
    FileNotCreatedError,
    NoAudioCapturedError,
    SessionBusyError,
    SessionStateError,
    SpawnError,
)
from ..models.messages import AudioReadyMessage, ErrorMessage
from ..models.session import SessionState
from ..recorder.process import RecorderProcess

logger = logging.getLogger(__name__)


class RecordingService:
    """Drives one recording attempt: Idle -> Recording -> Stopping -> Ready | Failed.

    The recorder gives no completion signal, so after ``stop()`` the output
    file is polled until it reaches a minimum size. Polling is a chain of
    ``loop.call_later`` callbacks and never blocks the event loop.
    """

    def __init__(self,
                 config: DevVoiceConfig,
                 loop: asyncio.AbstractEventLoop,
                 callback: Callable[[object], None],
                 recorder_factory: Callable[..., RecorderProcess] = RecorderProcess):
        """Initialize recording service.

        Args:
            config: Application configuration
            loop: Event loop used to schedule file polling
            callback: Receives AudioReadyMessage or ErrorMessage when polling ends
            recorder_factory: Builds the recorder handle, replaced in tests
        """
        self.config = config
        self.loop = loop
        self.callback = callback
        self.recorder_factory = recorder_factory

        self.grace_seconds = float(config.get('polling.grace_seconds', 1.5))
        self.interval_seconds = float(config.get('polling.interval_seconds', 0.25))
        self.max_attempts = int(config.get('polling.max_attempts', 80))
        self.min_bytes = int(config.get('polling.min_bytes', 200))

        # Session state
        self.state = SessionState.IDLE
        self.temp_path: Optional[str] = None
        self.recorder: Optional[RecorderProcess] = None
        self.audio_data: Optional[bytes] = None
        self.error: Optional[DevVoiceError] = None
        self.attempts = 0
        self._poll_handle: Optional[asyncio.TimerHandle] = None

    @property
    def audio_base64(self) -> Optional[str]:
        if self.audio_data is None:
            return None
        return base64.b64encode(self.audio_data).decode('ascii')

    def start(self) -> str:
        """Spawn the recorder writing to a fresh scratch file.

        A finished take that was never saved is discarded first.

        Returns:
            Path of the scratch file the recorder writes to

        Raises:
            SessionBusyError: A recording is already running or stopping
            SpawnError: The recorder could not be started; state stays Idle
        """
        if self.state.is_active:
            raise SessionBusyError(self.state.value)
        if self.state != SessionState.IDLE:
            logger.info(f"Discarding previous {self.state.value} session")
            self._reset(delete_temp=True)

        scratch_dir = Path(self.config.get_scratch_directory())
        try:
            scratch_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SpawnError(f"Could not create scratch directory {scratch_dir}: {e}") from e

        temp_path = scratch_dir / f"recording-{int(datetime.now().timestamp() * 1000)}.wav"
        recorder = self.recorder_factory(
            self.config.get('recorder.command'),
            str(temp_path),
            int(self.config.get('recorder.max_duration_seconds', 300)),
            self.config.get('recorder.device'),
        )
        recorder.start()

        self.recorder = recorder
        self.temp_path = str(temp_path)
        self.state = SessionState.RECORDING
        logger.info(f"Started recording to {temp_path}")
        return self.temp_path

    def stop(self) -> None:
        """Signal the recorder to finish and begin polling for its output.

        Raises:
            SessionStateError: No recording in progress
        """
        if self.state != SessionState.RECORDING:
            raise SessionStateError("No recording in progress", self.state.value)

        self.recorder.terminate()
        self.state = SessionState.STOPPING
        self.attempts = 0
        self._poll_handle = self.loop.call_later(self.grace_seconds, self._check_file)
        logger.info(f"Stopping recording, first file check in {self.grace_seconds}s")

    def _check_file(self) -> None:
        self._poll_handle = None
        if self.state != SessionState.STOPPING:
            return

        self.attempts += 1
        if self.attempts % 4 == 0:
            logger.debug(f"File check {self.attempts}/{self.max_attempts}")

        path = Path(self.temp_path)
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            size = None
        except OSError as e:
            self._fail(AudioReadError(str(path), str(e)))
            return

        if size is None:
            if self.attempts >= self.max_attempts:
                self._fail(FileNotCreatedError(str(path)))
            else:
                self._schedule_check()
            return

        if size < self.min_bytes:
            if self.attempts >= self.max_attempts:
                self._fail(NoAudioCapturedError(str(path), size))
            else:
                self._schedule_check()
            return

        try:
            data = path.read_bytes()
        except OSError as e:
            self._fail(AudioReadError(str(path), str(e)))
            return

        self.audio_data = data
        self.state = SessionState.READY
        logger.info(f"Recording ready: {len(data)} bytes after {self.attempts} checks")
        self.callback(AudioReadyMessage(audio_data=self.audio_base64))

    def _schedule_check(self) -> None:
        self._poll_handle = self.loop.call_later(self.interval_seconds, self._check_file)

    def _fail(self, error: DevVoiceError) -> None:
        logger.error(f"Recording failed: {error.detail}")
        if self.recorder is not None:
            output = self.recorder.diagnostics()
            if output:
                logger.error(f"Recorder output (exit code {self.recorder.returncode}):\n{output}")
        self.error = error
        self.state = SessionState.FAILED
        self.callback(ErrorMessage(error=error.detail))

    def cancel(self) -> None:
        """Kill the recorder if running and drop the session without error."""
        if self.state != SessionState.IDLE:
            logger.info(f"Cancelling {self.state.value} session")
        if self.recorder is not None:
            self.recorder.kill()
        self._reset(delete_temp=True)

    def mark_saved(self) -> None:
        """Clear the session once its audio has been stored.

        Raises:
            SessionStateError: No ready recording
        """
        if self.state != SessionState.READY:
            raise SessionStateError("No recording ready to save", self.state.value)
        self._reset(delete_temp=False)

    def _reset(self, delete_temp: bool) -> None:
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None
        if delete_temp and self.temp_path:
            try:
                Path(self.temp_path).unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not delete temp file {self.temp_path}: {e}")
        if self.recorder is not None:
            self.recorder.remove_log()

        self.state = SessionState.IDLE
        self.temp_path = None
        self.recorder = None
        self.audio_data = None
        self.error = None
        self.attempts = 0
