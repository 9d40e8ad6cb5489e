"""Recorder panel: the message boundary between a session UI and its controller."""

import asyncio
import logging
from typing import Any, Callable, Optional

from ..config import DevVoiceConfig
from ..exceptions import DevVoiceError, SessionStateError
from ..models.messages import (
    DeviceListMessage,
    EditorInfo,
    ErrorMessage,
    ListDevicesCommand,
    RecordingSavedMessage,
    SaveCommand,
    StartCommand,
    StatusMessage,
    StopCommand,
    parse_inbound,
)
from ..models.session import SessionState
from ..recorder.devices import DeviceProbe, render_device_html
from ..recorder.process import RecorderProcess
from ..storage.metadata_store import MetadataStore
from .publisher import PanelPublisher, publish_recording_saved
from .recording_service import RecordingService

logger = logging.getLogger(__name__)


class RecorderPanel:
    """One open recorder UI with its own recording session.

    Inbound payloads are validated and dispatched; every failure is reported
    back to the UI as an ``error`` message instead of being raised.
    """

    def __init__(self,
                 panel_id: str,
                 config: DevVoiceConfig,
                 loop: asyncio.AbstractEventLoop,
                 store_for: Callable[[str], MetadataStore],
                 device_probe: DeviceProbe,
                 editor_info: Optional[EditorInfo] = None,
                 recorder_factory: Callable[..., RecorderProcess] = RecorderProcess):
        """Initialize recorder panel.

        Args:
            panel_id: Identifier carried on every outbound message
            config: Application configuration
            loop: Event loop used by the session for file polling
            store_for: Resolves the metadata store for a source file
            device_probe: Lists input devices on request
            editor_info: Selection the panel was opened for, if any
            recorder_factory: Builds recorder handles, replaced in tests
        """
        self.panel_id = panel_id
        self.editor_info = editor_info
        self.store_for = store_for
        self.device_probe = device_probe
        self.publisher = PanelPublisher(panel_id)
        self.session = RecordingService(config, loop, self.post, recorder_factory)
        self.disposed = False
        logger.info(f"Recorder panel {panel_id} opened for {editor_info.describe() if editor_info else 'no file'}")

    def post(self, message) -> None:
        """Send an outbound message model to the UI; dropped once disposed."""
        if self.disposed:
            logger.warning(f"Panel {self.panel_id} disposed, dropping {message.command}")
            return
        self.publisher.publish(message.to_payload())

    async def handle_message(self, payload: Any) -> None:
        """Validate and dispatch one inbound payload from the UI."""
        if self.disposed:
            logger.warning(f"Panel {self.panel_id} disposed, ignoring message")
            return

        try:
            command = parse_inbound(payload)
            logger.debug(f"Panel {self.panel_id} received {command.command}")

            if isinstance(command, StartCommand):
                self._start()
            elif isinstance(command, StopCommand):
                self._stop()
            elif isinstance(command, ListDevicesCommand):
                await self._list_devices()
            elif isinstance(command, SaveCommand):
                self._save(command.editor_info)
        except DevVoiceError as e:
            logger.error(f"Panel {self.panel_id}: {e.detail}")
            self.post(ErrorMessage(error=e.detail))

    def _start(self) -> None:
        self.session.start()
        self.post(StatusMessage(message="Recording in progress... Speak clearly!"))

    def _stop(self) -> None:
        if self.session.state != SessionState.RECORDING:
            self.post(StatusMessage(message="No recording in progress"))
            return
        self.post(StatusMessage(message="Stopping recording..."))
        self.session.stop()

    async def _list_devices(self) -> None:
        self.post(StatusMessage(message="Scanning for audio devices..."))
        devices = await self.device_probe.list_devices()
        logger.info(f"Found {len(devices)} audio devices")
        self.post(DeviceListMessage(devices=devices, html=render_device_html(devices)))
        self.post(StatusMessage(message="Devices found. Try recording now!"))

    def _save(self, editor_info: EditorInfo) -> None:
        if self.session.state != SessionState.READY or self.session.audio_data is None:
            raise SessionStateError("No recording ready to save", self.session.state.value)

        store = self.store_for(editor_info.filepath)
        record = store.append(
            editor_info.filepath,
            self.session.audio_data,
            editor_info.start_line,
            editor_info.end_line,
            language=editor_info.language,
            temp_path=self.session.temp_path,
        )
        self.session.mark_saved()

        logger.info(f"Recording saved (Lines {record.start_line}-{record.end_line})")
        self.post(RecordingSavedMessage(recording_id=record.id))
        publish_recording_saved(str(store.workspace_root), record)

    def dispose(self) -> None:
        """Close the panel; a running recorder is killed and polling stops."""
        if self.disposed:
            return
        if self.session.state.is_active:
            logger.info(f"Panel {self.panel_id} closed during recording, stopping...")
        self.session.cancel()
        self.disposed = True
