"""Application orchestrator owning panels, stores, decorations and playback."""

import asyncio
import itertools
import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import DevVoiceConfig
from ..exceptions import PlaybackError, WorkspaceError
from ..models.messages import EditorInfo
from ..models.recording import ClearResult, LineRange
from ..recorder.devices import DeviceProbe
from ..recorder.player import AudioPlayer
from ..recorder.process import RecorderProcess
from ..storage.metadata_store import MetadataStore
from .decorations import EditorDecorations
from .panel import RecorderPanel
from .publisher import publish_recordings_cleared

logger = logging.getLogger(__name__)


def resolve_workspace_root(workspace_folders: List[str], source_file: Optional[str] = None) -> str:
    """First workspace folder, else the directory of the source file.

    Raises:
        WorkspaceError: Neither is available
    """
    if workspace_folders:
        return workspace_folders[0]
    if source_file:
        return os.path.dirname(os.path.abspath(source_file))
    raise WorkspaceError("Could not determine workspace root. Open a file in your workspace first.")


class DevVoiceApp:
    """Holds everything one editor window needs: at most one recorder panel,
    a metadata store per workspace root, the decorations of the focused file
    and a single playback handle.
    """

    def __init__(self,
                 config: DevVoiceConfig,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 device_probe: Optional[DeviceProbe] = None,
                 player: Optional[AudioPlayer] = None,
                 recorder_factory: Callable[..., RecorderProcess] = RecorderProcess):
        """Initialize the application.

        Args:
            config: Application configuration
            loop: Event loop shared by every panel; the running loop when None
            device_probe: Lists input devices; built from config when None
            player: Plays stored recordings; platform default when None
            recorder_factory: Builds recorder handles, replaced in tests
        """
        self.config = config
        self.loop = loop
        self.device_probe = device_probe or DeviceProbe(config.get('devices.command'))
        self.player = player or AudioPlayer()
        self.recorder_factory = recorder_factory

        self.panel: Optional[RecorderPanel] = None
        self._panel_ids = itertools.count(1)
        self._stores: Dict[str, MetadataStore] = {}
        self.decorations = EditorDecorations(self.store_for)

        logger.info("DevVoice ready")

    def workspace_root_for(self, source_file: Optional[str] = None) -> str:
        return resolve_workspace_root(self.config.get_workspace_folders(), source_file)

    def store_for(self, source_file: Optional[str] = None) -> MetadataStore:
        """Metadata store of the workspace a file belongs to, cached per root."""
        root = self.workspace_root_for(source_file)
        store = self._stores.get(root)
        if store is None:
            store = MetadataStore(root, self.config.get('storage.directory_name', '.devvoice'))
            self._stores[root] = store
        return store

    def open_recorder(self, editor_info: Optional[EditorInfo] = None) -> RecorderPanel:
        """Open a recorder panel for the current selection.

        Only one panel exists at a time, so only one recorder can run; an
        older panel is disposed along with its session.
        """
        if self.panel is not None:
            self.panel.dispose()
        if editor_info is not None:
            self.decorations.highlight(editor_info)

        self.panel = RecorderPanel(
            panel_id=f"panel{next(self._panel_ids)}",
            config=self.config,
            loop=self.loop or asyncio.get_running_loop(),
            store_for=self.store_for,
            device_probe=self.device_probe,
            editor_info=editor_info,
            recorder_factory=self.recorder_factory,
        )
        return self.panel

    def close_recorder(self) -> None:
        if self.panel is not None:
            self.panel.dispose()
            self.panel = None

    def focus_editor(self, source_file: Optional[str]) -> List[LineRange]:
        """Recompute decorations after focus moves to another file."""
        return self.decorations.focus(source_file)

    def hover(self, source_file: str, line_number: int) -> Optional[str]:
        return self.decorations.hover(source_file, line_number)

    def play_audio(self, audio_file: str, source_file: str) -> Path:
        """Play a stored recording referenced by a hover link.

        Raises:
            PlaybackError: An argument is missing, the file does not exist or
                the player cannot start
        """
        if not audio_file or not source_file:
            raise PlaybackError(
                f"Audio file or source file is missing: audioFile={audio_file}, sourceFile={source_file}"
            )
        try:
            store = self.store_for(source_file)
        except WorkspaceError as e:
            raise PlaybackError(e.detail) from e

        audio_path = store.audio_path(audio_file)
        self.player.play(str(audio_path))
        return audio_path

    def clear_all_recordings(self, source_file: Optional[str] = None) -> ClearResult:
        """Delete every recording of a workspace. Confirmation is the caller's job.

        Raises:
            WorkspaceError: No workspace root can be determined
        """
        store = self.store_for(source_file or self.decorations.active_file)
        result = store.clear_all()
        publish_recordings_cleared(str(store.workspace_root))
        return result

    def deactivate(self) -> None:
        """Kill any recorder and playback still running."""
        self.close_recorder()
        self.player.stop()
        logger.info("DevVoice deactivated")
