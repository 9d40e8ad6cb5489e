"""Projection of stored recordings onto the focused editor.

Ranges are rebuilt from scratch whenever focus moves to another file or a
recording is saved or cleared; metadata sizes are small enough that there is
no incremental path.
"""

import json
import logging
from typing import Callable, Dict, List, Optional
from urllib.parse import quote, unquote

from pubsub import pub

from ..exceptions import CorruptMetadataError, DevVoiceError, PlaybackError
from ..models.messages import EditorInfo
from ..models.recording import LineRange, RecordingRecord
from ..storage.metadata_store import MetadataStore
from .publisher import RECORDING_SAVED_TOPIC, RECORDINGS_CLEARED_TOPIC

logger = logging.getLogger(__name__)

PLAY_COMMAND = "devvoice.playAudio"

Metadata = Dict[str, List[RecordingRecord]]


def compute_ranges(metadata: Metadata, source_file: str) -> List[LineRange]:
    """Zero-based ranges for every record of a file, in stored order, unmerged."""
    return [
        LineRange(record.start_line - 1, record.end_line - 1)
        for record in metadata.get(source_file, [])
    ]


def find_record_at(metadata: Metadata, source_file: str, line_number: int) -> Optional[RecordingRecord]:
    """First stored record covering a zero-based editor line."""
    line = line_number + 1
    for record in metadata.get(source_file, []):
        if record.contains(line):
            return record
    return None


def encode_play_arguments(audio_file: str, source_file: str) -> str:
    # Same escaping as JavaScript's encodeURIComponent
    return quote(json.dumps([audio_file, source_file]), safe="-_.!~*'()")


def decode_play_arguments(payload: str) -> tuple:
    """Inverse of encode_play_arguments.

    Raises:
        PlaybackError: payload is not a JSON array of two non-empty strings
    """
    try:
        values = json.loads(unquote(payload))
    except json.JSONDecodeError as e:
        raise PlaybackError(f"Malformed play link: {e}") from e
    if (not isinstance(values, list) or len(values) != 2
            or not all(isinstance(value, str) and value for value in values)):
        raise PlaybackError(f"Audio file or source file is missing: {values!r}")
    return values[0], values[1]


def render_hover(record: RecordingRecord, source_file: str) -> str:
    """Markdown shown when hovering a decorated line."""
    duration = record.duration if record.duration else "?"
    link = f"command:{PLAY_COMMAND}?{encode_play_arguments(record.audio_file, source_file)}"
    return (
        "🎙️ **Audio Recording**\n\n"
        f"Lines: {record.start_line}-{record.end_line}\n\n"
        f"Duration: {duration}s\n\n"
        f"[▶️ Play Audio]({link})"
    )


class EditorDecorations:
    """Tracks the focused file and the line ranges that carry recordings."""

    def __init__(self, store_for: Callable[[str], MetadataStore]):
        """Initialize editor decorations.

        Args:
            store_for: Resolves the metadata store of the workspace owning a file
        """
        self.store_for = store_for
        self.active_file: Optional[str] = None
        self.ranges: List[LineRange] = []
        self.selection: Optional[LineRange] = None
        self.last_error: Optional[DevVoiceError] = None

        pub.subscribe(self._on_recording_saved, RECORDING_SAVED_TOPIC)
        pub.subscribe(self._on_recordings_cleared, RECORDINGS_CLEARED_TOPIC)

    def focus(self, source_file: Optional[str]) -> List[LineRange]:
        """Switch the focused file and rebuild its ranges; drops the selection highlight."""
        self.active_file = source_file
        self.selection = None
        return self.refresh()

    def highlight(self, editor_info: EditorInfo) -> LineRange:
        """Focus the file a recorder was opened for and mark its selected lines."""
        self.focus(editor_info.filepath)
        self.selection = LineRange(editor_info.start_line - 1, editor_info.end_line - 1)
        return self.selection

    def refresh(self) -> List[LineRange]:
        if self.active_file is None:
            self.ranges = []
            return []

        try:
            store = self.store_for(self.active_file)
        except DevVoiceError as e:
            logger.warning(f"No workspace for {self.active_file}: {e.detail}")
            self.ranges = []
            return []

        self.last_error = None
        try:
            metadata = store.load()
        except CorruptMetadataError as e:
            logger.error(f"Keeping previous metadata: {e.detail}")
            self.last_error = e
            metadata = store.metadata

        self.ranges = compute_ranges(metadata, self.active_file)
        logger.debug(f"Applied decorations to {len(self.ranges)} ranges in {self.active_file}")
        return list(self.ranges)

    def hover(self, source_file: str, line_number: int) -> Optional[str]:
        """Hover markdown for a zero-based line, from the loaded metadata."""
        try:
            store = self.store_for(source_file)
        except DevVoiceError:
            return None
        record = find_record_at(store.metadata, source_file, line_number)
        if record is None:
            return None
        return render_hover(record, source_file)

    def _on_recording_saved(self, workspace_root: str, record: RecordingRecord) -> None:
        if record.source_file == self.active_file:
            self.refresh()

    def _on_recordings_cleared(self, workspace_root: str) -> None:
        if self.active_file is not None:
            self.refresh()
