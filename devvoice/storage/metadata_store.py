"""Per-workspace storage for recording metadata and audio files."""

import os
import json
import logging
import random
import string
from dataclasses import replace
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..exceptions import CorruptMetadataError, SaveError
from ..models.recording import ClearResult, RecordingRecord


logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.json"
RECORDINGS_DIRNAME = "recordings"

# Rough size-to-seconds factor for 44.1kHz 16-bit stereo
BYTES_PER_SECOND_DIVISORS = (44100, 4)


def new_recording_id() -> str:
    """Create a unique recording ID from the epoch milliseconds and a random suffix."""
    millis = int(datetime.now().timestamp() * 1000)
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"rec-{millis}-{random_suffix}"


def estimate_duration(size_bytes: int) -> int:
    rate, width = BYTES_PER_SECOND_DIVISORS
    return round(size_bytes / rate / width)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MetadataStore:
    """Keeps metadata.json and the recordings directory of one workspace.

    The whole document is loaded into memory on read and rewritten on every
    append. Nothing is created on disk until the first append.
    """

    def __init__(self, workspace_root: str, directory_name: str = ".devvoice"):
        """Initialize the store for a workspace.

        Args:
            workspace_root: Directory that holds the .devvoice folder
            directory_name: Name of the persistence folder
        """
        self.workspace_root = Path(workspace_root)
        self.devvoice_dir = self.workspace_root / directory_name
        self.recordings_dir = self.devvoice_dir / RECORDINGS_DIRNAME
        self.metadata_file = self.devvoice_dir / METADATA_FILENAME
        self._metadata: Dict[str, List[RecordingRecord]] = {}

        logger.debug(f"MetadataStore initialized for workspace: {self.workspace_root}")

    @property
    def metadata(self) -> Dict[str, List[RecordingRecord]]:
        """Last successfully loaded or written mapping."""
        return {path: list(records) for path, records in self._metadata.items()}

    def records_for(self, source_file: str) -> List[RecordingRecord]:
        return list(self._metadata.get(source_file, []))

    def audio_path(self, audio_file: str) -> Path:
        """Resolve a record's audioFile against the .devvoice directory."""
        return self.devvoice_dir / audio_file

    def load(self) -> Dict[str, List[RecordingRecord]]:
        """Load metadata.json into memory.

        Returns:
            Mapping of source file path to records in save order; empty if
            the document does not exist yet

        Raises:
            CorruptMetadataError: The document exists but cannot be parsed.
                The in-memory copy is left as it was.
        """
        if not self.metadata_file.exists():
            logger.debug(f"No metadata found at {self.metadata_file}")
            self._metadata = {}
            return {}

        try:
            with open(self.metadata_file, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Error reading metadata {self.metadata_file}: {e}")
            raise CorruptMetadataError(str(self.metadata_file), str(e)) from e

        self._metadata = self._parse(raw)
        logger.debug(f"Loaded metadata for {len(self._metadata)} files")
        return self.metadata

    def _parse(self, raw: Any) -> Dict[str, List[RecordingRecord]]:
        if not isinstance(raw, dict):
            raise CorruptMetadataError(str(self.metadata_file), "top level is not an object")

        parsed: Dict[str, List[RecordingRecord]] = {}
        for source_file, entries in raw.items():
            if not isinstance(entries, list):
                raise CorruptMetadataError(str(self.metadata_file), f"entry for {source_file} is not a list")
            try:
                parsed[source_file] = [RecordingRecord.from_dict(entry) for entry in entries]
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise CorruptMetadataError(str(self.metadata_file), f"bad record for {source_file}: {e}") from e
        return parsed

    def append(self,
               source_file: str,
               audio_data: bytes,
               start_line: int,
               end_line: int,
               language: str = "plaintext",
               temp_path: Optional[str] = None) -> RecordingRecord:
        """Store a recording and link it to a line range of a source file.

        The audio is written to recordings/<id>.wav before the document is
        rewritten. If the rewrite fails the copied audio is removed again.

        Args:
            source_file: Absolute path of the annotated file (the map key)
            audio_data: Bytes of the ready recording
            start_line: First annotated line, 1-based
            end_line: Last annotated line, 1-based, inclusive
            language: Language identifier of the source file
            temp_path: Scratch file to delete once the record is committed

        Returns:
            The new record

        Raises:
            CorruptMetadataError: The existing document cannot be read; it is
                not overwritten
            SaveError: Creating directories, writing audio or writing the
                document failed
        """
        recording_id = new_recording_id()
        record = RecordingRecord(
            id=recording_id,
            audio_file=f"{RECORDINGS_DIRNAME}/{recording_id}.wav",
            source_file=source_file,
            language=language,
            start_line=start_line,
            end_line=end_line,
            timestamp=_now_iso(),
        )

        current = self.load()

        try:
            self.recordings_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SaveError(f"could not create {self.recordings_dir}: {e}") from e

        audio_destination = self.audio_path(record.audio_file)
        try:
            with open(audio_destination, 'wb') as f:
                f.write(audio_data)
        except OSError as e:
            logger.error(f"Error saving audio file: {e}")
            raise SaveError(f"could not write {audio_destination}: {e}") from e
        logger.info(f"Audio saved: {audio_destination} ({len(audio_data)} bytes)")

        record = replace(record, duration=estimate_duration(len(audio_data)))
        current.setdefault(source_file, []).append(record)

        try:
            self._write(current)
        except OSError as e:
            logger.error(f"Error writing metadata: {e}")
            self._remove_quietly(audio_destination)
            raise SaveError(f"could not write {self.metadata_file}: {e}") from e

        self._metadata = current
        logger.info(f"Linked {record.id} to {source_file}:{start_line}-{end_line}")

        if temp_path:
            self._remove_quietly(Path(temp_path))
        return record

    def _write(self, metadata: Dict[str, List[RecordingRecord]]) -> None:
        payload = {
            path: [record.to_dict() for record in records]
            for path, records in metadata.items()
        }
        staging = self.metadata_file.with_name(METADATA_FILENAME + ".tmp")
        with open(staging, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        os.replace(staging, self.metadata_file)

    def _remove_quietly(self, path: Path) -> None:
        try:
            path.unlink()
            logger.debug(f"Removed {path}")
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")

    def clear_all(self) -> ClearResult:
        """Delete every recording and the metadata document.

        Each deletion is attempted independently; failures are logged and
        returned rather than raised, so calling this twice is harmless.

        Returns:
            ClearResult listing deleted paths and the ones that failed
        """
        result = ClearResult()

        if self.recordings_dir.exists():
            try:
                entries = sorted(self.recordings_dir.iterdir())
            except OSError as e:
                logger.warning(f"Could not list {self.recordings_dir}: {e}")
                result.failed[str(self.recordings_dir)] = str(e)
                entries = []
            for path in entries:
                self._delete(path, result)
            try:
                self.recordings_dir.rmdir()
                result.deleted.append(str(self.recordings_dir))
                logger.info(f"Removed recordings directory: {self.recordings_dir}")
            except OSError as e:
                logger.warning(f"Could not remove {self.recordings_dir}: {e}")
                result.failed[str(self.recordings_dir)] = str(e)

        if self.metadata_file.exists():
            self._delete(self.metadata_file, result)

        self._metadata = {}
        logger.info(f"Cleared recordings: {len(result.deleted)} deleted, {len(result.failed)} failed")
        return result

    def _delete(self, path: Path, result: ClearResult) -> None:
        try:
            path.unlink()
            result.deleted.append(str(path))
            logger.debug(f"Deleted: {path}")
        except OSError as e:
            logger.warning(f"Could not delete {path}: {e}")
            result.failed[str(path)] = str(e)
