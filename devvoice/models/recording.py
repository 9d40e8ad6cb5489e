"""Recording record models persisted in metadata.json."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional


@dataclass(frozen=True)
class RecordingRecord:
    """A voice annotation linked to an inclusive 1-based line range."""
    id: str
    audio_file: str  # Relative to the .devvoice directory
    source_file: str
    language: str
    start_line: int
    end_line: int
    timestamp: str  # ISO-8601
    duration: Optional[int] = None  # Approximate seconds

    def __post_init__(self):
        if self.start_line < 1 or self.end_line < 1:
            raise ValueError(f"Line numbers are 1-based: {self.start_line}-{self.end_line}")
        if self.start_line > self.end_line:
            raise ValueError(f"startLine {self.start_line} is after endLine {self.end_line}")

    def contains(self, line: int) -> bool:
        """Check whether a 1-based line falls inside the range."""
        return self.start_line <= line <= self.end_line

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "audioFile": self.audio_file,
            "sourceFile": self.source_file,
            "language": self.language,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "timestamp": self.timestamp,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordingRecord":
        return cls(
            id=data["id"],
            audio_file=data["audioFile"],
            source_file=data["sourceFile"],
            language=data.get("language") or "plaintext",
            start_line=int(data["startLine"]),
            end_line=int(data["endLine"]),
            timestamp=data.get("timestamp", ""),
            duration=data.get("duration"),
        )


class LineRange(NamedTuple):
    """Zero-based inclusive line range for a decoration."""
    start: int
    end: int


@dataclass
class ClearResult:
    """Outcome of a bulk clear; deletions that failed are listed, not raised."""
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed
