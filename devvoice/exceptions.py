"""
DevVoice exception hierarchy.

All application-specific exceptions inherit from DevVoiceError, so the
panel and CLI boundaries can report any of them as a single message.
"""

from datetime import datetime, timezone


class DevVoiceError(Exception):
    """Base exception for all DevVoice errors."""

    def __init__(self, detail: str = "An unexpected error occurred", code: str = "DEVVOICE_ERROR") -> None:
        self.detail = detail
        self.code = code
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(detail)


class SpawnError(DevVoiceError):
    """Raised when an external process could not be located or started."""

    def __init__(self, detail: str = "Failed to spawn recorder process") -> None:
        super().__init__(detail=detail, code="SPAWN_ERROR")


class FileNotCreatedError(DevVoiceError):
    """Raised when the recorder never produced its output file."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(detail="Audio file was not created", code="FILE_NOT_CREATED")


class NoAudioCapturedError(DevVoiceError):
    """Raised when the output file never grew past the size threshold."""

    def __init__(self, path: str, size: int) -> None:
        self.path = path
        self.size = size
        super().__init__(detail="No audio data captured", code="NO_AUDIO_CAPTURED")


class AudioReadError(DevVoiceError):
    """Raised when a created audio file cannot be read back."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(detail=f"Read error: {reason}", code="READ_ERROR")


class CorruptMetadataError(DevVoiceError):
    """Raised when metadata.json exists but cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(detail=f"Corrupt metadata in {path}: {reason}", code="CORRUPT_METADATA")


class SaveError(DevVoiceError):
    """Raised when copying audio or writing metadata fails."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=f"Save error: {detail}", code="SAVE_ERROR")


class DeviceListError(DevVoiceError):
    """Raised when the probing tool fails or yields no device lines."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=f"Could not list devices: {detail}", code="DEVICE_LIST_ERROR")


class SessionBusyError(DevVoiceError):
    """Raised when starting a recording while one is already active."""

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(detail=f"A recording session is already active ({state})", code="SESSION_BUSY")


class SessionStateError(DevVoiceError):
    """Raised when a session operation is not valid in the current state."""

    def __init__(self, detail: str, state: str) -> None:
        self.state = state
        super().__init__(detail=detail, code="INVALID_SESSION_STATE")


class InvalidMessageError(DevVoiceError):
    """Raised when a panel payload is unknown or malformed."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=f"Invalid message: {detail}", code="INVALID_MESSAGE")


class PlaybackError(DevVoiceError):
    """Raised when an audio recording cannot be played."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=detail, code="PLAYBACK_ERROR")


class WorkspaceError(DevVoiceError):
    """Raised when no workspace root can be determined."""

    def __init__(self, detail: str = "Could not determine workspace root") -> None:
        super().__init__(detail=detail, code="WORKSPACE_ERROR")
