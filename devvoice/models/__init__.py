"""Data models for the DevVoice application."""

from .recording import RecordingRecord, LineRange, ClearResult
from .session import SessionState
from .messages import (
    EditorInfo,
    StartCommand,
    StopCommand,
    ListDevicesCommand,
    SaveCommand,
    StatusMessage,
    ErrorMessage,
    DeviceListMessage,
    AudioReadyMessage,
    RecordingSavedMessage,
    parse_inbound,
    parse_outbound,
)

__all__ = [
    "RecordingRecord",
    "LineRange",
    "ClearResult",
    "SessionState",
    # Panel protocol
    "EditorInfo",
    "StartCommand",
    "StopCommand",
    "ListDevicesCommand",
    "SaveCommand",
    "StatusMessage",
    "ErrorMessage",
    "DeviceListMessage",
    "AudioReadyMessage",
    "RecordingSavedMessage",
    "parse_inbound",
    "parse_outbound",
]
