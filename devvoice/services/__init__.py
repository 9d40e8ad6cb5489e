"""Services layer for DevVoice application logic."""

from .recording_service import RecordingService
from .panel import RecorderPanel
from .decorations import EditorDecorations
from .app import DevVoiceApp

__all__ = [
    "RecordingService",
    "RecorderPanel",
    "EditorDecorations",
    "DevVoiceApp",
]
