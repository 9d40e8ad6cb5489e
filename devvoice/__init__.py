"""DevVoice - voice notes linked to line ranges of source files."""

__version__ = "0.1.0"
