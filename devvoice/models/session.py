"""Session-related data models."""

from enum import Enum


class SessionState(Enum):
    """States of a single recording attempt."""
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """True while a recorder process or poll is outstanding."""
        return self in (SessionState.RECORDING, SessionState.STOPPING)
