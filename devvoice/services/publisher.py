"""Topic names and publishers for pub/sub notifications."""

import logging
from typing import Any, Dict
from pubsub import pub

from ..models.recording import RecordingRecord

logger = logging.getLogger(__name__)

# Outbound panel messages: panel_id, message
PANEL_TOPIC = "devvoice.panel"
# A record was appended: workspace_root, record
RECORDING_SAVED_TOPIC = "devvoice.recording.saved"
# A workspace was cleared: workspace_root
RECORDINGS_CLEARED_TOPIC = "devvoice.recordings.cleared"


class PanelPublisher:
    """Publishes outbound messages of one panel for the presentation surface."""

    def __init__(self, panel_id: str, topic: str = PANEL_TOPIC):
        """Initialize panel publisher.

        Args:
            panel_id: Identifies the panel instance the messages belong to
            topic: Pub/sub topic name for panel messages
        """
        self.panel_id = panel_id
        self.topic = topic
        logger.debug(f"PanelPublisher {panel_id} initialized with topic: {topic}")

    def publish(self, message: Dict[str, Any]) -> None:
        pub.sendMessage(self.topic, panel_id=self.panel_id, message=message)


def publish_recording_saved(workspace_root: str, record: RecordingRecord) -> None:
    pub.sendMessage(RECORDING_SAVED_TOPIC, workspace_root=workspace_root, record=record)


def publish_recordings_cleared(workspace_root: str) -> None:
    pub.sendMessage(RECORDINGS_CLEARED_TOPIC, workspace_root=workspace_root)
