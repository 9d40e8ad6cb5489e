"""Messages exchanged with the recorder panel.

Both directions are closed tagged unions keyed on ``command``. Inbound
payloads are validated before any handler runs; unknown commands and
malformed fields are rejected.
"""

import os
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from ..exceptions import InvalidMessageError


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with the camelCase field names the panel expects."""
        return self.model_dump(by_alias=True, exclude_none=True)


class EditorInfo(_Message):
    """Selection captured from the focused editor when the recorder opens."""
    filepath: str = Field(min_length=1)
    filename: Optional[str] = None
    start_line: int = Field(alias="startLine", ge=1)
    end_line: int = Field(alias="endLine", ge=1)
    language: str = "plaintext"

    @model_validator(mode="before")
    @classmethod
    def _default_filename(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("filename") and data.get("filepath"):
            data = {**data, "filename": os.path.basename(data["filepath"])}
        return data

    @model_validator(mode="after")
    def _check_range(self) -> "EditorInfo":
        if self.start_line > self.end_line:
            raise ValueError(f"startLine {self.start_line} is after endLine {self.end_line}")
        return self

    def describe(self) -> str:
        return f"{self.filename} (Lines {self.start_line}-{self.end_line})"


# Inbound: panel -> controller

class StartCommand(_Message):
    command: Literal["start"] = "start"


class StopCommand(_Message):
    command: Literal["stop"] = "stop"


class ListDevicesCommand(_Message):
    command: Literal["listDevices"] = "listDevices"


class SaveCommand(_Message):
    command: Literal["save"] = "save"
    editor_info: EditorInfo = Field(alias="editorInfo")


InboundMessage = Annotated[
    Union[StartCommand, StopCommand, ListDevicesCommand, SaveCommand],
    Field(discriminator="command"),
]


# Outbound: controller -> panel

class StatusMessage(_Message):
    command: Literal["status"] = "status"
    message: str


class ErrorMessage(_Message):
    command: Literal["error"] = "error"
    error: str


class DeviceListMessage(_Message):
    command: Literal["deviceList"] = "deviceList"
    devices: List[str]
    html: str = ""


class AudioReadyMessage(_Message):
    command: Literal["audioReady"] = "audioReady"
    audio_data: str = Field(alias="audioData")  # base64
    mime_type: str = Field(default="audio/wav", alias="mimeType")


class RecordingSavedMessage(_Message):
    command: Literal["recordingSaved"] = "recordingSaved"
    recording_id: str = Field(alias="recordingId")


OutboundMessage = Annotated[
    Union[StatusMessage, ErrorMessage, DeviceListMessage, AudioReadyMessage, RecordingSavedMessage],
    Field(discriminator="command"),
]

_inbound_adapter = TypeAdapter(InboundMessage)
_outbound_adapter = TypeAdapter(OutboundMessage)


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


def parse_inbound(payload: Any):
    """Validate a raw panel payload into one of the inbound command models.

    Raises:
        InvalidMessageError: payload is not a mapping, has an unknown
            ``command``, or carries malformed fields
    """
    if not isinstance(payload, dict):
        raise InvalidMessageError(f"expected an object, got {type(payload).__name__}")
    try:
        return _inbound_adapter.validate_python(payload)
    except ValidationError as e:
        raise InvalidMessageError(_describe(e)) from e


def parse_outbound(payload: Any):
    """Validate a payload produced for the panel; used by surfaces and tests."""
    try:
        return _outbound_adapter.validate_python(payload)
    except ValidationError as e:
        raise InvalidMessageError(_describe(e)) from e
