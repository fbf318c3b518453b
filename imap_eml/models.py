"""Data models for the Download as EML operation."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EML_MIME_TYPE = "message/rfc822"
EML_TEXT_FIELD = "emlContent"

_UID_RE = re.compile(r"[0-9]+")
_UID_SET_RE = re.compile(r"[0-9*:,]+")


def _reject_control_chars(value: str) -> None:
    # CR/LF would end the IMAP command line early
    if any(ch in value for ch in "\r\n\0"):
        raise ValueError(f"Line breaks and NUL are not allowed, got {value!r}")


class OutputMode(str, Enum):
    """How a downloaded message is staged on the output item."""

    BINARY = "binary"
    TEXT = "text"


class SearchSpec(BaseModel):
    """Structured IMAP search filter.

    Every field is optional; ``None`` means "do not filter on this".
    Boolean flag fields are tri-state: ``True`` matches messages with the
    flag set, ``False`` matches messages without it.
    """

    since: date | None = Field(default=None, description="Internal date on or after")
    before: date | None = Field(default=None, description="Internal date strictly before")
    from_address: str | None = Field(default=None, description="FROM header contains")
    to_address: str | None = Field(default=None, description="TO header contains")
    cc: str | None = Field(default=None, description="CC header contains")
    bcc: str | None = Field(default=None, description="BCC header contains")
    subject: str | None = Field(default=None, description="SUBJECT header contains")
    body: str | None = Field(default=None, description="Body contains")
    text: str | None = Field(default=None, description="Headers or body contain")
    seen: bool | None = None
    answered: bool | None = None
    flagged: bool | None = None
    deleted: bool | None = None
    draft: bool | None = None
    larger: int | None = Field(default=None, ge=0, description="Size in bytes greater than")
    smaller: int | None = Field(default=None, ge=0, description="Size in bytes less than")
    uid: str | None = Field(default=None, description="UID set, e.g. 1:100 or 4,7,9")

    @field_validator("since", "before", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        # Hosts hand over full ISO timestamps; IMAP dates are day-granular.
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        if value == "":
            return None
        return value

    @field_validator(
        "from_address", "to_address", "cc", "bcc", "subject", "body", "text", "uid",
    )
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        _reject_control_chars(value)
        return value

    @field_validator("uid")
    @classmethod
    def _check_uid_set(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.replace(" ", "")
        if not _UID_SET_RE.fullmatch(value):
            raise ValueError(f"UID range must look like 1:100 or 4,7,9, got {value!r}")
        return value

    @property
    def is_empty(self) -> bool:
        return not any(value is not None for value in self.model_dump().values())


class RetrievalRequest(BaseModel):
    """Validated parameters of one Download as EML invocation.

    When ``message_id`` is set the ``search`` filter is ignored.
    """

    mailbox_path: str = Field(min_length=1, description="Mailbox to open read-only")
    message_id: str | None = Field(default=None, description="UID of a single message")
    search: SearchSpec = Field(default_factory=SearchSpec)
    output_mode: OutputMode = OutputMode.BINARY
    binary_field_name: str = Field(default="data", description="Binary field to stage into")

    @field_validator("message_id", mode="before")
    @classmethod
    def _normalize_message_id(cls, value: Any) -> str | None:
        if value is None:
            return None
        value = str(value).strip()
        if not value:
            return None
        if not _UID_RE.fullmatch(value) or int(value) == 0:
            raise ValueError(f"Email UID must be a positive integer, got {value!r}")
        return value

    @field_validator("mailbox_path")
    @classmethod
    def _check_mailbox_path(cls, value: str) -> str:
        _reject_control_chars(value)
        return value

    @model_validator(mode="after")
    def _check_binary_field(self) -> RetrievalRequest:
        if self.output_mode is OutputMode.BINARY and not self.binary_field_name.strip():
            raise ValueError("A binary field name is required when outputting binary data")
        return self


@dataclass
class FetchedMessage:
    """Raw message as returned by the IMAP client."""

    uid: int
    source: bytes


class BinaryData(BaseModel):
    """A staged binary payload in the host's binary-item shape."""

    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(description="Base64-encoded payload")
    mime_type: str = Field(alias="mimeType")
    file_name: str = Field(alias="fileName")
    file_extension: str | None = Field(default=None, alias="fileExtension")
    file_size: int = Field(alias="fileSize", description="Payload size in bytes")

    @classmethod
    def from_bytes(cls, payload: bytes, file_name: str, mime_type: str) -> BinaryData:
        _, dot, extension = file_name.rpartition(".")
        return cls(
            data=base64.b64encode(payload).decode("ascii"),
            mime_type=mime_type,
            file_name=file_name,
            file_extension=extension if dot else None,
            file_size=len(payload),
        )

    def content(self) -> bytes:
        """Decode the staged payload back to raw bytes."""
        return base64.b64decode(self.data)


class PairedItem(BaseModel):
    """Back-reference from an output record to its triggering input item."""

    item: int = Field(ge=0)


class OutputRecord(BaseModel):
    """One output item produced by the operation."""

    model_config = ConfigDict(populate_by_name=True)

    json_fields: dict[str, Any] = Field(default_factory=dict, alias="json")
    binary_fields: dict[str, BinaryData] | None = Field(default=None, alias="binary")
    paired_item: PairedItem = Field(alias="pairedItem")

    def to_item(self) -> dict[str, Any]:
        """Serialize in the host's item format (camelCase keys)."""
        return self.model_dump(by_alias=True, exclude_none=True)
