"""IMAP connection and download-run settings loaded from environment variables."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class ImapConfig(BaseSettings):
    """IMAP server connection settings."""

    model_config = {"env_prefix": "IMAP_"}

    host: str = Field(description="IMAP server hostname")
    port: int = Field(default=993, description="IMAP server port")
    use_ssl: bool = Field(default=True, description="Use SSL/TLS connection")
    username: str = Field(description="IMAP login username")
    password: SecretStr = Field(description="IMAP login password")


class DownloadConfig(BaseSettings):
    """Parameters for a single ``python -m imap_eml`` run.

    Mirrors the parameters a workflow host would supply to the
    Download as EML operation, so a run can be driven entirely from
    ``DOWNLOAD_*`` environment variables.
    """

    model_config = {"env_prefix": "DOWNLOAD_"}

    mailbox: str = Field(default="INBOX", description="Mailbox to open (read-only)")
    uid: str = Field(default="", description="UID of a single message to download")
    output_to_binary: bool = Field(
        default=True,
        description="Write raw .eml files instead of JSON lines",
    )
    binary_property_name: str = Field(
        default="data",
        description="Binary field name for staged messages",
    )
    output_dir: str = Field(default=".", description="Directory for .eml files")
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")

    since: date | None = Field(default=None, description="Only messages on or after this date")
    before: date | None = Field(default=None, description="Only messages before this date")
    from_address: str | None = Field(default=None, description="Sender contains")
    to_address: str | None = Field(default=None, description="Recipient contains")
    subject: str | None = Field(default=None, description="Subject contains")
    text: str | None = Field(default=None, description="Headers or body contain")
    seen: bool | None = Field(default=None, description="Filter on the \\Seen flag")

    def to_parameters(self) -> dict[str, Any]:
        """Render host-style node parameters for :class:`ExecutionContext`."""
        params: dict[str, Any] = {
            "mailboxPath": self.mailbox,
            "emailUid": self.uid,
            "outputToBinary": self.output_to_binary,
            "binaryPropertyName": self.binary_property_name,
        }
        date_range = {
            key: value
            for key, value in (("since", self.since), ("before", self.before))
            if value is not None
        }
        if date_range:
            params["emailDateRange"] = date_range
        if self.seen is not None:
            params["emailFlags"] = {"seen": self.seen}
        for name, value in (
            ("emailFrom", self.from_address),
            ("emailTo", self.to_address),
            ("emailSubject", self.subject),
            ("emailText", self.text),
        ):
            if value:
                params[name] = value
        return params
