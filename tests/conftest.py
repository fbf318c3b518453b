"""Shared test fixtures for the imap_eml test suite."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from email.mime.text import MIMEText

import pytest

from imap_eml.config import ImapConfig
from imap_eml.context import ExecutionContext
from imap_eml.models import FetchedMessage
from imap_eml.search import SearchKey


@pytest.fixture
def imap_config() -> ImapConfig:
    return ImapConfig(
        host="imap.test.com",
        port=993,
        use_ssl=True,
        username="testuser",
        password="testpass",
    )


def build_plain_email(
    *,
    subject: str = "Test Subject",
    body: str = "Hello, World!",
    message_id: str = "<test-001@example.com>",
) -> bytes:
    """Build a simple plain-text email as raw bytes."""
    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = "sender@example.com"
    msg["To"] = "recipient@example.com"
    msg["Message-ID"] = message_id
    msg["Date"] = "Mon, 02 Jun 2025 12:00:00 +0000"
    return msg.as_bytes()


@pytest.fixture
def plain_eml_bytes() -> bytes:
    return build_plain_email()


class FakeSession:
    """In-memory stand-in for AsyncImapClient.

    ``messages`` maps UID to raw source; ``search_result`` is the UID
    order returned by a search, regardless of the criteria.
    """

    def __init__(
        self,
        messages: dict[int, bytes] | None = None,
        search_result: Sequence[int] | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.messages = messages or {}
        self.search_result = list(search_result) if search_result is not None else sorted(self.messages)
        self.fail_after = fail_after
        self.opened: list[tuple[str, bool]] = []
        self.fetch_one_calls: list[int | str] = []
        self.search_calls: list[list[SearchKey]] = []

    async def open_mailbox(self, path: str, *, read_only: bool = True) -> int:
        self.opened.append((path, read_only))
        return len(self.messages)

    async def fetch_one(self, uid: int | str) -> FetchedMessage | None:
        self.fetch_one_calls.append(uid)
        source = self.messages.get(int(uid))
        if source is None:
            return None
        return FetchedMessage(uid=int(uid), source=source)

    async def fetch(self, criteria: Sequence[SearchKey]) -> AsyncIterator[FetchedMessage]:
        self.search_calls.append(list(criteria))
        for count, uid in enumerate(self.search_result):
            if self.fail_after is not None and count >= self.fail_after:
                raise OSError("connection reset")
            yield FetchedMessage(uid=uid, source=self.messages[uid])


@pytest.fixture
def make_session():
    """Factory for FakeSession instances."""

    def _make(**kwargs) -> FakeSession:
        return FakeSession(**kwargs)

    return _make


@pytest.fixture
def make_context():
    """Factory for an ExecutionContext with Download as EML defaults."""

    def _make(**overrides) -> ExecutionContext:
        params = {
            "mailboxPath": "INBOX",
            "emailUid": "",
            "outputToBinary": True,
            "binaryPropertyName": "data",
        }
        params.update(overrides)
        return ExecutionContext(params)

    return _make
