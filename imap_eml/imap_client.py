"""Async IMAP client wrapping stdlib imaplib with asyncio.to_thread."""

from __future__ import annotations

import asyncio
import base64
import imaplib
import re
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import structlog

from .config import ImapConfig
from .models import FetchedMessage
from .search import SearchKey

logger = structlog.get_logger()

# Raw source without touching \Seen, plus the UID to label it with
FETCH_QUERY = "(UID BODY.PEEK[])"

_UID_RE = re.compile(rb"\bUID (\d+)")
_NEEDS_QUOTING = re.compile(r'[\s"\\(){%*]')


def encode_mailbox(name: str) -> str:
    """Encode a mailbox name for the wire (RFC 3501 modified UTF-7, quoted if needed)."""
    out: list[str] = []
    pending: list[str] = []

    def flush() -> None:
        if pending:
            chunk = base64.b64encode("".join(pending).encode("utf-16-be")).decode("ascii")
            out.append("&" + chunk.rstrip("=").replace("/", ",") + "-")
            pending.clear()

    for ch in name:
        if 0x20 <= ord(ch) <= 0x7E:
            flush()
            out.append("&-" if ch == "&" else ch)
        else:
            pending.append(ch)
    flush()

    encoded = "".join(out)
    if not encoded or _NEEDS_QUOTING.search(encoded):
        escaped = encoded.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return encoded


def _parse_fetch_response(data: Sequence[object]) -> FetchedMessage | None:
    """Extract UID and literal body from an imaplib ``UID FETCH`` response."""
    uid: int | None = None
    source: bytes | None = None
    for part in data:
        if isinstance(part, tuple):
            header, literal = part[0], part[1]
            match = _UID_RE.search(header)
            if match:
                uid = int(match.group(1))
            source = literal
        elif isinstance(part, bytes) and uid is None:
            # Some servers send UID after the literal: b" UID 42)"
            match = _UID_RE.search(part)
            if match:
                uid = int(match.group(1))
    if uid is None or source is None:
        return None
    return FetchedMessage(uid=uid, source=source)


def _describe(criteria: Sequence[SearchKey]) -> str:
    return " ".join(key if isinstance(key, str) else f"{key[0]} {{utf-8}}" for key in criteria)


class AsyncImapClient:
    """Async-friendly IMAP client.

    All blocking ``imaplib`` operations are wrapped with
    ``asyncio.to_thread()`` to avoid blocking the event loop.
    """

    def __init__(self, config: ImapConfig) -> None:
        self._config = config
        self._conn: imaplib.IMAP4_SSL | imaplib.IMAP4 | None = None
        self._mailbox: str | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect and login."""
        await asyncio.to_thread(self._connect_sync)
        logger.info("imap_connected", host=self._config.host, port=self._config.port)

    def _connect_sync(self) -> None:
        if self._config.use_ssl:
            self._conn = imaplib.IMAP4_SSL(self._config.host, self._config.port)
        else:
            self._conn = imaplib.IMAP4(self._config.host, self._config.port)
        self._conn.login(self._config.username, self._config.password.get_secret_value())

    async def disconnect(self) -> None:
        """Close mailbox and logout."""
        if self._conn is not None:
            await asyncio.to_thread(self._disconnect_sync)
            self._conn = None
            self._mailbox = None
            logger.info("imap_disconnected")

    def _disconnect_sync(self) -> None:
        assert self._conn is not None
        if self._mailbox is not None:
            try:
                self._conn.close()
            except imaplib.IMAP4.error:
                pass
        try:
            self._conn.logout()
        except imaplib.IMAP4.error:
            pass

    async def is_connected(self) -> bool:
        """Check connection liveness with a NOOP command."""
        if self._conn is None:
            return False
        try:
            status, _ = await asyncio.to_thread(self._conn.noop)
            return status == "OK"
        except (imaplib.IMAP4.error, OSError):
            return False

    # ------------------------------------------------------------------
    # Mailbox
    # ------------------------------------------------------------------

    async def open_mailbox(self, path: str, *, read_only: bool = True) -> int:
        """Open *path* (``EXAMINE`` when *read_only*).  Returns the message count."""
        assert self._conn is not None, "Not connected"
        exists = await asyncio.to_thread(self._open_sync, path, read_only)
        self._mailbox = path
        logger.info("mailbox_opened", mailbox=path, read_only=read_only, exists=exists)
        return exists

    def _open_sync(self, path: str, read_only: bool) -> int:
        assert self._conn is not None
        status, data = self._conn.select(encode_mailbox(path), readonly=read_only)
        if status != "OK":
            detail = data[0].decode(errors="replace") if data and data[0] else status
            raise imaplib.IMAP4.error(f"Cannot open mailbox {path!r}: {detail}")
        try:
            return int(data[0])
        except (TypeError, ValueError):
            return 0

    # ------------------------------------------------------------------
    # Message retrieval
    # ------------------------------------------------------------------

    async def fetch_one(self, uid: int | str) -> FetchedMessage | None:
        """Fetch a single message by UID, or ``None`` if the UID does not exist."""
        assert self._conn is not None, "Not connected"
        message = await asyncio.to_thread(self._fetch_uid_sync, str(uid))
        logger.debug("eml_fetched", uid=str(uid), found=message is not None)
        return message

    async def fetch(self, criteria: Sequence[SearchKey]) -> AsyncIterator[FetchedMessage]:
        """Yield every message matching *criteria*, one ``UID FETCH`` at a time.

        The UID list comes from ``UID SEARCH``; messages are fetched
        lazily in the order the server returned them.
        """
        assert self._conn is not None, "Not connected"
        uids = await asyncio.to_thread(self._search_sync, list(criteria))
        logger.debug("eml_search_complete", criteria=_describe(criteria), matched=len(uids))
        for uid in uids:
            message = await asyncio.to_thread(self._fetch_uid_sync, uid)
            if message is None:
                # Expunged between SEARCH and FETCH
                logger.debug("eml_vanished", uid=uid)
                continue
            yield message

    # ------------------------------------------------------------------
    # Synchronous helpers (run in thread)
    # ------------------------------------------------------------------

    def _search_sync(self, criteria: list[SearchKey]) -> list[str]:
        plain = [key for key in criteria if isinstance(key, str)]
        literals = [key for key in criteria if isinstance(key, tuple)]
        if not literals:
            return self._uid_search(None, plain)

        # imaplib sends at most one literal per command, appended last, so
        # each non-ASCII key gets its own SEARCH and the results are ANDed.
        matched: list[str] | None = None
        for key, value in literals:
            uids = self._uid_search(value.encode("utf-8"), [*plain, key])
            if matched is None:
                matched = uids
            else:
                keep = set(uids)
                matched = [uid for uid in matched if uid in keep]
            if not matched:
                break
        return matched or []

    def _uid_search(self, literal: bytes | None, keys: list[str]) -> list[str]:
        assert self._conn is not None
        if literal is None:
            status, data = self._conn.uid("SEARCH", None, *keys)
        else:
            self._conn.literal = literal
            status, data = self._conn.uid("SEARCH", "CHARSET", "UTF-8", *keys)
        if status != "OK":
            detail = data[0].decode(errors="replace") if data and data[0] else status
            raise imaplib.IMAP4.error(f"SEARCH failed: {detail}")
        if not data or not data[0]:
            return []
        return [uid.decode() for uid in data[0].split()]

    def _fetch_uid_sync(self, uid: str) -> FetchedMessage | None:
        assert self._conn is not None
        status, data = self._conn.uid("FETCH", uid, FETCH_QUERY)
        if status != "OK":
            detail = data[0].decode(errors="replace") if data and data[0] else status
            raise imaplib.IMAP4.error(f"FETCH {uid} failed: {detail}")
        if not data or data[0] is None:
            return None
        return _parse_fetch_response(data)


@asynccontextmanager
async def imap_session(config: ImapConfig) -> AsyncIterator[AsyncImapClient]:
    """Connected client for the duration of the block; always logs out."""
    client = AsyncImapClient(config)
    try:
        await client.connect()
        yield client
    finally:
        await client.disconnect()
