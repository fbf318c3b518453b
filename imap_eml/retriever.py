"""EmailRetriever: fetch one message by UID or every search match, and
shape each into an output record.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Protocol

import structlog

from .context import ExecutionContext
from .errors import NotFoundError
from .models import (
    EML_MIME_TYPE,
    EML_TEXT_FIELD,
    FetchedMessage,
    OutputMode,
    OutputRecord,
    PairedItem,
    RetrievalRequest,
)
from .search import SearchKey, build_search_criteria

logger = structlog.get_logger()


class MailboxSession(Protocol):
    """The slice of :class:`~imap_eml.imap_client.AsyncImapClient` the retriever uses."""

    async def open_mailbox(self, path: str, *, read_only: bool = True) -> int: ...

    async def fetch_one(self, uid: int | str) -> FetchedMessage | None: ...

    def fetch(self, criteria: Sequence[SearchKey]) -> AsyncIterator[FetchedMessage]: ...


def eml_file_name(mailbox_path: str, uid: int | str) -> str:
    return f"{mailbox_path}_{uid}.eml"


class EmailRetriever:
    """Download messages from an open session as binary or text records.

    The session must already be connected and authenticated; the
    retriever opens ``request.mailbox_path`` read-only itself.
    """

    def __init__(self, context: ExecutionContext) -> None:
        self._context = context

    async def retrieve(
        self,
        request: RetrievalRequest,
        session: MailboxSession,
        *,
        item_index: int = 0,
    ) -> list[OutputRecord]:
        """Return one record per downloaded message.

        Raises :class:`NotFoundError` instead of returning an empty list.
        """
        await session.open_mailbox(request.mailbox_path, read_only=True)

        if request.message_id:
            message = await session.fetch_one(request.message_id)
            if message is None or not message.source:
                raise NotFoundError("No email found with the specified UID")
            records = [await self._shape(request, message, item_index)]
        else:
            criteria = build_search_criteria(request.search)
            records = []
            async for message in session.fetch(criteria):
                records.append(await self._shape(request, message, item_index))
            if not records:
                raise NotFoundError("No emails found matching the search criteria.")

        logger.info(
            "download_eml_complete",
            mailbox=request.mailbox_path,
            mode=request.output_mode.value,
            count=len(records),
            item_index=item_index,
        )
        return records

    async def _shape(
        self,
        request: RetrievalRequest,
        message: FetchedMessage,
        item_index: int,
    ) -> OutputRecord:
        paired = PairedItem(item=item_index)
        if request.output_mode is OutputMode.BINARY:
            binary = await self._context.prepare_binary_data(
                message.source,
                eml_file_name(request.mailbox_path, message.uid),
                EML_MIME_TYPE,
            )
            return OutputRecord(
                binary_fields={request.binary_field_name: binary},
                paired_item=paired,
            )
        return OutputRecord(
            json_fields={EML_TEXT_FIELD: message.source.decode("utf-8", errors="replace")},
            paired_item=paired,
        )
