"""Download as EML: the workflow operation built on :class:`EmailRetriever`."""

from __future__ import annotations

from collections.abc import Mapping

import structlog
from pydantic import ValidationError

from .config import ImapConfig
from .context import ExecutionContext
from .errors import ImapEmlError, InvalidRequestError
from .imap_client import imap_session
from .models import OutputMode, OutputRecord, RetrievalRequest
from .retriever import EmailRetriever, MailboxSession
from .search import search_spec_from_context

logger = structlog.get_logger()


def mailbox_path_from_context(context: ExecutionContext, item_index: int) -> str:
    """Read ``mailboxPath`` as a plain string or a ``{"mode", "value"}`` locator."""
    value = context.get_node_parameter("mailboxPath", item_index)
    if isinstance(value, Mapping):
        value = value.get("value", "")
    if not isinstance(value, str) or not value:
        raise InvalidRequestError("A mailbox must be selected", item_index=item_index)
    return value


class DownloadEmlOperation:
    """Fetch messages as raw EML, staged as binary data or JSON text."""

    name = "Download as EML"
    value = "downloadEml"

    def build_request(self, context: ExecutionContext, item_index: int) -> RetrievalRequest:
        """Turn the loosely typed node parameters into a validated request."""
        mailbox_path = mailbox_path_from_context(context, item_index)
        output_to_binary = context.get_node_parameter("outputToBinary", item_index, True)
        try:
            return RetrievalRequest(
                mailbox_path=mailbox_path,
                message_id=context.get_node_parameter("emailUid", item_index, ""),
                search=search_spec_from_context(context, item_index),
                output_mode=OutputMode.BINARY if output_to_binary else OutputMode.TEXT,
                binary_field_name=context.get_node_parameter(
                    "binaryPropertyName", item_index, "data",
                ),
            )
        except ValidationError as exc:
            messages = "; ".join(err["msg"] for err in exc.errors())
            raise InvalidRequestError(
                f"Invalid parameters for item {item_index}: {messages}",
                item_index=item_index,
            ) from exc

    async def execute_item(
        self,
        context: ExecutionContext,
        item_index: int,
        client: MailboxSession,
    ) -> list[OutputRecord]:
        request = self.build_request(context, item_index)
        return await EmailRetriever(context).retrieve(request, client, item_index=item_index)

    async def execute(
        self,
        context: ExecutionContext,
        imap_config: ImapConfig,
    ) -> list[OutputRecord]:
        """Run every input item over one IMAP session.

        The first failure aborts the whole execution; records already
        produced for earlier items are discarded.
        """
        results: list[OutputRecord] = []
        async with imap_session(imap_config) as client:
            for item_index in range(context.item_count):
                try:
                    results.extend(await self.execute_item(context, item_index, client))
                except ImapEmlError as exc:
                    logger.warning(
                        "download_eml_failed",
                        operation=self.value,
                        item_index=item_index,
                        error=str(exc),
                    )
                    raise
                except Exception:
                    logger.exception(
                        "download_eml_failed",
                        operation=self.value,
                        item_index=item_index,
                    )
                    raise
        return results
