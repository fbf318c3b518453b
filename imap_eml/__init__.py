"""IMAP Download as EML: fetch messages as raw RFC 822 binary or text items."""

from .config import DownloadConfig, ImapConfig
from .context import ExecutionContext
from .errors import ImapEmlError, InvalidRequestError, NotFoundError
from .imap_client import AsyncImapClient, imap_session
from .logging import setup_logging
from .models import (
    BinaryData,
    FetchedMessage,
    OutputMode,
    OutputRecord,
    PairedItem,
    RetrievalRequest,
    SearchSpec,
)
from .operation import DownloadEmlOperation
from .retriever import EmailRetriever
from .search import build_search_criteria

__all__ = [
    "AsyncImapClient",
    "BinaryData",
    "DownloadConfig",
    "DownloadEmlOperation",
    "EmailRetriever",
    "ExecutionContext",
    "FetchedMessage",
    "ImapConfig",
    "ImapEmlError",
    "InvalidRequestError",
    "NotFoundError",
    "OutputMode",
    "OutputRecord",
    "PairedItem",
    "RetrievalRequest",
    "SearchSpec",
    "build_search_criteria",
    "imap_session",
    "setup_logging",
]
