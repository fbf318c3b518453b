"""Exception taxonomy for the Download as EML operation."""

from __future__ import annotations


class ImapEmlError(Exception):
    """Base class for errors raised by this package."""


class NotFoundError(ImapEmlError):
    """No message matched the requested UID or search criteria."""


class InvalidRequestError(ImapEmlError, ValueError):
    """A host parameter is missing or invalid.

    ``item_index`` identifies the input item whose parameters were
    rejected, when known.
    """

    def __init__(self, message: str, *, item_index: int | None = None) -> None:
        super().__init__(message)
        self.item_index = item_index
