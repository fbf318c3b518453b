"""Translate search filters into IMAP ``SEARCH`` criteria."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import TYPE_CHECKING, Any

from .models import SearchSpec

if TYPE_CHECKING:
    from .context import ExecutionContext

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_STRING_KEYS = (
    ("from_address", "FROM"),
    ("to_address", "TO"),
    ("cc", "CC"),
    ("bcc", "BCC"),
    ("subject", "SUBJECT"),
    ("body", "BODY"),
    ("text", "TEXT"),
)

_FLAG_KEYS = (
    ("seen", "SEEN", "UNSEEN"),
    ("answered", "ANSWERED", "UNANSWERED"),
    ("flagged", "FLAGGED", "UNFLAGGED"),
    ("deleted", "DELETED", "UNDELETED"),
    ("draft", "DRAFT", "UNDRAFT"),
)


# A search key is either an ASCII criterion ready for the wire
# (``'SUBJECT "invoice"'``) or a ``(key, value)`` pair whose value is
# non-ASCII and has to travel as a UTF-8 literal.
SearchKey = str | tuple[str, str]


def imap_date(value: date) -> str:
    """Format a date as an IMAP ``date`` (``01-Jan-2025``), locale-independent."""
    return f"{value.day:02d}-{_MONTHS[value.month - 1]}-{value.year:04d}"


def quote(value: str) -> str:
    """Render *value* as an IMAP quoted string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_search_criteria(spec: SearchSpec) -> list[SearchKey]:
    """Return the ``SEARCH`` keys for *spec*.

    An empty spec matches every message in the mailbox (``ALL``).
    """
    if spec.is_empty:
        return ["ALL"]

    criteria: list[SearchKey] = []

    if spec.since is not None:
        criteria.append(f"SINCE {imap_date(spec.since)}")
    if spec.before is not None:
        criteria.append(f"BEFORE {imap_date(spec.before)}")

    for attr, key in _STRING_KEYS:
        value = getattr(spec, attr)
        if value is None:
            continue
        if value.isascii():
            criteria.append(f"{key} {quote(value)}")
        else:
            criteria.append((key, value))

    for attr, on, off in _FLAG_KEYS:
        value = getattr(spec, attr)
        if value is not None:
            criteria.append(on if value else off)

    if spec.larger is not None:
        criteria.append(f"LARGER {spec.larger}")
    if spec.smaller is not None:
        criteria.append(f"SMALLER {spec.smaller}")
    if spec.uid is not None:
        criteria.append(f"UID {spec.uid}")

    return criteria


def _collection(context: ExecutionContext, name: str, item_index: int) -> Mapping[str, Any]:
    value = context.get_node_parameter(name, item_index, {})
    return value if isinstance(value, Mapping) else {}


def search_spec_from_context(context: ExecutionContext, item_index: int) -> SearchSpec:
    """Collect the search parameters of one input item into a :class:`SearchSpec`."""
    date_range = _collection(context, "emailDateRange", item_index)
    flags = _collection(context, "emailFlags", item_index)
    size_range = _collection(context, "emailSizeRange", item_index)

    return SearchSpec(
        since=date_range.get("since"),
        before=date_range.get("before"),
        from_address=context.get_node_parameter("emailFrom", item_index, None),
        to_address=context.get_node_parameter("emailTo", item_index, None),
        cc=context.get_node_parameter("emailCc", item_index, None),
        bcc=context.get_node_parameter("emailBcc", item_index, None),
        subject=context.get_node_parameter("emailSubject", item_index, None),
        body=context.get_node_parameter("emailBody", item_index, None),
        text=context.get_node_parameter("emailText", item_index, None),
        seen=flags.get("seen"),
        answered=flags.get("answered"),
        flagged=flags.get("flagged"),
        deleted=flags.get("deleted"),
        draft=flags.get("draft"),
        larger=size_range.get("larger"),
        smaller=size_range.get("smaller"),
        uid=context.get_node_parameter("emailUidRange", item_index, None),
    )
