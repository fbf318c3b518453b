"""Execution context handed to the operation by the workflow host."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from .errors import InvalidRequestError
from .models import BinaryData

logger = structlog.get_logger()

_MISSING: Any = object()


class ExecutionContext:
    """Per-execution view of node parameters and binary staging.

    ``parameters`` is either one mapping shared by every input item or a
    sequence with one mapping per item (the host resolves expressions
    per item before calling the operation).
    """

    def __init__(
        self,
        parameters: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        *,
        item_count: int | None = None,
    ) -> None:
        if isinstance(parameters, Mapping):
            self._per_item: list[Mapping[str, Any]] | None = None
            self._shared: Mapping[str, Any] = parameters
            self._item_count = item_count if item_count is not None else 1
        else:
            self._per_item = list(parameters)
            self._shared = {}
            self._item_count = len(self._per_item)

    @property
    def item_count(self) -> int:
        return self._item_count

    def _parameters_for(self, item_index: int) -> Mapping[str, Any]:
        if not 0 <= item_index < self._item_count:
            raise IndexError(f"Item index {item_index} out of range")
        if self._per_item is None:
            return self._shared
        return self._per_item[item_index]

    def get_node_parameter(self, name: str, item_index: int, default: Any = _MISSING) -> Any:
        """Return parameter *name* for *item_index*, or *default* if unset."""
        params = self._parameters_for(item_index)
        if name in params:
            return params[name]
        if default is _MISSING:
            raise InvalidRequestError(
                f"Missing required parameter {name!r}",
                item_index=item_index,
            )
        return default

    async def prepare_binary_data(
        self,
        data: bytes,
        file_name: str,
        mime_type: str,
    ) -> BinaryData:
        """Stage *data* as a binary payload attached to an output item."""
        binary = BinaryData.from_bytes(data, file_name, mime_type)
        logger.debug("binary_data_prepared", file_name=file_name, size=binary.file_size)
        return binary
