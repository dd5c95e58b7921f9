# methodfabric/models.py
"""Protocols for reading paged payloads.

Paging endpoints answer either with a bare list of items or with an envelope
holding a named item list plus cursor fields, for example:

```json
{
    "ids": [1, 2, 3],
    "next_cursor": 1374004777531007833,
    "previous_cursor": 0
}
```

The ``PayloadUnwrapper`` protocol isolates that shape from the pagers, so
the pagination protocols work unchanged for any endpoint layout.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from .log_config import logger

NEXT_CURSOR_FIELD = "next_cursor"
PREVIOUS_CURSOR_FIELD = "previous_cursor"


@runtime_checkable
class PayloadUnwrapper(Protocol):
    """Protocol for extracting items and cursors from a decoded payload."""

    def unwrap_items(self, payload: Any) -> list[Any]:
        """Extract the item sequence of one page.

        Args:
            payload: The decoded payload of one page.

        Returns:
            list[Any]: The items of the page, empty when there are none.

        Raises:
            ValueError: If the payload has no recognizable item sequence.
        """
        ...

    def get_next_cursor(self, payload: Any) -> int | None:
        """Extract the cursor of the following page, None if the payload has none."""
        ...

    def get_previous_cursor(self, payload: Any) -> int | None:
        """Extract the cursor of the preceding page, None if the payload has none."""
        ...


def _as_cursor(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer cursor value {value!r}")
        return None


class EnvelopeUnwrapper:
    """Default PayloadUnwrapper for bare lists and cursor envelopes.

    Args:
        items_key: Name of the item list inside an envelope (e.g. "ids",
            "users"). When None, the envelope's only list-valued field is used.
    """

    def __init__(self, items_key: str | None = None):
        self.items_key = items_key

    def unwrap_items(self, payload: Any) -> list[Any]:
        if payload is None:
            return []
        if isinstance(payload, list):
            return payload
        if not isinstance(payload, Mapping):
            raise ValueError(
                f"Payload must be a list or a dictionary, got {type(payload)}"
            )

        if self.items_key is not None:
            items = payload.get(self.items_key)
            if items is None:
                return []
            if not isinstance(items, list):
                raise ValueError(
                    f"Expected '{self.items_key}' to be a list, got {type(items)}"
                )
            return items

        candidates = [key for key, value in payload.items() if isinstance(value, list)]
        if len(candidates) != 1:
            raise ValueError(
                "Cannot pick the item list of the payload; "
                f"list-valued fields: {candidates}. Pass items_key explicitly."
            )
        return payload[candidates[0]]

    def get_next_cursor(self, payload: Any) -> int | None:
        if not isinstance(payload, Mapping):
            return None
        return _as_cursor(
            payload.get(NEXT_CURSOR_FIELD, payload.get(NEXT_CURSOR_FIELD + "_str"))
        )

    def get_previous_cursor(self, payload: Any) -> int | None:
        if not isinstance(payload, Mapping):
            return None
        return _as_cursor(
            payload.get(
                PREVIOUS_CURSOR_FIELD, payload.get(PREVIOUS_CURSOR_FIELD + "_str")
            )
        )
