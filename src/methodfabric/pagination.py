"""Cursor and page pagination protocols.

Both pagers drive the same primitive, a single bound call that fetches one
page, and differ only in the synthetic state they add to the call and in how
they read the next state off the payload:

* ``PagePager`` sends ``page`` (starting at 1) and is done once a page comes
  back with no items.
* ``CursorPager`` sends ``cursor`` (starting at -1) and is done once the
  payload's ``next_cursor`` is 0.

Some endpoints accept both during a provider migration. Prefer the cursor
protocol whenever it is available; both stay independently usable.
"""

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .log_config import logger
from .models import EnvelopeUnwrapper, PayloadUnwrapper

FIRST_CURSOR = -1
"""Cursor value requesting the first page."""

NO_MORE_PAGES = 0
"""Cursor value meaning there is no page in that direction."""


class CursorState(BaseModel):
    """Cursor pagination state.

    Attributes:
        cursor: Cursor to send with the next call (-1 for the first page).
        next_cursor: ``next_cursor`` of the last fetched page, if any.
        previous_cursor: ``previous_cursor`` of the last fetched page, if any.
    """

    cursor: int = FIRST_CURSOR
    next_cursor: int | None = None
    previous_cursor: int | None = None

    model_config = ConfigDict(frozen=True)


class PageState(BaseModel):
    """Page pagination state; pages are numbered from 1."""

    page: int = Field(default=1, ge=1)

    model_config = ConfigDict(frozen=True)


PaginationState = CursorState | PageState


class PageResult(BaseModel):
    """One fetched page: its payload, the state for the next call, and whether to stop."""

    payload: Any
    next_state: CursorState | PageState
    done: bool

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class Pager(Protocol):
    """A pagination protocol over the "fetch one page" primitive."""

    param_name: str
    unwrapper: PayloadUnwrapper

    def initial_state(self) -> Any: ...

    def apply(self, named: dict[str, Any], state: Any) -> dict[str, Any]:
        """Returns the named call arguments extended with the pagination state."""
        ...

    def next_state(self, payload: Any, state: Any) -> tuple[Any, bool]:
        """Returns the state for the following call and whether pagination is done."""
        ...


class PagePager:
    """Page-number pagination: stops at the first empty page."""

    param_name = "page"

    def __init__(self, unwrapper: PayloadUnwrapper | None = None):
        self.unwrapper = unwrapper or EnvelopeUnwrapper()

    def initial_state(self) -> PageState:
        return PageState()

    def apply(self, named: dict[str, Any], state: PageState) -> dict[str, Any]:
        return {**named, self.param_name: state.page}

    def next_state(self, payload: Any, state: PageState) -> tuple[PageState, bool]:
        items = self.unwrapper.unwrap_items(payload)
        if not items:
            logger.debug(f"Page {state.page} is empty, pagination done.")
            return state, True
        return PageState(page=state.page + 1), False


class CursorPager:
    """Cursor pagination: follows ``next_cursor`` until it is 0."""

    param_name = "cursor"

    def __init__(self, unwrapper: PayloadUnwrapper | None = None):
        self.unwrapper = unwrapper or EnvelopeUnwrapper()

    def initial_state(self) -> CursorState:
        return CursorState()

    def apply(self, named: dict[str, Any], state: CursorState) -> dict[str, Any]:
        return {**named, self.param_name: state.cursor}

    def next_state(
        self, payload: Any, state: CursorState
    ) -> tuple[CursorState, bool]:
        next_cursor = self.unwrapper.get_next_cursor(payload)
        previous_cursor = self.unwrapper.get_previous_cursor(payload)
        if next_cursor is None:
            logger.warning(
                f"Payload for cursor {state.cursor} has no next_cursor; stopping."
            )
        done = next_cursor in (None, NO_MORE_PAGES)
        new_state = CursorState(
            cursor=NO_MORE_PAGES if next_cursor is None else next_cursor,
            next_cursor=next_cursor,
            previous_cursor=previous_cursor,
        )
        return new_state, done


def pager_for_state(
    state: PaginationState, unwrapper: PayloadUnwrapper | None = None
) -> CursorPager | PagePager:
    """Selects the pager matching a state object."""
    if isinstance(state, CursorState):
        return CursorPager(unwrapper)
    return PagePager(unwrapper)
