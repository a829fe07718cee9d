"""Value types shared by the iterator, the command front end and the CLI."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class IterationMode(str, Enum):
    """How many pages one invocation of an operation fetches."""

    AUTO_PAGINATE = "auto_paginate"
    MANUAL_SINGLE_PAGE = "manual_single_page"

    @classmethod
    def resolve(
        cls, no_auto_iteration: bool = False, cursor_supplied: bool = False
    ) -> "IterationMode":
        """Pick the mode for one invocation.

        A caller that switches auto iteration off, or that hands in its own
        starting cursor, is managing pagination itself and gets one page.
        """
        if no_auto_iteration or cursor_supplied:
            return cls.MANUAL_SINGLE_PAGE
        return cls.AUTO_PAGINATE


class IterationState(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_PAGE = "awaiting_page"
    EMITTING = "emitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IterationState.SUCCEEDED, IterationState.FAILED)


class Page(BaseModel):
    """One request/response round trip delivered to a page sink."""

    model_config = ConfigDict(frozen=True)

    number: int
    request: Any
    response: Any
    item_count: int
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return has_value(self.next_cursor)


class IterationOutcome(BaseModel):
    """Terminal result of one page iterator run.

    ``pages_delivered`` and ``items_delivered`` count what the caller may treat
    as the result. A run that failed reports zero for both even when page
    callbacks already fired; ``stopped_early`` marks a late failure that was
    absorbed because an emit limit was in force.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    state: IterationState
    cursor: Optional[str] = None
    pages_delivered: int = 0
    items_delivered: int = 0
    remaining_limit: Optional[int] = None
    stopped_early: bool = False
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.state == IterationState.SUCCEEDED

    @property
    def has_more(self) -> bool:
        return has_value(self.cursor)


def has_value(cursor: Optional[str]) -> bool:
    """Return True when a cursor signals that more pages may exist."""
    return cursor is not None and cursor != ""
