"""
Page iterator: drives a paginated remote operation to completion.

The iterator repeatedly invokes an operation, chaining the cursor each
response returns into the next request, until the service runs out of pages,
the caller's emit limit is used up, or the caller asked for a single page.
Pages are fetched strictly one after another and handed to the caller in the
order the service returned them.
"""

import asyncio
import copy
import inspect
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from .config import PaginationConfig
from .logging import DefaultLogger, Logger
from .models import IterationMode, IterationOutcome, IterationState, Page, has_value
from .strategies import CursorStrategy

Invoker = Callable[[Any], Union[Any, Awaitable[Any]]]
PageSink = Callable[[Page], Union[None, Awaitable[None]]]


async def resolve_awaitable(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class PageIterator:
    """
    Fetches the pages of one operation invocation.

    Failure policy: an invoke error propagates unchanged when no page has been
    delivered yet, or when no emit limit is in force. Once at least one page
    was delivered under an emit limit, a later invoke error ends the run
    successfully with the pages already delivered.

    Emit limit: the remaining budget is reduced by the item count of every
    page, and iteration stops as soon as it reaches zero or below. While a
    budget remains, each request asks for at most that many items.
    """

    def __init__(
        self,
        strategy: CursorStrategy,
        config: Optional[PaginationConfig] = None,
        logger: Optional[Logger] = None,
    ):
        """
        Initialize the page iterator.

        Args:
            strategy: Accessors for the cursor, page size and items fields
            config: Pagination settings for the run (defaults to auto pagination)
            logger: Optional logger instance
        """
        if not isinstance(strategy, CursorStrategy):
            raise TypeError(
                f"{type(strategy).__name__} does not implement the CursorStrategy protocol"
            )
        self.strategy = strategy
        self.config = config or PaginationConfig()
        self.logger = logger or DefaultLogger(name="autopager-iterator")
        self._reset()

    def _reset(self) -> None:
        self.state = IterationState.NOT_STARTED
        self.cursor: Optional[str] = self.config.initial_cursor
        self.remaining_limit: Optional[int] = self.config.emit_limit
        self.pages_emitted = 0
        self.items_emitted = 0
        self.outcome: Optional[IterationOutcome] = None

    @property
    def mode(self) -> IterationMode:
        return self.config.mode

    def _page_size(self) -> Optional[int]:
        """Page size to request next, or None to leave the field untouched."""
        cfg = self.config
        if self.remaining_limit is not None:
            cap = cfg.page_size or cfg.service_max_page_size
            if cap is None:
                return self.remaining_limit
            return min(cap, self.remaining_limit)
        if cfg.page_size is not None:
            return cfg.page_size
        if cfg.default_page_size_to_max and cfg.service_max_page_size is not None:
            return cfg.service_max_page_size
        return None

    def _prepare(self, request: Any) -> Optional[int]:
        self.strategy.set_cursor(request, self.cursor if has_value(self.cursor) else None)
        size = self._page_size()
        if size is not None:
            self.strategy.set_page_size(request, size)
        return size

    def _stop_reason(self) -> Optional[str]:
        """Return why iteration ends after the current page, or None to continue."""
        if self.config.mode == IterationMode.MANUAL_SINGLE_PAGE:
            return "single page requested"
        if not has_value(self.cursor):
            return "no more pages"
        if self.remaining_limit is not None and self.remaining_limit <= 0:
            return "emit limit reached"
        return None

    def _can_absorb_failure(self) -> bool:
        return self.config.emit_limit is not None and self.pages_emitted > 0

    def _finish(
        self,
        state: IterationState,
        reason: str,
        error: Optional[BaseException] = None,
        stopped_early: bool = False,
    ) -> IterationOutcome:
        self.state = state
        delivered = state == IterationState.SUCCEEDED
        self.outcome = IterationOutcome(
            state=state,
            cursor=self.cursor,
            pages_delivered=self.pages_emitted if delivered else 0,
            items_delivered=self.items_emitted if delivered else 0,
            remaining_limit=self.remaining_limit,
            stopped_early=stopped_early,
            error=error,
        )
        if delivered:
            self.logger.info(
                f"Pagination finished: {reason}",
                pages=self.pages_emitted,
                items=self.items_emitted,
                cursor=self.cursor,
            )
        return self.outcome

    async def pages(self, request: Any, invoke: Invoker) -> AsyncIterator[Page]:
        """
        Lazily fetch pages, yielding each one before the next is requested.

        The caller's request is copied once and the copy carries the cursor
        and page size from page to page. Closing the generator early (``aclose()``,
        or leaving a ``contextlib.aclosing`` block) ends the run successfully
        with the pages seen so far; no further invoke calls are made.

        Args:
            request: Initial request (dict or attribute object)
            invoke: Callable performing one remote call; may be async

        Yields:
            Page objects in the order the service returned them
        """
        if self.state in (IterationState.AWAITING_PAGE, IterationState.EMITTING):
            raise RuntimeError("PageIterator is already running")
        self._reset()

        if self.remaining_limit == 0:
            self._finish(IterationState.SUCCEEDED, "emit limit is zero")
            return

        working = copy.copy(request)
        self.logger.debug(
            f"Starting pagination in {self.config.mode.value} mode",
            cursor=self.cursor,
            emit_limit=self.remaining_limit,
        )

        try:
            while True:
                size = self._prepare(working)
                sent = copy.copy(working)
                self.state = IterationState.AWAITING_PAGE
                number = self.pages_emitted + 1

                try:
                    response = await resolve_awaitable(invoke(working))
                except asyncio.CancelledError as e:
                    self._finish(IterationState.FAILED, "cancelled", error=e)
                    raise
                except Exception as e:
                    if self._can_absorb_failure():
                        self.logger.warning(
                            f"Page {number} failed after {self.pages_emitted} page(s) were "
                            f"delivered under an emit limit; keeping partial results: {e}"
                        )
                        self._finish(
                            IterationState.SUCCEEDED,
                            "stopped after a failed page",
                            error=e,
                            stopped_early=True,
                        )
                        return
                    self.logger.error(f"Page {number} failed: {e}")
                    self._finish(IterationState.FAILED, "invoke failed", error=e)
                    raise

                item_count = self.strategy.count_items(response)
                self.cursor = self.strategy.get_cursor(response)
                self.pages_emitted += 1
                self.items_emitted += item_count
                if self.remaining_limit is not None:
                    self.remaining_limit -= item_count

                self.logger.debug(
                    f"Received page {number}",
                    page_size=size,
                    items=item_count,
                    cursor=self.cursor,
                    remaining=self.remaining_limit,
                )

                self.state = IterationState.EMITTING
                yield Page(
                    number=number,
                    request=sent,
                    response=response,
                    item_count=item_count,
                    next_cursor=self.cursor,
                )

                reason = self._stop_reason()
                if reason is not None:
                    self._finish(IterationState.SUCCEEDED, reason)
                    return
        except GeneratorExit:
            if not self.state.is_terminal:
                self._finish(IterationState.SUCCEEDED, "consumer stopped early")
            raise

    async def run(
        self, request: Any, invoke: Invoker, on_page: Optional[PageSink] = None
    ) -> IterationOutcome:
        """
        Fetch every page the configuration allows and deliver each to ``on_page``.

        Args:
            request: Initial request (dict or attribute object)
            invoke: Callable performing one remote call; may be async
            on_page: Sink called once per page, sync or async, before the
                     next page is requested

        Returns:
            The terminal outcome of the run

        Raises:
            Exception: The invoker's own exception, unmodified, when the
                       failure policy does not absorb it; or whatever
                       ``on_page`` raised
        """
        async with aclosing(self.pages(request, invoke)) as pages:
            try:
                async for page in pages:
                    if on_page is not None:
                        await resolve_awaitable(on_page(page))
            except asyncio.CancelledError as e:
                if not self.state.is_terminal:
                    self._finish(IterationState.FAILED, "cancelled", error=e)
                raise
            except Exception as e:
                if not self.state.is_terminal:
                    self.logger.error(f"Page sink failed on page {self.pages_emitted}: {e}")
                    self._finish(IterationState.FAILED, "page sink failed", error=e)
                raise
        return self.outcome
