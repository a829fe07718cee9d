"""
Command front end: one shell-style invocation of a remote operation.

A ``Command`` pairs an ``OperationSpec`` (how the operation paginates and what
it emits by default) with an invoker, and runs the fixed sequence every
generated command used to spell out by hand: confirm, resolve the output
selector, build the request, paginate, project each page into the sink.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import PaginationConfig
from .confirmation import ConfirmationGate, ConfirmImpact, Prompt, format_target
from .exceptions import ConfigurationError
from .logging import DefaultLogger, Logger
from .models import IterationOutcome, Page
from .page_iterator import Invoker, PageIterator, resolve_awaitable
from .selection import OutputSelector, echo, parse_select, project
from .strategies import CursorStrategy, StrategyRegistry

OutputSink = Callable[[Any], Union[None, Awaitable[None]]]


class OperationSpec(BaseModel):
    """Static description of one remote operation."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    strategy: Any = "next_token"
    items_field: Optional[str] = None
    default_select: Optional[str] = None
    pass_thru_parameter: Optional[str] = None
    service_max_page_size: Optional[int] = Field(default=None, gt=0)
    default_page_size_to_max: bool = False
    impact: ConfirmImpact = ConfirmImpact.NONE
    confirm_parameter: Optional[str] = None


class CommandResult(BaseModel):
    """What one command invocation produced."""

    model_config = ConfigDict(frozen=True)

    outputs: List[Any] = Field(default_factory=list)
    next_token: Optional[str] = None
    outcome: Optional[IterationOutcome] = None
    skipped: bool = False


class Command:
    """Runs an operation with pagination, confirmation and output selection."""

    def __init__(
        self,
        spec: OperationSpec,
        invoke: Invoker,
        logger: Optional[Logger] = None,
        registry: Optional[StrategyRegistry] = None,
    ):
        """
        Initialize the command.

        ``last_iterator`` holds the iterator of the most recent ``execute`` call,
        so a caller can see how many pages reached the sink before a failure
        propagated.

        Args:
            spec: Operation description
            invoke: Callable performing one remote call for this operation
            logger: Optional logger instance
            registry: Strategy registry used to resolve a strategy name

        Raises:
            ConfigurationError: If a named strategy is unknown or cannot be built
                                from the operation description
        """
        self.spec = spec
        self.invoke = invoke
        self.logger = logger or DefaultLogger(name="autopager-command")

        if registry is None:
            registry = StrategyRegistry(logger=self.logger)
            registry.register_builtin_strategies()
        self.registry = registry
        self.strategy = self._resolve_strategy()
        self.last_iterator: Optional[PageIterator] = None

    def _resolve_strategy(self) -> CursorStrategy:
        strategy = self.spec.strategy
        if not isinstance(strategy, str):
            return strategy
        kwargs: Dict[str, Any] = {}
        if self.spec.items_field is not None:
            kwargs["items_field"] = self.spec.items_field
        try:
            return self.registry.get_strategy(strategy, **kwargs)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot build cursor strategy '{strategy}' for {self.spec.name}: {e}", e
            ) from e

    def resolve_selector(
        self, select: Optional[str] = None, pass_thru: bool = False
    ) -> OutputSelector:
        default_field = self.spec.default_select or self.spec.items_field
        return parse_select(
            select,
            default_field=default_field,
            pass_thru_parameter=self.spec.pass_thru_parameter,
            pass_thru=pass_thru,
        )

    async def execute(
        self,
        parameters: Optional[Dict[str, Any]] = None,
        next_token: Optional[str] = None,
        limit: Optional[int] = None,
        no_auto_iteration: bool = False,
        page_size: Optional[int] = None,
        select: Optional[str] = None,
        pass_thru: bool = False,
        force: bool = False,
        sink: Optional[OutputSink] = None,
        prompt: Optional[Prompt] = None,
    ) -> CommandResult:
        """
        Invoke the operation.

        Args:
            parameters: Operation parameters; None values are left out of the request
            next_token: Starting cursor; implies single-page mode
            limit: Maximum number of items to retrieve across all pages
            no_auto_iteration: Fetch a single page and return its cursor
            page_size: Items to request per page
            select: Output select expression ("*", "^Param" or a field path)
            pass_thru: Emit the pass-thru parameter instead of response data
            force: Skip the confirmation prompt
            sink: Called with every emitted object, sync or async
            prompt: Asked to confirm high-impact operations

        Returns:
            The emitted objects, the final cursor and the iteration outcome

        Raises:
            InvalidSelectError: If the select expression cannot be used
            ConfigurationError: If the pagination parameters are invalid
            Exception: The invoker's error, unmodified, when it is not absorbed
        """
        parameters = dict(parameters or {})

        gate = ConfirmationGate(impact=self.spec.impact, prompt=prompt, logger=self.logger)
        target = format_target(self.spec.confirm_parameter, parameters)
        if not gate.should_proceed(force, target, self.spec.name):
            return CommandResult(skipped=True)

        selector = self.resolve_selector(select, pass_thru)
        config = PaginationConfig.from_parameters(
            next_token=next_token,
            limit=limit,
            no_auto_iteration=no_auto_iteration,
            page_size=page_size,
            service_max_page_size=self.spec.service_max_page_size,
            default_page_size_to_max=self.spec.default_page_size_to_max,
        )
        request = {key: value for key, value in parameters.items() if value is not None}

        outputs: List[Any] = []

        async def emit(obj: Any) -> None:
            outputs.append(obj)
            if sink is not None:
                await resolve_awaitable(sink(obj))

        async def on_page(page: Page) -> None:
            if not selector.per_page:
                return
            for obj in project(selector, page.response):
                await emit(obj)

        log = self.logger.bind(operation=self.spec.name)
        log.debug("Executing", mode=config.mode.value, limit=limit)
        iterator = PageIterator(self.strategy, config, logger=log)
        self.last_iterator = iterator
        outcome = await iterator.run(request, self.invoke, on_page)

        if not selector.per_page:
            await emit(echo(selector, parameters))

        if outcome.has_more:
            log.debug("More pages available", next_token=outcome.cursor)

        return CommandResult(outputs=outputs, next_token=outcome.cursor, outcome=outcome)
