"""Generic auto-pagination for paginated service operations."""

__version__ = "0.1.0"

from .command import Command, CommandResult, OperationSpec
from .config import PaginationConfig, Settings
from .confirmation import ConfirmationGate, ConfirmImpact
from .exceptions import (
    AutoPagerError,
    ConfigurationError,
    ConfirmationDeclinedError,
    InvalidSelectError,
    OperationError,
)
from .logging import DefaultLogger, Logger, redact_cursor
from .models import IterationMode, IterationOutcome, IterationState, Page, has_value
from .page_iterator import PageIterator
from .selection import NamedField, OutputSelector, ParameterEcho, WholeResponse, parse_select
from .service_client import ServiceClient
from .strategies import (
    CursorStrategy,
    FieldCursorStrategy,
    MarkerStrategy,
    NextTokenStrategy,
    SingleCallStrategy,
    StrategyRegistry,
)

__all__ = [
    "__version__",
    # Core
    "PageIterator",
    "PaginationConfig",
    "IterationMode",
    "IterationState",
    "IterationOutcome",
    "Page",
    "has_value",
    # Strategies
    "CursorStrategy",
    "FieldCursorStrategy",
    "NextTokenStrategy",
    "MarkerStrategy",
    "SingleCallStrategy",
    "StrategyRegistry",
    # Command front end
    "Command",
    "CommandResult",
    "OperationSpec",
    "ConfirmationGate",
    "ConfirmImpact",
    "OutputSelector",
    "WholeResponse",
    "NamedField",
    "ParameterEcho",
    "parse_select",
    # Transport
    "ServiceClient",
    # Ambient
    "Settings",
    "Logger",
    "DefaultLogger",
    "redact_cursor",
    # Exceptions
    "AutoPagerError",
    "ConfigurationError",
    "ConfirmationDeclinedError",
    "InvalidSelectError",
    "OperationError",
]
