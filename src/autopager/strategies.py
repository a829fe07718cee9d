"""
Cursor strategies: how a page iterator reads and writes pagination fields.

A strategy knows where an operation keeps its continuation token, its page
size and its result items. Requests and responses are otherwise opaque to the
iterator, so one strategy serves every operation that shares a field layout.
"""

from typing import Any, Dict, List, Optional, Protocol, Type, runtime_checkable

from .logging import DefaultLogger, Logger

_MISSING = object()


@runtime_checkable
class CursorStrategy(Protocol):
    """Protocol defining the request/response accessors a page iterator needs."""

    def set_cursor(self, request: Any, cursor: Optional[str]) -> None:
        """Write the continuation cursor into a request (None clears it)."""
        ...

    def set_page_size(self, request: Any, size: int) -> None:
        """Write the page size into a request."""
        ...

    def get_cursor(self, response: Any) -> Optional[str]:
        """Read the continuation cursor returned with a page."""
        ...

    def count_items(self, response: Any) -> int:
        """Count the result items contained in a page."""
        ...

    def extract_items(self, response: Any) -> list:
        """Return the result items contained in a page."""
        ...


def read_field(source: Any, path: str, default: Any = None) -> Any:
    """
    Read a possibly dotted field from a mapping or an attribute object.

    Args:
        source: A dict-like response or a model object
        path: Field name, with dots for nested fields (e.g. "Result.Items")
        default: Value returned when any segment is missing

    Returns:
        The field value or ``default``
    """
    value = source
    for key in path.split("."):
        if isinstance(value, dict):
            value = value.get(key, _MISSING)
        else:
            value = getattr(value, key, _MISSING)
        if value is _MISSING:
            return default
    return value


def write_field(target: Any, name: str, value: Any) -> None:
    """Set a field on a dict request or an attribute-style request object.

    Setting ``None`` on a dict removes the key so the field is omitted from the
    serialized request.
    """
    if isinstance(target, dict):
        if value is None:
            target.pop(name, None)
        else:
            target[name] = value
    else:
        setattr(target, name, value)


class FieldCursorStrategy:
    """
    Strategy for operations that name their pagination fields explicitly.

    Covers the common service shape where the request carries a token field
    and an optional page-size field, and the response returns the next token
    beside a list of items.
    """

    def __init__(
        self,
        cursor_field: str,
        items_field: str,
        page_size_field: Optional[str] = None,
        response_cursor_field: Optional[str] = None,
    ):
        """
        Initialize the strategy.

        Args:
            cursor_field: Request field holding the continuation cursor
            items_field: Response field (dotted paths allowed) holding the items
            page_size_field: Request field holding the page size, if the
                             operation supports one
            response_cursor_field: Response field holding the next cursor,
                                   when it differs from ``cursor_field``
        """
        if not cursor_field:
            raise ValueError("cursor_field is required")
        if not items_field:
            raise ValueError("items_field is required")
        self.cursor_field = cursor_field
        self.items_field = items_field
        self.page_size_field = page_size_field
        self.response_cursor_field = response_cursor_field or cursor_field

    def set_cursor(self, request: Any, cursor: Optional[str]) -> None:
        write_field(request, self.cursor_field, cursor)

    def set_page_size(self, request: Any, size: int) -> None:
        # Operations without a page-size field cannot be clamped
        if self.page_size_field is None:
            return
        write_field(request, self.page_size_field, size)

    def get_cursor(self, response: Any) -> Optional[str]:
        return read_field(response, self.response_cursor_field)

    def extract_items(self, response: Any) -> List[Any]:
        items = read_field(response, self.items_field)
        if items is None:
            return []
        if isinstance(items, (list, tuple)):
            return list(items)
        return [items]

    def count_items(self, response: Any) -> int:
        return len(self.extract_items(response))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(cursor_field={self.cursor_field!r}, "
            f"items_field={self.items_field!r}, page_size_field={self.page_size_field!r})"
        )


class NextTokenStrategy(FieldCursorStrategy):
    """NextToken / MaxResults pagination."""

    def __init__(self, items_field: str, page_size_field: Optional[str] = "MaxResults"):
        super().__init__(
            cursor_field="NextToken", items_field=items_field, page_size_field=page_size_field
        )


class MarkerStrategy(FieldCursorStrategy):
    """NextMarker / Limit pagination."""

    def __init__(self, items_field: str, page_size_field: Optional[str] = "Limit"):
        super().__init__(
            cursor_field="NextMarker", items_field=items_field, page_size_field=page_size_field
        )


class SingleCallStrategy:
    """Strategy for operations that return everything in one response.

    The response itself counts as the only item and never carries a cursor,
    so the iterator stops after the first call.
    """

    def set_cursor(self, request: Any, cursor: Optional[str]) -> None:
        pass

    def set_page_size(self, request: Any, size: int) -> None:
        pass

    def get_cursor(self, response: Any) -> Optional[str]:
        return None

    def extract_items(self, response: Any) -> List[Any]:
        return [] if response is None else [response]

    def count_items(self, response: Any) -> int:
        return len(self.extract_items(response))


class StrategyRegistry:
    """
    Registry of cursor strategies.

    Maps names to strategy classes so operations can be described by name
    ("next_token", "marker") and instantiated with their own field names.
    """

    def __init__(self, logger: Optional[Logger] = None):
        """
        Initialize the registry.

        Args:
            logger: Optional logger instance for logging events
        """
        self._strategies: Dict[str, Type[CursorStrategy]] = {}
        self._default_strategy: Optional[str] = None
        self.logger = logger or DefaultLogger(name="autopager-strategies")

    def register_strategy(self, name: str, strategy_cls: Type[CursorStrategy]) -> None:
        """
        Register a cursor strategy.

        Args:
            name: Name to register the strategy under
            strategy_cls: The strategy class to register

        Raises:
            TypeError: If strategy_cls is not a class implementing CursorStrategy
        """
        if not isinstance(strategy_cls, type):
            raise TypeError(f"Expected a class, got {type(strategy_cls)}")

        if not issubclass(strategy_cls, CursorStrategy):
            raise TypeError(
                f"Class {strategy_cls.__name__} does not implement the CursorStrategy protocol"
            )

        self._strategies[name] = strategy_cls
        self.logger.debug(f"Registered cursor strategy: {name}")

    def unregister_strategy(self, name: str) -> None:
        """
        Unregister a cursor strategy.

        Raises:
            KeyError: If the strategy is not registered
        """
        if name not in self._strategies:
            raise KeyError(f"Strategy '{name}' not registered")

        del self._strategies[name]

        if self._default_strategy == name:
            self._default_strategy = None
            self.logger.debug(f"Cleared default strategy (was: {name})")

        self.logger.debug(f"Unregistered cursor strategy: {name}")

    def set_default_strategy(self, name: str) -> None:
        """
        Set the default cursor strategy.

        Raises:
            ValueError: If the strategy is not registered
        """
        if name not in self._strategies:
            raise ValueError(f"Strategy '{name}' not registered")

        self._default_strategy = name
        self.logger.debug(f"Set default cursor strategy to: {name}")

    def get_strategy(self, name: Optional[str] = None, **kwargs: Any) -> CursorStrategy:
        """
        Get a cursor strategy instance.

        Args:
            name: Name of the strategy to get, or None to use the default
            **kwargs: Arguments passed to the strategy constructor
                      (e.g. ``items_field``)

        Returns:
            An instance of the requested strategy

        Raises:
            ValueError: If no name is provided and no default is set, or if the
                        requested strategy is not registered
        """
        if name is None:
            if self._default_strategy is None:
                raise ValueError("No default strategy set")
            name = self._default_strategy

        if name not in self._strategies:
            raise ValueError(f"Strategy '{name}' not registered")

        return self._strategies[name](**kwargs)

    def list_strategies(self) -> Dict[str, Type[CursorStrategy]]:
        """Return a copy of the name-to-class mapping."""
        return self._strategies.copy()

    def get_default_strategy_name(self) -> Optional[str]:
        return self._default_strategy

    def register_builtin_strategies(self) -> None:
        """Register the built-in strategies, with ``next_token`` as the default."""
        self.register_strategy("next_token", NextTokenStrategy)
        self.register_strategy("marker", MarkerStrategy)
        self.register_strategy("field", FieldCursorStrategy)
        self.register_strategy("single_call", SingleCallStrategy)

        if self._default_strategy is None:
            self.set_default_strategy("next_token")
