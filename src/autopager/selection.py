"""
Output projection for command results.

What a command emits is decided once, when the command is set up: the whole
service response, one field of it, or the value of one of the command's own
input parameters. Select expressions use the same shorthand shells have
always accepted:

    "*"          whole response
    "^Name"      echo the input parameter "Name"
    "Field.Sub"  a (dotted) response field
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .exceptions import InvalidSelectError
from .strategies import read_field

_MISSING = object()


@dataclass(frozen=True)
class WholeResponse:
    """Emit each page's response as it is."""

    per_page = True


@dataclass(frozen=True)
class NamedField:
    """Emit one field of each page's response."""

    name: str
    per_page = True


@dataclass(frozen=True)
class ParameterEcho:
    """Emit an input parameter once, after all pages were fetched."""

    name: str
    per_page = False


OutputSelector = Union[WholeResponse, NamedField, ParameterEcho]


def parse_select(
    expression: Optional[str],
    default_field: Optional[str] = None,
    pass_thru_parameter: Optional[str] = None,
    pass_thru: bool = False,
) -> OutputSelector:
    """
    Resolve a select expression into an output selector.

    Args:
        expression: The caller's select expression, or None when not given
        default_field: Field emitted when no expression is given; None means
                       the whole response
        pass_thru_parameter: Parameter echoed when ``pass_thru`` is set
        pass_thru: Whether the caller asked to echo the pass-thru parameter

    Returns:
        The selector to apply to each page

    Raises:
        InvalidSelectError: If the expression is empty or malformed, or if
                            ``pass_thru`` is combined with an expression
    """
    if expression is not None:
        if pass_thru:
            raise InvalidSelectError(
                "PassThru cannot be used when Select is specified", expression
            )
        expression = expression.strip()
        if not expression:
            raise InvalidSelectError("Select expression must not be empty", expression)
        if expression == "*":
            return WholeResponse()
        if expression.startswith("^"):
            name = expression[1:].strip()
            if not name:
                raise InvalidSelectError("Select '^' must name a parameter", expression)
            return ParameterEcho(name)
        if any(not part for part in expression.split(".")):
            raise InvalidSelectError(f"Invalid field path in select: {expression}", expression)
        return NamedField(expression)

    if pass_thru:
        if not pass_thru_parameter:
            raise InvalidSelectError("This operation has no parameter to pass through")
        return ParameterEcho(pass_thru_parameter)

    if default_field:
        return NamedField(default_field)
    return WholeResponse()


def project(selector: OutputSelector, response: Any) -> List[Any]:
    """
    Apply a per-page selector to one response.

    List fields are emitted item by item, other values as a single object and
    missing fields not at all.
    """
    if isinstance(selector, WholeResponse):
        return [response]
    if isinstance(selector, NamedField):
        value = read_field(response, selector.name, _MISSING)
        if value is _MISSING or value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        return [value]
    raise TypeError(f"{type(selector).__name__} is not applied per page")


def echo(selector: ParameterEcho, parameters: Dict[str, Any]) -> Any:
    """Return the echoed parameter value (None when the parameter was not given)."""
    return parameters.get(selector.name)
