"""Exception hierarchy for autopager.

Errors raised by an operation invoker are never wrapped by the page iterator;
these types cover failures that autopager itself detects.
"""

from typing import Any, Optional


class AutoPagerError(Exception):
    """Base exception for autopager errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ConfigurationError(AutoPagerError):
    """Raised for invalid settings or command parameters."""

    pass


class InvalidSelectError(AutoPagerError):
    """Raised when an output select expression cannot be resolved."""

    def __init__(self, message: str, expression: Optional[str] = None) -> None:
        super().__init__(message)
        self.expression = expression


class OperationError(AutoPagerError):
    """Raised when a service replies to an operation call with an error."""

    def __init__(
        self,
        operation: str,
        status: int,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        body: Any = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        msg = f"{operation} failed with HTTP {status}"
        if error_code:
            msg += f" ({error_code})"
        if error_message:
            msg += f": {error_message}"
        super().__init__(msg, original_error)
        self.operation = operation
        self.status = status
        self.error_code = error_code
        self.error_message = error_message
        self.body = body


class ConfirmationDeclinedError(AutoPagerError):
    """Raised when a destructive operation was not confirmed."""

    def __init__(self, action: str, target: str) -> None:
        super().__init__(f"Operation '{action}' on '{target}' was not confirmed")
        self.action = action
        self.target = target
