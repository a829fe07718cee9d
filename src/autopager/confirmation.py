"""Confirmation gate for operations that change or delete remote resources."""

from enum import IntEnum
from typing import Any, Callable, Dict, Optional

from .exceptions import ConfirmationDeclinedError
from .logging import DefaultLogger, Logger

Prompt = Callable[[str], bool]


class ConfirmImpact(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


def format_target(parameter_name: Optional[str], parameters: Dict[str, Any]) -> str:
    """Render the resource identifier shown in a confirmation prompt."""
    if not parameter_name:
        return ""
    value = parameters.get(parameter_name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


class ConfirmationGate:
    """
    Decides whether an operation may run.

    Operations whose impact is below the threshold run without asking. At or
    above it, the caller must pass ``force`` or the prompt must agree. With no
    prompt available the gate declines.
    """

    def __init__(
        self,
        impact: ConfirmImpact = ConfirmImpact.NONE,
        threshold: ConfirmImpact = ConfirmImpact.HIGH,
        prompt: Optional[Prompt] = None,
        logger: Optional[Logger] = None,
    ):
        self.impact = impact
        self.threshold = threshold
        self.prompt = prompt
        self.logger = logger or DefaultLogger(name="autopager-confirmation")

    def requires_confirmation(self) -> bool:
        return self.impact != ConfirmImpact.NONE and self.impact >= self.threshold

    def should_proceed(self, force: bool, target: str, action: str) -> bool:
        """
        Ask whether ``action`` may run against ``target``.

        Args:
            force: Whether the caller suppressed confirmation
            target: Resource identifier shown to the user
            action: Operation description shown to the user

        Returns:
            True if the operation may run
        """
        if force or not self.requires_confirmation():
            return True

        if self.prompt is None:
            self.logger.warning(f"No confirmation prompt available, skipping {action}")
            return False

        message = f"Performing the operation \"{action}\" on target \"{target}\"."
        confirmed = bool(self.prompt(message))
        if not confirmed:
            self.logger.info(f"Operation declined: {action}", target=target)
        return confirmed

    def confirm_or_raise(self, force: bool, target: str, action: str) -> None:
        """Like ``should_proceed`` but raises ConfirmationDeclinedError on refusal."""
        if not self.should_proceed(force, target, action):
            raise ConfirmationDeclinedError(action, target)
