"""Configuration objects for autopager.

``PaginationConfig`` is built once per invocation and handed to the page
iterator; nothing in it changes while pages are being fetched.
"""

import logging
from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import IterationMode, has_value


class PaginationConfig(BaseModel):
    """Immutable pagination settings for one run of an operation."""

    model_config = ConfigDict(frozen=True)

    initial_cursor: Optional[str] = None
    emit_limit: Optional[int] = None
    mode: IterationMode = IterationMode.AUTO_PAGINATE
    service_max_page_size: Optional[int] = Field(default=None, gt=0)
    page_size: Optional[int] = Field(default=None, gt=0)
    default_page_size_to_max: bool = False

    @field_validator("emit_limit")
    @classmethod
    def _validate_emit_limit(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("emit_limit must not be negative")
        return value

    @classmethod
    def from_parameters(
        cls,
        next_token: Optional[str] = None,
        limit: Optional[int] = None,
        no_auto_iteration: bool = False,
        **kwargs: Any,
    ) -> "PaginationConfig":
        """Build a config from command-style parameters.

        Args:
            next_token: Starting cursor bound by the caller, if any
            limit: Maximum number of items to retrieve across all pages
            no_auto_iteration: Whether the caller asked for a single page
            **kwargs: Remaining ``PaginationConfig`` fields

        Returns:
            The resolved configuration

        Raises:
            ConfigurationError: If a value fails validation
        """
        mode = IterationMode.resolve(
            no_auto_iteration=no_auto_iteration, cursor_supplied=next_token is not None
        )
        try:
            return cls(
                initial_cursor=next_token if has_value(next_token) else None,
                emit_limit=limit,
                mode=mode,
                **kwargs,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid pagination parameters: {e}", e) from e


class Settings(BaseSettings):
    """Process-level settings read from ``AUTOPAGER_*`` environment variables.

    ``AUTOPAGER_LOG_LEVEL`` takes a level name (case-insensitive) or number.
    """

    model_config = SettingsConfigDict(env_prefix="AUTOPAGER_", env_ignore_empty=True, frozen=True)

    LOG_LEVELS: ClassVar[Dict[str, int]] = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    log_level: int = logging.INFO
    timeout: float = Field(default=60.0, gt=0)
    service_max_page_size: int = Field(default=100, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        name = value.strip().upper()
        if name.isdigit():
            return int(name)
        if name not in cls.LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return cls.LOG_LEVELS[name]

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from the environment.

        Raises:
            ConfigurationError: If a variable holds an unusable value
        """
        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid autopager settings: {e}", e) from e
