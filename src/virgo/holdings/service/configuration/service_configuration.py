from __future__ import annotations

from typing import Any

from pydantic import ValidationError
from pydantic_core import ErrorDetails
from pydantic_settings import BaseSettings, SettingsConfigDict

from virgo.holdings.core.config import CannotLoadConfiguration


class ServiceConfiguration(BaseSettings):
    """
    Base class for the engine's service configuration.

    Subclasses declare their settings as pydantic fields and override
    `env_prefix`, so each service reads its own block of environment
    variables (e.g. VIRGO_FIREHOSE_URL, VIRGO_REDIS_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="VIRGO_",
        str_strip_whitespace=True,
        # Settings are loaded once from the environment and never mutated.
        frozen=True,
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    def __init__(self, *args: Any, **kwargs: Any):
        try:
            super().__init__(*args, **kwargs)
        except ValidationError as error_exception:
            lines = ["Error loading settings from environment:"]
            lines.extend(
                f"  {self._describe_error(error)}"
                for error in error_exception.errors()
            )
            raise CannotLoadConfiguration("\n".join(lines)) from error_exception

    @classmethod
    def _describe_error(cls, error: ErrorDetails) -> str:
        """Name the environment variable a validation error refers to."""
        location = error["loc"]
        if not location:
            return error["msg"]

        delimiter = cls.model_config.get("env_nested_delimiter") or "__"
        field = str(location[0])
        if field in cls.model_fields:
            env_var = f"{cls.model_config.get('env_prefix')}{field}".upper()
        else:
            env_var = field.upper()
        path = delimiter.join([env_var, *(str(part).upper() for part in location[1:])])
        return f"{path}:  {error['msg']}"
