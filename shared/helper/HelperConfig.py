"""Environment-backed settings for clients and services."""

import logging
import os
from typing import Any, Callable

from shared.exceptions import ConfigurationError


class HelperConfig:
    """Typed access to environment variables plus the shared application logger.

    Keys are upper-cased before lookup. An empty variable counts as unset. A
    getter called with default=None treats the key as mandatory.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _resolve(self, key: str, default: Any, parse: Callable[[str], Any]) -> Any:
        env_key = key.upper()
        raw = (os.getenv(env_key) or "").strip()
        if not raw:
            if default is None:
                raise ConfigurationError(f"Environment variable '{env_key}' is not set.")
            return default
        return parse(raw)

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """
        Raises:
            ConfigurationError: If the key is mandatory and unset.
        """
        return self._resolve(key, default, lambda raw: raw)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Parse an int, or a float when the value contains a dot.

        Raises:
            ConfigurationError: If the key is mandatory and unset, or not numeric.
        """
        def parse(raw: str) -> float | int:
            try:
                return float(raw) if "." in raw else int(raw)
            except ValueError:
                raise ConfigurationError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

        return self._resolve(key, default, parse)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        # "true", "1" and "yes" are truthy, anything else is False
        return self._resolve(key, default, lambda raw: raw.lower() in ("true", "1", "yes"))

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Parse a bracketed list such as "[miscellaneous,finance]".

        Blank elements are skipped.

        Args:
            key (str): Variable name.
            default (list[str] | None): Returned when unset.
            separator (str): Element delimiter.
            element_type (type): Applied to every element.

        Raises:
            ConfigurationError: If the key is mandatory and unset, the brackets
                are missing or an element does not convert.
        """
        def parse(raw: str) -> list:
            if not (raw.startswith("[") and raw.endswith("]")):
                raise ConfigurationError(
                    f"Environment variable '{key.upper()}' must look like '[a{separator}b]', got '{raw}'."
                )
            elements = [element.strip() for element in raw[1:-1].split(separator)]
            try:
                return [element_type(element) for element in elements if element]
            except ValueError as exc:
                raise ConfigurationError(
                    f"Environment variable '{key.upper()}' holds a value that is not {element_type.__name__}: {exc}"
                )

        return self._resolve(key, default, parse)

    def get_logger(self) -> logging.Logger:
        return self._logger
