"""Environment backed settings for services, clients and the runner."""

import logging
import os
from typing import Any, Callable

_TRUTHY = ("true", "1", "yes", "on")
_FALSY = ("false", "0", "no", "off")


class HelperConfig:
    """Reads settings from environment variables.

    Keys are case-insensitive and an empty value counts as unset. Every getter
    raises ``ValueError`` when a key is unset and no default was given.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    ##########################################
    ################# READERS ################
    ##########################################

    def _read(self, key: str, default: Any, parse: Callable[[str, str], Any]) -> Any:
        name = key.upper()
        raw = (os.getenv(name) or "").strip()
        if not raw:
            if default is None:
                raise ValueError(f"Environment variable '{name}' is not set.")
            return default
        return parse(name, raw)

    def get_string_val(self, key: str, default: str | None = None) -> str:
        return self._read(key, default, lambda name, raw: raw)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Integers stay integers, anything with a decimal point becomes a float."""

        def parse(name: str, raw: str) -> float | int:
            try:
                return float(raw) if "." in raw else int(raw)
            except ValueError:
                raise ValueError(f"Environment variable '{name}' is not a valid number: '{raw}'.")

        return self._read(key, default, parse)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        def parse(name: str, raw: str) -> bool:
            lowered = raw.lower()
            if lowered in _TRUTHY:
                return True
            if lowered in _FALSY:
                return False
            self._logger.warning("Environment variable '%s' has unrecognised boolean value '%s', treating as false", name, raw)
            return False

        return self._read(key, default, parse)

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as ``[team-a,team-b]``.

        Args:
            key (str): Environment variable name.
            default (list | None): Returned when the variable is unset.
            separator (str): Element delimiter inside the brackets.
            element_type (type): Callable applied to every element.

        Returns:
            list: The parsed elements, blanks removed.
        """

        def parse(name: str, raw: str) -> list:
            if not (raw.startswith("[") and raw.endswith("]")):
                raise ValueError(f"Environment variable '{name}' must look like '[a{separator}b]'. Got: '{raw}'")
            items = [item.strip() for item in raw[1:-1].split(separator) if item.strip()]
            try:
                return [element_type(item) for item in items]
            except ValueError as e:
                raise ValueError(f"Environment variable '{name}' holds an element that is not {element_type.__name__}: {e}")

        return self._read(key, default, parse)

    def get_logger(self) -> logging.Logger:
        return self._logger
