"""Typed access to the environment variables that configure the ingestion bridge."""

import logging
import os

TRUE_VALUES = ("true", "1", "yes", "on")


class HelperConfig:
    """Reads settings from the environment.

    Keys are case-insensitive (they are upper-cased before lookup) and an empty
    value counts as unset. A default of None makes the setting mandatory.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @staticmethod
    def _read(key: str, default):
        """Return (KEY, raw value) with surrounding whitespace stripped, or raise if unset without default."""
        key = key.upper()
        raw = (os.getenv(key) or "").strip()
        if not raw and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return key, raw or None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string setting.

        Raises:
            ValueError: If the variable is unset and no default is given.
        """
        _, raw = self._read(key, default)
        return raw if raw is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a number; values with a decimal point become float, all others int.

        Raises:
            ValueError: If the variable is unset without default, or not a number.
        """
        key, raw = self._read(key, default)
        if raw is None:
            return default
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a flag. true, 1, yes and on (any case) are True, everything else False.

        Raises:
            ValueError: If the variable is unset and no default is given.
        """
        _, raw = self._read(key, default)
        if raw is None:
            return default
        return raw.lower() in TRUE_VALUES

    def get_choice_val(self, key: str, choices: list[str], default: str | None = None) -> str:
        """Read a setting restricted to a fixed set of lowercase values.

        Args:
            key (str): Environment variable name.
            choices (list[str]): Allowed values.
            default (str | None): Fallback if unset.

        Returns:
            str: The value, lowercased.

        Raises:
            ValueError: If the variable is unset without default, or not one of the choices.
        """
        val = self.get_string_val(key, default=default).lower()
        if val not in choices:
            raise ValueError(
                f"Environment variable '{key.upper()}' must be one of {choices}. Got: '{val}'"
            )
        return val

    def get_logger(self) -> logging.Logger:
        return self._logger
