"""Configuration errors."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """An environment variable holds a value this project cannot use."""

    def __init__(self, variable: str, value: str) -> None:
        super().__init__(f"Invalid value for {variable}: {value!r}")
        self.variable = variable
        self.value = value
