from __future__ import annotations

from typing import Optional


class SmartFridgeError(Exception):
    """Base class for errors shown to the user as a single message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(SmartFridgeError):
    """Settings are incomplete or there is nothing to cook with."""


class ProviderError(SmartFridgeError):
    """The text generation provider could not produce usable output."""


class ProviderConnectionError(ProviderError):
    """Non-success HTTP status, or no response at all (``status_code`` is ``None``)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResponseError(ProviderError):
    """The provider answered successfully but returned no text."""


class ParseError(SmartFridgeError):
    """Model output could not be turned into a list of recipes."""

    def __init__(self, message: str, raw_text: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text
        self.cause = cause


class FolderError(SmartFridgeError):
    """Rejected folder operation."""


__all__ = [
    "ConfigurationError",
    "EmptyResponseError",
    "FolderError",
    "ParseError",
    "ProviderConnectionError",
    "ProviderError",
    "SmartFridgeError",
]
