"""Unified exception hierarchy for the web-to-markdown pipeline."""


class Web2MdError(Exception):
    """Base exception for all pipeline errors."""

    pass


class ValidationError(Web2MdError):
    """Raised for bad or unsafe input (URL, options). Never retried."""

    pass


class FetchError(Web2MdError):
    """Raised when raw HTML could not be retrieved (network, timeout, proxy)."""

    pass


class ConversionError(Web2MdError):
    """Raised when a single converter stage fails.

    Only advances the converter chain; never surfaced to the caller directly.
    """

    pass
