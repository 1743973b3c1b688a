"""Custom exceptions for the Maileroo client."""

from typing import Optional


class MailerooError(Exception):
    """Base exception for all Maileroo client errors."""

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}


class ValidationError(MailerooError):
    """Raised when a request fails local validation."""

    pass


class AttachmentError(ValidationError):
    """Raised when an attachment cannot be built or is invalid."""

    pass


class ConfigurationError(MailerooError):
    """Raised when configuration is invalid or missing."""

    pass


class ProviderError(MailerooError):
    """Raised when there's an error talking to the Maileroo API."""

    pass


class TransportError(ProviderError):
    """Raised when the request fails on the wire or the response can't be decoded."""

    pass


class APIError(ProviderError):
    """Raised when the API answers with ``success: false``."""

    def __init__(
        self,
        api_message: str,
        status_code: Optional[int] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(f"the API returned an error: {api_message}", context=context)
        self.api_message = api_message
        self.status_code = status_code
