"""Python client for the Maileroo email sending API."""

__version__ = "0.1.0"

from .exceptions import (
    MailerooError,
    ValidationError,
    AttachmentError,
    ConfigurationError,
    ProviderError,
    TransportError,
    APIError,
)
from .attachment import Attachment
from .models import (
    EmailAddress,
    BasicEmailData,
    TemplatedEmailData,
    BulkMessage,
    BulkEmailData,
    ScheduledEmailsResponse,
)
from .reference_id import ReferenceIDGenerator, generate_reference_id
from .payload import PayloadBuilder
from .client import MailerooClient
from .config import Settings, load_settings

__all__ = [
    "MailerooError",
    "ValidationError",
    "AttachmentError",
    "ConfigurationError",
    "ProviderError",
    "TransportError",
    "APIError",
    "Attachment",
    "EmailAddress",
    "BasicEmailData",
    "TemplatedEmailData",
    "BulkMessage",
    "BulkEmailData",
    "ScheduledEmailsResponse",
    "ReferenceIDGenerator",
    "generate_reference_id",
    "PayloadBuilder",
    "MailerooClient",
    "Settings",
    "load_settings",
]
