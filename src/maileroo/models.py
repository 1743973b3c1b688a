"""Data models for the Maileroo client."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .attachment import Attachment
from .exceptions import ValidationError

AssociativeValue = Union[str, bool, int, float]
AssociativeMap = Dict[str, AssociativeValue]
TemplateData = Dict[str, Any]


@dataclass(frozen=True)
class EmailAddress:
    """An email address with an optional display name.

    Both parts are trimmed on construction. A blank address is rejected;
    a blank display name is dropped so it never reaches the wire.
    """

    address: str
    display_name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.address, str) or not self.address.strip():
            raise ValidationError("email address is required")
        object.__setattr__(self, "address", self.address.strip())
        name = (self.display_name or "").strip()
        object.__setattr__(self, "display_name", name or None)

    def to_dict(self) -> Dict[str, str]:
        """Convert to the API representation."""
        if self.display_name is None:
            return {"address": self.address}
        return {"address": self.address, "display_name": self.display_name}


def addresses_to_dicts(addresses: List[EmailAddress]) -> List[Dict[str, str]]:
    """Convert a list of addresses to their API representation."""
    return [address.to_dict() for address in addresses]


@dataclass
class BasicEmailData:
    """A single email with an HTML and/or plain-text body."""

    from_address: EmailAddress
    to: List[EmailAddress]
    subject: str
    cc: List[EmailAddress] = field(default_factory=list)
    bcc: List[EmailAddress] = field(default_factory=list)
    reply_to: List[EmailAddress] = field(default_factory=list)
    html: Optional[str] = None
    plain: Optional[str] = None
    tracking: Optional[bool] = None
    tags: Optional[AssociativeMap] = None
    headers: Optional[AssociativeMap] = None
    attachments: List[Attachment] = field(default_factory=list)
    scheduled_at: Optional[datetime] = None
    reference_id: Optional[str] = None


@dataclass
class TemplatedEmailData:
    """A single email rendered from a provider-hosted template."""

    from_address: EmailAddress
    to: List[EmailAddress]
    subject: str
    template_id: int
    template_data: Optional[TemplateData] = None
    cc: List[EmailAddress] = field(default_factory=list)
    bcc: List[EmailAddress] = field(default_factory=list)
    reply_to: List[EmailAddress] = field(default_factory=list)
    tracking: Optional[bool] = None
    tags: Optional[AssociativeMap] = None
    headers: Optional[AssociativeMap] = None
    attachments: List[Attachment] = field(default_factory=list)
    scheduled_at: Optional[datetime] = None
    reference_id: Optional[str] = None


@dataclass
class BulkMessage:
    """One recipient entry of a bulk send."""

    from_address: EmailAddress
    to: List[EmailAddress]
    cc: List[EmailAddress] = field(default_factory=list)
    bcc: List[EmailAddress] = field(default_factory=list)
    reply_to: List[EmailAddress] = field(default_factory=list)
    reference_id: Optional[str] = None
    template_data: Optional[TemplateData] = None


@dataclass
class BulkEmailData:
    """A bulk send: shared subject and body, per-recipient messages."""

    subject: str
    messages: List[BulkMessage]
    html: Optional[str] = None
    plain: Optional[str] = None
    template_id: Optional[int] = None
    tracking: Optional[bool] = None
    tags: Optional[AssociativeMap] = None
    headers: Optional[AssociativeMap] = None
    attachments: List[Attachment] = field(default_factory=list)


class ApiEnvelope(BaseModel):
    """The ``{success, message, data}`` wrapper every response uses."""

    model_config = ConfigDict(extra="ignore")

    success: Optional[bool] = None
    message: Optional[str] = None
    data: Optional[Any] = None

    @field_validator("message", mode="before")
    @classmethod
    def _message_as_text(cls, value):
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value, default=str)


class ScheduledEmailsResponse(BaseModel):
    """One page of scheduled emails.

    ``results`` is passed through untouched.
    """

    model_config = ConfigDict(extra="ignore")

    page: int = 0
    per_page: int = 0
    total_count: int = 0
    total_pages: int = 0
    results: List[Any] = Field(default_factory=list)

    @field_validator("results", mode="before")
    @classmethod
    def _null_results(cls, value):
        return [] if value is None else value
