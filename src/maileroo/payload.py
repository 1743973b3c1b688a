"""Turns typed send requests into API payloads."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .attachment import Attachment
from .exceptions import ValidationError
from .models import (
    BasicEmailData,
    BulkEmailData,
    BulkMessage,
    EmailAddress,
    TemplatedEmailData,
    addresses_to_dicts,
)
from .reference_id import ReferenceIDGenerator
from .validators import (
    require_recipients,
    require_subject,
    validate_associative_map,
    validate_reference_id,
    validate_template_data,
)

logger = logging.getLogger(__name__)

MAX_BULK_MESSAGES = 500


def format_timestamp(value: datetime) -> str:
    """Format a datetime as RFC 3339. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _attachments_to_dicts(attachments: List[Attachment]) -> List[Dict[str, Any]]:
    result = []
    for attachment in attachments:
        attachment.validate()
        result.append(attachment.to_dict())
    return result


class PayloadBuilder:
    """Validates send requests and maps them to JSON-able dicts.

    Nothing here touches the network; every error raised is a
    :class:`ValidationError`.
    """

    def __init__(self, reference_ids: Optional[Callable[[], str]] = None):
        """Initialize the builder.

        Args:
            reference_ids: Callable returning a fresh reference id for
                requests that don't carry one
        """
        self.reference_ids = reference_ids or ReferenceIDGenerator()

    def build_basic(self, data: BasicEmailData) -> Dict[str, Any]:
        """Build the payload for ``POST emails``."""
        payload = self._build_base(
            subject=data.subject,
            from_address=data.from_address,
            to=data.to,
            cc=data.cc,
            bcc=data.bcc,
            reply_to=data.reply_to,
            tracking=data.tracking,
            tags=data.tags,
            headers=data.headers,
            attachments=data.attachments,
            scheduled_at=data.scheduled_at,
            reference_id=data.reference_id,
        )

        if data.html is None and data.plain is None:
            raise ValidationError("either html or plain body is required")

        if data.html is not None:
            payload["html"] = data.html
        if data.plain is not None:
            payload["plain"] = data.plain

        return payload

    def build_templated(self, data: TemplatedEmailData) -> Dict[str, Any]:
        """Build the payload for ``POST emails/template``."""
        payload = self._build_base(
            subject=data.subject,
            from_address=data.from_address,
            to=data.to,
            cc=data.cc,
            bcc=data.bcc,
            reply_to=data.reply_to,
            tracking=data.tracking,
            tags=data.tags,
            headers=data.headers,
            attachments=data.attachments,
            scheduled_at=data.scheduled_at,
            reference_id=data.reference_id,
        )

        if data.template_id is None or isinstance(data.template_id, bool):
            raise ValidationError("template_id is required")
        if not isinstance(data.template_id, int):
            raise ValidationError("template_id must be an integer")
        payload["template_id"] = data.template_id

        if data.template_data is not None:
            validate_template_data(data.template_data)
            payload["template_data"] = data.template_data

        return payload

    def build_bulk(self, data: BulkEmailData) -> Dict[str, Any]:
        """Build the payload for ``POST emails/bulk``.

        Tags, headers and attachments are shared by every message and
        appear once at the top level.

        Args:
            data: Bulk request

        Returns:
            Payload dictionary

        Raises:
            ValidationError: If the body mode is missing or ambiguous, the
                message count is outside 1..500, or any message is invalid
        """
        require_subject(data.subject)

        has_html = data.html is not None
        has_plain = data.plain is not None
        has_template = data.template_id is not None

        if not (has_html or has_plain) and not has_template:
            raise ValidationError("you must provide either html, plain, or template_id")

        if has_template and (has_html or has_plain):
            raise ValidationError("template_id cannot be combined with html or plain")

        if has_template and (
            isinstance(data.template_id, bool) or not isinstance(data.template_id, int)
        ):
            raise ValidationError("template_id must be an integer")

        if not data.messages:
            raise ValidationError("messages must be a non-empty array")

        if len(data.messages) > MAX_BULK_MESSAGES:
            raise ValidationError(
                f"messages cannot contain more than {MAX_BULK_MESSAGES} items"
            )

        payload: Dict[str, Any] = {"subject": data.subject}

        if has_html:
            payload["html"] = data.html
        if has_plain:
            payload["plain"] = data.plain
        if has_template:
            payload["template_id"] = data.template_id

        self._add_extras(payload, data.tracking, data.tags, data.headers, data.attachments)

        payload["messages"] = self._build_bulk_messages(data.messages)
        logger.debug(f"Built bulk payload with {len(data.messages)} messages")
        return payload

    def _build_base(
        self,
        subject: str,
        from_address: EmailAddress,
        to: List[EmailAddress],
        cc: List[EmailAddress],
        bcc: List[EmailAddress],
        reply_to: List[EmailAddress],
        tracking: Optional[bool],
        tags: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, Any]],
        attachments: List[Attachment],
        scheduled_at: Optional[datetime],
        reference_id: Optional[str],
    ) -> Dict[str, Any]:
        require_subject(subject)
        require_recipients(to, "to")
        if from_address is None:
            raise ValidationError("field from is required")

        payload: Dict[str, Any] = {
            "subject": subject,
            "from": from_address.to_dict(),
            "to": addresses_to_dicts(to),
        }
        self._add_addresses(payload, cc, bcc, reply_to)
        self._add_extras(payload, tracking, tags, headers, attachments)

        if scheduled_at is not None:
            payload["scheduled_at"] = format_timestamp(scheduled_at)

        payload["reference_id"] = self._reference_id(reference_id)
        return payload

    def _build_bulk_messages(self, messages: List[BulkMessage]) -> List[Dict[str, Any]]:
        result = []

        for i, message in enumerate(messages):
            if not message.to:
                raise ValidationError(f"messages[{i}].to must have at least one recipient")
            if message.from_address is None:
                raise ValidationError(f"messages[{i}].from is required")

            item: Dict[str, Any] = {
                "from": message.from_address.to_dict(),
                "to": addresses_to_dicts(message.to),
            }
            self._add_addresses(item, message.cc, message.bcc, message.reply_to)

            try:
                item["reference_id"] = self._reference_id(message.reference_id)
            except ValidationError as e:
                raise ValidationError(f"messages[{i}].reference_id: {e}", cause=e) from e

            if message.template_data is not None:
                try:
                    validate_template_data(message.template_data)
                except ValidationError as e:
                    raise ValidationError(f"messages[{i}].template_data: {e}", cause=e) from e
                item["template_data"] = message.template_data

            result.append(item)

        return result

    @staticmethod
    def _add_addresses(
        payload: Dict[str, Any],
        cc: List[EmailAddress],
        bcc: List[EmailAddress],
        reply_to: List[EmailAddress],
    ) -> None:
        if cc:
            payload["cc"] = addresses_to_dicts(cc)
        if bcc:
            payload["bcc"] = addresses_to_dicts(bcc)
        if reply_to:
            payload["reply_to"] = addresses_to_dicts(reply_to)

    @staticmethod
    def _add_extras(
        payload: Dict[str, Any],
        tracking: Optional[bool],
        tags: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, Any]],
        attachments: List[Attachment],
    ) -> None:
        if tracking is not None:
            payload["tracking"] = bool(tracking)

        if tags is not None:
            validate_associative_map(tags, "tags")
            payload["tags"] = dict(tags)

        if headers is not None:
            validate_associative_map(headers, "headers")
            payload["headers"] = dict(headers)

        if attachments:
            payload["attachments"] = _attachments_to_dicts(attachments)

    def _reference_id(self, reference_id: Optional[str]) -> str:
        if reference_id is None:
            return self.reference_ids()
        validate_reference_id(reference_id)
        return reference_id
