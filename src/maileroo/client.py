"""HTTP client for the Maileroo sending API."""

import json
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .exceptions import APIError, TransportError, ValidationError
from .models import (
    ApiEnvelope,
    BasicEmailData,
    BulkEmailData,
    ScheduledEmailsResponse,
    TemplatedEmailData,
)
from .payload import PayloadBuilder
from .reference_id import ReferenceIDGenerator
from .validators import validate_reference_id

logger = logging.getLogger(__name__)

API_BASE_URL = "https://smtp.maileroo.com/api/v2/"
DEFAULT_TIMEOUT = 30
MAX_PER_PAGE = 100
USER_AGENT = f"maileroo-python-sdk/{__version__}"


class MailerooClient:
    """Client for the Maileroo email API.

    Every operation is a single HTTP call. The client keeps only its
    configuration between calls and performs no retries.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        base_url: str = API_BASE_URL,
        session: Optional[requests.Session] = None,
        reference_ids: Optional[Callable[[], str]] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Maileroo sending key
            timeout: Default per-request timeout in seconds
            base_url: API root, ending in ``/api/v2/``
            session: Optional requests session to send through
            reference_ids: Callable producing reference ids for requests
                that don't carry one

        Raises:
            ValidationError: If the API key is blank or the timeout isn't positive
        """
        if not isinstance(api_key, str) or not api_key.strip():
            raise ValidationError("API key must be a non-empty string")

        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValidationError("timeout must be a positive number")

        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url.rstrip("/") + "/"
        self.reference_ids = reference_ids or ReferenceIDGenerator()
        self.payloads = PayloadBuilder(self.reference_ids)
        self._owns_session = session is None
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "MailerooClient":
        """Create a client from loaded :class:`~maileroo.config.Settings`."""
        return cls(
            settings.api_key or "",
            settings.timeout,
            base_url=settings.base_url,
            session=session,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session:
            self.session.close()

    def get_reference_id(self) -> str:
        """Return a fresh reference id, e.g. to pre-assign bulk message ids."""
        return self.reference_ids()

    def send_basic_email(self, data: BasicEmailData, timeout: Optional[float] = None) -> str:
        """Send a single email with an HTML and/or plain-text body.

        Args:
            data: Email to send
            timeout: Deadline for this call, overriding the client default

        Returns:
            The reference id assigned to the email
        """
        payload = self.payloads.build_basic(data)
        envelope = self._request("POST", "emails", payload, timeout)
        return self._extract(envelope, "reference_id")

    def send_templated_email(
        self, data: TemplatedEmailData, timeout: Optional[float] = None
    ) -> str:
        """Send a single email rendered from a stored template.

        Returns:
            The reference id assigned to the email
        """
        payload = self.payloads.build_templated(data)
        envelope = self._request("POST", "emails/template", payload, timeout)
        return self._extract(envelope, "reference_id")

    def send_bulk_emails(
        self, data: BulkEmailData, timeout: Optional[float] = None
    ) -> List[str]:
        """Send up to 500 messages sharing one subject and body.

        Returns:
            Reference ids of the accepted messages, in input order
        """
        payload = self.payloads.build_bulk(data)
        envelope = self._request("POST", "emails/bulk", payload, timeout)
        reference_ids = self._extract(envelope, "reference_ids")
        if not isinstance(reference_ids, list):
            raise TransportError("the API response has a malformed reference_ids list")
        return reference_ids

    def get_scheduled_emails(
        self, page: int = 1, per_page: int = 10, timeout: Optional[float] = None
    ) -> ScheduledEmailsResponse:
        """List emails waiting to be sent.

        Args:
            page: 1-based page number
            per_page: Page size, 1 to 100
            timeout: Deadline for this call

        Returns:
            One page of scheduled emails

        Raises:
            ValidationError: If page or per_page is out of range
        """
        if not isinstance(page, int) or page < 1:
            raise ValidationError("page must be a positive integer (>= 1)")

        if not isinstance(per_page, int) or per_page < 1:
            raise ValidationError("per_page must be a positive integer (>= 1)")

        if per_page > MAX_PER_PAGE:
            raise ValidationError(f"per_page cannot be greater than {MAX_PER_PAGE}")

        envelope = self._request(
            "GET",
            "emails/scheduled",
            timeout=timeout,
            params={"page": page, "per_page": per_page},
        )

        if not isinstance(envelope.data, dict):
            raise TransportError("the API response is missing the scheduled email listing")

        try:
            return ScheduledEmailsResponse.model_validate(envelope.data)
        except PydanticValidationError as e:
            raise TransportError(
                f"the API response has a malformed scheduled email listing: {e}", cause=e
            ) from e

    def delete_scheduled_email(self, reference_id: str, timeout: Optional[float] = None) -> None:
        """Cancel a scheduled email.

        Raises:
            ValidationError: If the reference id is malformed
        """
        validate_reference_id(reference_id)
        self._request("DELETE", f"emails/scheduled/{quote(reference_id)}", timeout=timeout)
        logger.info(f"Deleted scheduled email {reference_id}")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiEnvelope:
        """Send one request and decode the response envelope.

        Raises:
            ValidationError: If the payload can't be encoded as JSON
            TransportError: On network failure or an undecodable body
            APIError: If the envelope reports ``success: false``
        """
        url = self.base_url + endpoint.lstrip("/")
        logger.debug(f"{method} {url}")

        body = None
        if payload is not None and method != "GET":
            try:
                body = json.dumps(payload)
            except (TypeError, ValueError) as e:
                raise ValidationError(f"failed to encode request body: {e}", cause=e) from e

        try:
            response = self.session.request(
                method,
                url,
                data=body,
                params=params,
                headers=self._headers(),
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(
                f"HTTP request failed: {e}", cause=e, context={"method": method, "url": url}
            ) from e

        try:
            result = response.json()
        except ValueError as e:
            raise TransportError(
                f"the API response is not valid JSON (status {response.status_code})",
                cause=e,
                context={"method": method, "url": url, "status_code": response.status_code},
            ) from e

        if not isinstance(result, dict):
            raise TransportError(
                f"the API response is not a JSON object (status {response.status_code})",
                context={"method": method, "url": url, "status_code": response.status_code},
            )

        try:
            envelope = ApiEnvelope.model_validate(result)
        except PydanticValidationError as e:
            raise TransportError(
                f"the API response envelope is malformed: {e}", cause=e
            ) from e

        if not envelope.success:
            api_message = envelope.message or "Unknown"
            logger.warning(
                f"{method} {endpoint} rejected (status {response.status_code}): {api_message}"
            )
            raise APIError(
                api_message,
                status_code=response.status_code,
                context={"method": method, "url": url},
            )

        return envelope

    @staticmethod
    def _extract(envelope: ApiEnvelope, key: str) -> Any:
        if not isinstance(envelope.data, dict) or key not in envelope.data:
            raise TransportError(f"the API response is missing data.{key}")
        return envelope.data[key]
