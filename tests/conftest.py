"""Shared test fixtures."""

import itertools
from unittest.mock import Mock

import pytest
import requests

from maileroo.client import MailerooClient
from maileroo.config import load_settings
from maileroo.models import EmailAddress


def make_response(body=None, status_code=200, invalid_json=False):
    """Build a fake requests response."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    if invalid_json:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def response_factory():
    """Factory for fake responses."""
    return make_response


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test load settings afresh."""
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def reference_ids():
    """Deterministic reference id source."""
    counter = itertools.count(1)
    return lambda: f"{next(counter):024x}"


@pytest.fixture
def session():
    """Mock HTTP session returning a successful send by default."""
    session = Mock(spec=requests.Session)
    session.request.return_value = make_response(
        {"success": True, "message": "The email has been queued.", "data": {"reference_id": "a" * 24}}
    )
    return session


@pytest.fixture
def client(session, reference_ids):
    """Client wired to the mock session."""
    return MailerooClient("test-api-key", 15, session=session, reference_ids=reference_ids)


@pytest.fixture
def sender():
    """Default sender address."""
    return EmailAddress("sender@example.com", "Sender")


@pytest.fixture
def recipient():
    """Default recipient address."""
    return EmailAddress("a@b.com")
