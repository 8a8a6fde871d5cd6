"""
Shared Test Fixtures for the Marketplace Client

This module provides common fixtures used across all test modules.
Fixtures include an in-memory backend implementing the facade protocols,
a fixed clock, record factories, logging capture and mocked HTTP responses.
"""

import pytest
from unittest.mock import MagicMock
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List
import copy
import itertools
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.exceptions import NotFoundError, AuthenticationError
from utils.helpers import to_iso


NOW = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# In-Memory Backend
# =============================================================================

def _matches(record: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    if not query:
        return True
    for key, expected in query.items():
        if key == "$or":
            if not any(_matches(record, sub) for sub in expected):
                return False
        elif record.get(key) != expected:
            return False
    return True


class InMemoryCollection:
    """
    Dict-backed implementation of the EntityCollection protocol.

    Supports exact-match predicates with "$or", '-field' sorting and limits.
    Any method can be made to fail with fail(method, exception).
    """

    def __init__(self, name: str, clock=lambda: NOW):
        self.name = name
        self.clock = clock
        self.records: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self._ids = itertools.count(1)
        self._failures: Dict[str, Exception] = {}

    def fail(self, method: str, error: Exception) -> None:
        self._failures[method] = error

    def heal(self, method: Optional[str] = None) -> None:
        if method is None:
            self._failures.clear()
        else:
            self._failures.pop(method, None)

    def _check(self, method: str) -> None:
        if method in self._failures:
            raise self._failures[method]

    def seed(self, *records: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Store records as-is, without recording calls."""
        stored = []
        for record in records:
            record = copy.deepcopy(record)
            record.setdefault("id", f"{self.name.lower()}-{next(self._ids)}")
            self.records[record["id"]] = record
            stored.append(copy.deepcopy(record))
        return stored

    def filter(self, query=None, sort=None, limit=None):
        self.calls.append(("filter", query, sort, limit))
        self._check("filter")
        items = [copy.deepcopy(r) for r in self.records.values() if _matches(r, query)]
        if sort:
            field = sort.lstrip("-")
            items.sort(key=lambda r: (r.get(field) is not None, r.get(field) or 0),
                       reverse=sort.startswith("-"))
        if limit:
            items = items[:limit]
        return items

    def get(self, record_id):
        self.calls.append(("get", record_id))
        self._check("get")
        if record_id not in self.records:
            raise NotFoundError(f"{self.name} {record_id} not found")
        return copy.deepcopy(self.records[record_id])

    def create(self, data):
        self.calls.append(("create", copy.deepcopy(data)))
        self._check("create")
        record = copy.deepcopy(data)
        record["id"] = f"{self.name.lower()}-{next(self._ids)}"
        record.setdefault("created_date", to_iso(self.clock()))
        self.records[record["id"]] = record
        return copy.deepcopy(record)

    def update(self, record_id, data):
        self.calls.append(("update", record_id, copy.deepcopy(data)))
        self._check("update")
        if record_id not in self.records:
            raise NotFoundError(f"{self.name} {record_id} not found")
        self.records[record_id].update(copy.deepcopy(data))
        return copy.deepcopy(self.records[record_id])

    def delete(self, record_id):
        self.calls.append(("delete", record_id))
        self._check("delete")
        self.records.pop(record_id, None)

    def writes(self, method: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == method]


class InMemoryEntities:
    """Attribute access to in-memory collections (entities.Ad, ...)."""

    def __init__(self, clock):
        self._clock = clock
        self._collections: Dict[str, InMemoryCollection] = {}

    def __getattr__(self, name: str) -> InMemoryCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        if name not in self._collections:
            self._collections[name] = InMemoryCollection(name, self._clock)
        return self._collections[name]


class InMemoryAuth:
    """AuthAPI backed by the User collection of the in-memory entities."""

    def __init__(self, entities: InMemoryEntities):
        self.entities = entities
        self.user_id: Optional[str] = None
        self.logged_out = False
        self.updates: List[Dict[str, Any]] = []
        self._failures: Dict[str, Exception] = {}

    def fail(self, method: str, error: Exception) -> None:
        self._failures[method] = error

    def heal(self) -> None:
        self._failures.clear()

    def _check(self, method: str) -> None:
        if method in self._failures:
            raise self._failures[method]

    def sign_in(self, record: Dict[str, Any]) -> Dict[str, Any]:
        stored = self.entities.User.seed(record)[0]
        self.user_id = stored["id"]
        self.logged_out = False
        return stored

    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def me(self):
        self._check("me")
        if self.user_id is None:
            raise AuthenticationError("No active session")
        return copy.deepcopy(self.entities.User.records[self.user_id])

    def update_me(self, data):
        self.updates.append(copy.deepcopy(data))
        self._check("update_me")
        if self.user_id is None:
            raise AuthenticationError("No active session")
        self.entities.User.records[self.user_id].update(copy.deepcopy(data))
        return copy.deepcopy(self.entities.User.records[self.user_id])

    def logout(self, redirect_url=None):
        self.user_id = None
        self.logged_out = True

    def redirect_to_login(self, return_url=None):
        return f"https://app.test/login?from_url={return_url}" if return_url else "https://app.test/login"


class InMemoryIntegrations:
    """CoreIntegrations that keeps uploads and e-mails in lists."""

    def __init__(self):
        self.uploads: List[Any] = []
        self.emails: List[Dict[str, str]] = []
        self._failures: Dict[str, Exception] = {}

    def fail(self, method: str, error: Exception) -> None:
        self._failures[method] = error

    def upload_file(self, file):
        if "upload_file" in self._failures:
            raise self._failures["upload_file"]
        self.uploads.append(file)
        return f"https://files.test/{len(self.uploads)}.jpg"

    def send_email(self, to, subject, body):
        if "send_email" in self._failures:
            raise self._failures["send_email"]
        self.emails.append({"to": to, "subject": subject, "body": body})


class InMemoryFacade:
    """In-memory EntityAccessFacade for service tests."""

    def __init__(self, clock=lambda: NOW):
        self.entities = InMemoryEntities(clock)
        self.auth = InMemoryAuth(self.entities)
        self.integrations = InMemoryIntegrations()


# =============================================================================
# Clock Fixtures
# =============================================================================

@pytest.fixture
def now():
    """The fixed current time used by every service under test."""
    return NOW


@pytest.fixture
def clock():
    """A clock callable returning the fixed current time."""
    return lambda: NOW


# =============================================================================
# Backend Fixtures
# =============================================================================

@pytest.fixture
def facade():
    """A fresh in-memory backend."""
    return InMemoryFacade()


@pytest.fixture
def session(facade):
    """An anonymous session on the in-memory backend."""
    from services.session import Session
    return Session(facade.auth)


@pytest.fixture
def signed_in(facade, session, user_record_factory):
    """
    Sign a user in and load the session.

    Returns:
        User: The signed-in user.
    """
    facade.auth.sign_in(user_record_factory(id="user-1", full_name="Ana Souza",
                                            email="ana@example.com"))
    return session.init()


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    original_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    yield handler.records

    root_logger.removeHandler(handler)
    root_logger.setLevel(original_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(status_code=200, json_data=[{'id': 'ad-1'}])

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            json_data: Value to return from response.json().
            headers: Response headers dictionary.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.headers = headers or {'Content-Type': 'application/json'}
        mock_response.ok = 200 <= status_code < 300

        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        return mock_response

    return _create_response


@pytest.fixture
def mock_requests_session(mock_http_response):
    """
    A MagicMock standing in for requests.Session.

    Usage:
        def test_api_call(mock_requests_session):
            mock_requests_session.request.return_value = mock_requests_session.response(json_data=[])

    Returns:
        MagicMock: The mock session with the response factory attached.
    """
    mock_session = MagicMock()
    mock_session.response = mock_http_response
    mock_session.request.return_value = mock_http_response(json_data=[])
    return mock_session


# =============================================================================
# Record Factories
# =============================================================================

@pytest.fixture
def ad_record_factory():
    """
    Factory fixture for creating raw Ad records as the backend returns them.

    Usage:
        def test_feed(ad_record_factory):
            record = ad_record_factory(title='iPhone 15', price=4000)

    Returns:
        callable: A factory function for creating ad records.
    """
    counter = itertools.count(1)

    def _create_ad(age: Optional[timedelta] = timedelta(hours=1), **overrides) -> Dict[str, Any]:
        """
        Create an ad record for testing.

        Args:
            age: How long before NOW the ad was created; None leaves created_date empty.
            **overrides: Field values replacing the defaults.

        Returns:
            dict: An ad record.
        """
        n = next(counter)
        record = {
            "id": f"ad-{n}",
            "title": f"Anúncio {n}",
            "description": "Em ótimo estado",
            "price": 100,
            "category": "eletronicos",
            "location_city": "Campinas",
            "location_neighborhood": "Barão Geraldo",
            "images": [f"https://files.test/ad-{n}.jpg"],
            "seller_id": "seller-1",
            "seller_name": "Bruno Lima",
            "seller_photo": None,
            "status": "active",
            "views_count": 0,
            "saves_count": 0,
            "chat_clicks": 0,
            "is_boosted": False,
            "boost_expires_at": None,
            "boost_package": None,
            "community_id": "comm-1",
            "created_date": to_iso(NOW - age) if age is not None else None,
        }
        record.update(overrides)
        return record

    return _create_ad


@pytest.fixture
def ad_factory(ad_record_factory):
    """Factory fixture returning Ad model instances."""
    from data.models import Ad

    def _create(**overrides):
        return Ad.from_record(ad_record_factory(**overrides))

    return _create


@pytest.fixture
def user_record_factory():
    """
    Factory fixture for creating raw User records.

    Returns:
        callable: A factory function for creating user records.
    """
    def _create_user(**overrides) -> Dict[str, Any]:
        record = {
            "id": "user-1",
            "full_name": "Ana Souza",
            "email": "ana@example.com",
            "profile_photo": None,
            "current_community_id": "comm-1",
            "communities": ["comm-1"],
        }
        record.update(overrides)
        return record

    return _create_user


@pytest.fixture
def conversation_record_factory():
    """Factory fixture for creating raw Conversation records."""
    counter = itertools.count(1)

    def _create_conversation(**overrides) -> Dict[str, Any]:
        n = next(counter)
        record = {
            "id": f"conv-{n}",
            "ad_id": f"ad-{n}",
            "ad_title": f"Anúncio {n}",
            "buyer_id": "user-1",
            "buyer_name": "Ana Souza",
            "seller_id": "seller-1",
            "seller_name": "Bruno Lima",
            "last_message": "",
            "last_message_at": to_iso(NOW - timedelta(hours=n)),
            "unread_buyer": 0,
            "unread_seller": 0,
        }
        record.update(overrides)
        return record

    return _create_conversation
