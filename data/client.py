"""
Backend Client Module for the Marketplace Client

This module handles all communication with the backend-as-a-service that owns
persistence, authentication, file storage and e-mail delivery. It provides
entity CRUD over named collections, the current-user session helpers and the
Core integrations, all over a single requests.Session.
"""

import json
import logging
from typing import Optional, List, Dict, Any

import requests

from config import settings
from data.protocols import Query, Record, FileLike
from utils.exceptions import RemoteCallError, AuthenticationError, NotFoundError
from utils.helpers import create_page_url

logger = logging.getLogger(__name__)

KNOWN_ENTITIES = ("Ad", "User", "Conversation", "Message", "Favorite", "Review", "Community")


class EntityCollectionClient:
    """CRUD operations over one named backend collection."""

    def __init__(self, client: "BaaSClient", name: str):
        self.client = client
        self.name = name

    def _path(self, record_id: Optional[str] = None) -> str:
        path = f"entities/{self.name}"
        if record_id is not None:
            path += f"/{record_id}"
        return path

    def filter(self, query: Optional[Query] = None, sort: Optional[str] = None,
               limit: Optional[int] = None) -> List[Record]:
        """
        List records matching a predicate.

        Args:
            query: Exact-match predicate, optionally with "$or".
            sort: Field to sort by; a leading '-' means descending.
            limit: Maximum number of records.

        Returns:
            List[Record]: The matching records (empty when none match).
        """
        params: Dict[str, Any] = {}
        if query:
            params["q"] = json.dumps(query, default=str)
        if sort:
            params["sort_by"] = sort
        if limit:
            params["limit"] = limit

        result = self.client.request("GET", self._path(), params=params)
        return list(result or [])

    def get(self, record_id: str) -> Record:
        """
        Fetch one record by id.

        Raises:
            NotFoundError: If no record has the given id.
        """
        records = self.filter({"id": record_id})
        if not records:
            raise NotFoundError(f"{self.name} {record_id} not found")
        return records[0]

    def create(self, data: Record) -> Record:
        record = self.client.request("POST", self._path(), json=data)
        logger.debug(f"Created {self.name} {record.get('id') if record else None}")
        return record

    def update(self, record_id: str, data: Record) -> Record:
        return self.client.request("PUT", self._path(record_id), json=data)

    def delete(self, record_id: str) -> None:
        self.client.request("DELETE", self._path(record_id))
        logger.debug(f"Deleted {self.name} {record_id}")


class EntityRegistry:
    """Attribute access to collections: registry.Ad, registry.Conversation, ..."""

    def __init__(self, client: "BaaSClient"):
        self._client = client
        self._collections: Dict[str, EntityCollectionClient] = {}

    def __getattr__(self, name: str) -> EntityCollectionClient:
        if name not in KNOWN_ENTITIES:
            raise AttributeError(f"Unknown entity collection: {name}")
        if name not in self._collections:
            self._collections[name] = EntityCollectionClient(self._client, name)
        return self._collections[name]


class AuthClient:
    """Session and current-user operations."""

    def __init__(self, client: "BaaSClient"):
        self.client = client

    def is_authenticated(self) -> bool:
        if not self.client.access_token:
            return False
        try:
            self.me()
            return True
        except AuthenticationError:
            return False

    def me(self) -> Record:
        if not self.client.access_token:
            raise AuthenticationError("No active session")
        return self.client.request("GET", "entities/User/me")

    def update_me(self, data: Record) -> Record:
        if not self.client.access_token:
            raise AuthenticationError("No active session")
        return self.client.request("PUT", "entities/User/me", json=data)

    def logout(self, redirect_url: Optional[str] = None) -> None:
        """Forget the bearer token; the backend session simply expires."""
        self.client.access_token = None
        logger.info("Logged out")

    def redirect_to_login(self, return_url: Optional[str] = None) -> str:
        return create_page_url(self.client.app_base_url, "login", from_url=return_url)


class CoreIntegrationsClient:
    """File upload and e-mail delivery."""

    def __init__(self, client: "BaaSClient"):
        self.client = client

    def upload_file(self, file: FileLike) -> str:
        """
        Upload a file and return its public URL.

        Args:
            file: A path, raw bytes or an open binary file.

        Returns:
            str: The URL of the stored file.
        """
        if isinstance(file, str):
            with open(file, "rb") as fh:
                result = self.client.request("POST", "integration-endpoints/Core/UploadFile",
                                             files={"file": fh})
        else:
            result = self.client.request("POST", "integration-endpoints/Core/UploadFile",
                                         files={"file": file})

        file_url = (result or {}).get("file_url")
        if not file_url:
            raise RemoteCallError("Upload response did not include a file_url")
        return file_url

    def send_email(self, to: str, subject: str, body: str) -> None:
        self.client.request("POST", "integration-endpoints/Core/SendEmail",
                            json={"to": to, "subject": subject, "body": body})
        logger.info(f"E-mail sent to {to}: {subject}")


class BaaSClient:
    """HTTP client for the backend-as-a-service."""

    def __init__(self, base_url: Optional[str] = None, app_id: Optional[str] = None,
                 access_token: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[int] = None, app_base_url: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Every argument defaults to the matching value in config.settings.

        Args:
            base_url: Root URL of the backend API.
            app_id: Application id on the backend.
            access_token: Bearer token of the signed-in user.
            api_key: Application key sent with every request.
            timeout: Seconds per HTTP call.
            app_base_url: Public URL of the web app (login redirects).
            session: requests.Session to use (injected in tests).
        """
        self.base_url = (base_url if base_url is not None else settings.BAAS_BASE_URL).rstrip("/")
        self.app_id = app_id if app_id is not None else settings.BAAS_APP_ID
        self.access_token = access_token if access_token is not None else settings.BAAS_ACCESS_TOKEN
        self.api_key = api_key if api_key is not None else settings.BAAS_API_KEY
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.app_base_url = app_base_url if app_base_url is not None else settings.APP_BASE_URL
        self.session = session or requests.Session()

        self.entities = EntityRegistry(self)
        self.auth = AuthClient(self)
        self.integrations = CoreIntegrationsClient(self)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.api_key:
            headers["api_key"] = self.api_key
        return headers

    def request(self, method: str, path: str, **kwargs) -> Any:
        """
        Perform one API call and decode the JSON body.

        Args:
            method: HTTP method.
            path: Path below /apps/{app_id}/.
            **kwargs: Passed through to requests (params, json, files).

        Returns:
            The decoded JSON body, or None for empty responses.

        Raises:
            AuthenticationError: On HTTP 401/403.
            NotFoundError: On HTTP 404.
            RemoteCallError: On any other HTTP error or transport failure.
        """
        url = f"{self.base_url}/apps/{self.app_id}/{path}"
        try:
            response = self.session.request(method, url, headers=self._headers(),
                                            timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise RemoteCallError(f"{method} {path} failed: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(f"{method} {path} rejected with HTTP {status}")
        if status == 404:
            raise NotFoundError(f"{method} {path} returned HTTP 404")
        if status >= 400:
            logger.error(f"{method} {path} returned HTTP {status}")
            raise RemoteCallError(f"{method} {path} returned HTTP {status}", status_code=status)

        if status == 204:
            return None
        try:
            return response.json()
        except ValueError:
            return None


# Create a default client instance for use throughout the application
baas = BaaSClient()
