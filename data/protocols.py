"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for the backend service the
client consumes. These protocols enable dependency injection for remote
operations, making services testable without a real backend.

Protocols defined:
- EntityCollection: CRUD over one named collection (Ad, User, Conversation, ...)
- AuthAPI: Session and current-user operations
- CoreIntegrations: File upload and e-mail delivery
- EntityAccessFacade: The aggregate the services are built on
"""

from typing import Protocol, Optional, List, Dict, Any, BinaryIO, Union


# Predicates are plain dictionaries of exact-match fields. A "$or" key holds a
# list of sub-predicates, any of which may match.
Query = Dict[str, Any]
Record = Dict[str, Any]
FileLike = Union[str, bytes, BinaryIO]


class EntityCollection(Protocol):
    """Protocol defining CRUD operations over one backend collection.

    Implementations should provide methods for:
    - Listing records that match a predicate, with optional sort and limit
    - Creating, updating and deleting single records
    """

    def filter(self, query: Optional[Query] = None, sort: Optional[str] = None,
               limit: Optional[int] = None) -> List[Record]:
        """List records matching a predicate.

        Args:
            query: Exact-match predicate, optionally with "$or".
            sort: Field name to sort by; a leading '-' means descending.
            limit: Maximum number of records to return.

        Returns:
            The matching records.
        """
        ...

    def get(self, record_id: str) -> Record:
        """Fetch one record by id.

        Raises:
            NotFoundError: If no record has the given id.
        """
        ...

    def create(self, data: Record) -> Record:
        """Create a record and return it as stored."""
        ...

    def update(self, record_id: str, data: Record) -> Record:
        """Apply a partial update and return the stored record."""
        ...

    def delete(self, record_id: str) -> None:
        """Delete a record."""
        ...


class AuthAPI(Protocol):
    """Protocol defining the session operations of the backend."""

    def is_authenticated(self) -> bool:
        """Whether the current credentials identify a user."""
        ...

    def me(self) -> Record:
        """Return the current user record.

        Raises:
            AuthenticationError: If there is no valid session.
        """
        ...

    def update_me(self, data: Record) -> Record:
        """Apply a partial update to the current user and return it."""
        ...

    def logout(self, redirect_url: Optional[str] = None) -> None:
        """End the current session."""
        ...

    def redirect_to_login(self, return_url: Optional[str] = None) -> str:
        """Return the login URL that brings the user back to return_url."""
        ...


class CoreIntegrations(Protocol):
    """Protocol defining the integration helpers of the backend."""

    def upload_file(self, file: FileLike) -> str:
        """Upload a file and return its public URL."""
        ...

    def send_email(self, to: str, subject: str, body: str) -> None:
        """Deliver an e-mail."""
        ...


class EntityAccessFacade(Protocol):
    """Protocol for the aggregate client the services depend on.

    Collections are reached as attributes (facade.entities.Ad,
    facade.entities.Conversation, ...), next to facade.auth and
    facade.integrations.
    """

    entities: Any
    auth: AuthAPI
    integrations: CoreIntegrations
