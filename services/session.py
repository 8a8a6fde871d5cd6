"""
Session Context

This module holds the signed-in user for the lifetime of the app. The session
is initialized on start, refreshed on navigation and cleared on logout, and
is passed explicitly to every service instead of living in shared state.
"""

from typing import Optional

from data.models import User
from data.protocols import AuthAPI
from utils.exceptions import AuthenticationError, BackendError
from utils.logger import get_logger

logger = get_logger(__name__)


class Session:
    """The current user, as last seen by the backend."""

    def __init__(self, auth: AuthAPI):
        self.auth = auth
        self.user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def init(self) -> Optional[User]:
        """
        Load the user on app start.

        Returns:
            Optional[User]: The signed-in user, or None for anonymous visitors.
        """
        try:
            if not self.auth.is_authenticated():
                self.user = None
                return None
            self.user = User.from_record(self.auth.me())
            logger.info(f"Session started for {self.user.full_name or self.user.id}")
        except AuthenticationError:
            self.user = None
        except BackendError as e:
            logger.error(f"Could not load the current user: {e}")
            self.user = None
        return self.user

    def refresh(self) -> Optional[User]:
        """Re-read the user record, e.g. after navigation or a profile change."""
        return self.init()

    def set_user(self, record: dict) -> User:
        """Replace the cached user with a record returned by the backend."""
        self.user = User.from_record(record)
        return self.user

    def clear(self) -> None:
        """Log out and forget the user."""
        try:
            self.auth.logout()
        finally:
            self.user = None

    def require_user(self) -> User:
        """
        Return the signed-in user.

        Raises:
            AuthenticationError: If nobody is signed in.
        """
        if self.user is None:
            raise AuthenticationError("Login required")
        return self.user

    def login_url(self, return_url: Optional[str] = None) -> str:
        return self.auth.redirect_to_login(return_url)
