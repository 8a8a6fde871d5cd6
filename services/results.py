"""
Action Results

Every user-initiated service action returns an ActionResult instead of
raising. The message is the short notification shown to the user.
"""

from dataclasses import dataclass
from typing import Optional, Any


@dataclass
class ActionResult:
    """Outcome of a user action.

    Attributes:
        ok: Whether the action took effect.
        message: User-facing notification text (may be empty).
        data: The action's payload, if any.
        not_found: The target record does not exist; render a not-found view.
        redirect: URL to navigate to (login page, the created ad, ...).
    """
    ok: bool
    message: str = ""
    data: Any = None
    not_found: bool = False
    redirect: Optional[str] = None

    @classmethod
    def success(cls, message: str = "", data: Any = None, redirect: Optional[str] = None) -> "ActionResult":
        return cls(ok=True, message=message, data=data, redirect=redirect)

    @classmethod
    def failure(cls, message: str, data: Any = None) -> "ActionResult":
        return cls(ok=False, message=message, data=data)

    @classmethod
    def missing(cls, message: str) -> "ActionResult":
        return cls(ok=False, message=message, not_found=True)

    @classmethod
    def login_required(cls, login_url: str) -> "ActionResult":
        return cls(ok=False, redirect=login_url)
