"""Navigation side effects.

Learn: When a session cannot be restored (unrecoverable 401, logout) the
user must be sent back to the login view; on 403 they are sent to the
"forbidden" view. The client never decides *how* that happens — it calls
a Navigator. A dashboard would change the page, the CLI prints a hint,
tests record the target.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

logger = structlog.get_logger()

LOGIN_ROUTE = "/login"
FORBIDDEN_ROUTE = "/403"


class Navigator(ABC):
    """Receives redirect requests from the client."""

    @abstractmethod
    def redirect(self, target: str) -> None:
        ...


class HistoryNavigator(Navigator):
    """Records every redirect in order. Used by tests and headless scripts."""

    def __init__(self):
        self.history: list[str] = []

    def redirect(self, target: str) -> None:
        logger.debug("portal.redirect", target=target)
        self.history.append(target)

    @property
    def current(self) -> Optional[str]:
        """The last redirect target, or None if there was none."""
        return self.history[-1] if self.history else None
