"""
Session Service.

Explicit login/logout lifecycle for the single user of the builder. Any
non-empty email and password are accepted; the authenticated flag and the
signed-in user are kept in the client state store so both survive a restart.
"""

import uuid
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ..config_constants import CURRENT_USER_KEY, IS_AUTHENTICATED_KEY
from ..domain.errors import AuthenticationError
from ..domain.session import User
from ..infrastructure.state_store import ClientStateStore
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from .notification_service import NotificationCenter


logger = get_module_logger()


class SessionService:
    """
    Usage:
        session = SessionService(state_store, notifications)
        session.login("ada@example.com", "secret")
        session.is_authenticated  # True
        session.logout()
    """

    def __init__(self, state_store: ClientStateStore, notifications: NotificationCenter):
        self.state_store = state_store
        self.notifications = notifications
        self._user: Optional[User] = self._restore()

    def _restore(self) -> Optional[User]:
        """Load the persisted user; a flag without a readable user is reset."""
        if not self.state_store.get_bool(IS_AUTHENTICATED_KEY):
            return None
        raw = self.state_store.get(CURRENT_USER_KEY)
        if raw:
            try:
                user = User.model_validate_json(raw)
                logger.info("Session restored", user_id=user.id)
                return user
            except PydanticValidationError as e:
                logger.warning("Stored user is unreadable", error=str(e))
        self._clear()
        return None

    def _clear(self) -> None:
        self._user = None
        self.state_store.remove(IS_AUTHENTICATED_KEY)
        self.state_store.remove(CURRENT_USER_KEY)

    @property
    def current_user(self) -> Optional[User]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and self.state_store.get_bool(IS_AUTHENTICATED_KEY)

    @staticmethod
    def _check_credentials(email: str, password: str) -> str:
        email = (email or "").strip()
        if not email or not password:
            raise AuthenticationError("Email and password are required")
        return email

    def _start(self, email: str, name: str) -> User:
        self._user = User(id=str(uuid.uuid4()), email=email, name=name)
        self.state_store.set(CURRENT_USER_KEY, self._user.model_dump_json())
        self.state_store.set_bool(IS_AUTHENTICATED_KEY, True)
        logger.info("User signed in", user_id=self._user.id, trace_id=current_trace_id())
        return self._user

    def login(self, email: str, password: str) -> User:
        """
        Raises:
            AuthenticationError: Blank email or password
        """
        email = self._check_credentials(email, password)
        user = self._start(email, name=email.split("@")[0])
        self.notifications.success("Signed in", f"Welcome back, {user.name}")
        return user

    def signup(self, email: str, password: str, name: Optional[str] = None) -> User:
        email = self._check_credentials(email, password)
        user = self._start(email, name=(name or "").strip() or email.split("@")[0])
        self.notifications.success("Account created", f"Welcome, {user.name}")
        return user

    def logout(self) -> None:
        self._clear()
        self.notifications.notify("Signed out")
        logger.info("User signed out", trace_id=current_trace_id())
