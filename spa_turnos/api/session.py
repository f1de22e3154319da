"""
Session Context

Explicit session object (token + user profile) handed to every component that
talks to the backend. The browser client kept these under the ``token`` and
``user`` local storage keys; here they travel as cookies of the same names.
"""

import base64
import binascii
import json
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError

from spa_turnos.api.errors import AuthenticationError
from spa_turnos.models.schemas import User, UserRole

logger = logging.getLogger(__name__)


def encode_user(user: User) -> str:
    """ASCII-only cookie value for a user profile (unpadded url-safe base64 of its JSON)."""
    raw = json.dumps(user.model_dump(mode="json", by_alias=True))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_user(value: str) -> User:
    """
    Inverse of ``encode_user``.

    Raises:
        ValueError: Not base64 or not JSON
        ValidationError: JSON that is not a user profile
    """
    padded = value + "=" * (-len(value) % 4)
    raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    return User.model_validate(json.loads(raw.decode("utf-8")))


class SessionContext:
    """
    Current authenticated principal.

    ``handle_unauthorized`` clears the session and fires ``on_logout`` at most
    once per ``dedupe_seconds``, so a burst of 401 responses produces a single
    logout notification.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        user: Optional[User] = None,
        dedupe_seconds: float = 5.0,
        on_logout: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.token = token or None
        self.user = user
        self.dedupe_seconds = dedupe_seconds
        self.on_logout = on_logout
        self._clock = clock
        self._last_unauthorized: Optional[float] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin_user

    @property
    def is_professional(self) -> bool:
        return self.user is not None and self.user.role == UserRole.PROFESSIONAL

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    def require_token(self) -> str:
        if not self.token:
            raise AuthenticationError("Debés iniciar sesión para continuar.")
        return self.token

    def require_user(self) -> User:
        if not self.is_authenticated:
            raise AuthenticationError("Debés iniciar sesión para continuar.")
        return self.user

    def login(self, token: str, user: User) -> None:
        self.token = token
        self.user = user
        self._last_unauthorized = None
        logger.info(f"Session started for user {user.id}")

    def clear(self) -> None:
        self.token = None
        self.user = None

    def handle_unauthorized(self) -> bool:
        """
        React to a 401 from the backend.

        Returns:
            True if this call triggered the logout, False if it was deduplicated
        """
        now = self._clock()
        if (
            self._last_unauthorized is not None
            and now - self._last_unauthorized < self.dedupe_seconds
        ):
            logger.debug("Duplicate unauthorized response ignored")
            return False

        self._last_unauthorized = now
        self.clear()
        logger.warning("Session expired or invalid, clearing credentials")
        if self.on_logout:
            self.on_logout()
        return True

    def to_cookies(self, token_key: str = "token", user_key: str = "user") -> Dict[str, str]:
        if not self.is_authenticated:
            return {}
        return {
            token_key: self.token,
            user_key: encode_user(self.user),
        }

    @classmethod
    def from_cookies(
        cls,
        cookies: Mapping[str, str],
        token_key: str = "token",
        user_key: str = "user",
        **kwargs: Any,
    ) -> "SessionContext":
        """
        Rebuild a session from stored cookies.

        A malformed user blob yields an anonymous session rather than an error.
        """
        token = cookies.get(token_key)
        user = None
        raw_user = cookies.get(user_key)
        if raw_user:
            try:
                user = decode_user(raw_user)
            except (ValueError, binascii.Error, ValidationError) as e:
                logger.warning(f"Ignoring malformed stored user profile: {e}")
        return cls(token=token, user=user, **kwargs)
