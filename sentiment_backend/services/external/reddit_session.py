"""
Reddit authentication state.

The OAuth handshake happens elsewhere; this module only holds the state it
produces. A ``RedditSession`` is constructed by the caller and handed to the
search client, so authenticated and anonymous runs can coexist.
"""

import logging
import time
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as expired
EXPIRY_MARGIN_SECONDS = 60


class RedditAuthState(BaseModel):
    """Published authentication state."""

    model_config = ConfigDict(frozen=True)

    is_authenticated: bool = False
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None  # epoch seconds
    username: Optional[str] = None


class RedditSession:
    """Holds the authentication state used for Reddit requests."""

    def __init__(self, auth_state: Optional[RedditAuthState] = None):
        self._state = auth_state or RedditAuthState()

    @classmethod
    def anonymous(cls) -> "RedditSession":
        return cls()

    @classmethod
    def from_token(
        cls,
        access_token: str,
        expires_at: Optional[float] = None,
        username: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> "RedditSession":
        return cls(
            RedditAuthState(
                is_authenticated=True,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
                username=username,
            )
        )

    @property
    def auth_state(self) -> RedditAuthState:
        return self._state

    def update(self, auth_state: RedditAuthState) -> None:
        self._state = auth_state

    def clear(self) -> None:
        self._state = RedditAuthState()

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self._state.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= self._state.expires_at - EXPIRY_MARGIN_SECONDS

    def is_active(self, now: Optional[float] = None) -> bool:
        """True when requests can be sent with the bearer token."""
        return (
            self._state.is_authenticated
            and bool(self._state.access_token)
            and not self.is_expired(now)
        )

    def authorization_header(self) -> Dict[str, str]:
        if not self.is_active():
            return {}
        return {"Authorization": f"Bearer {self._state.access_token}"}
