"""
Resolves the caller of a function from its bearer token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthClient(Protocol):
    def get_user(self, authorization: Optional[str]) -> Optional[AuthUser]:
        ...


class SupabaseAuthClient:
    """Asks Supabase Auth who owns the forwarded JWT."""

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        if not supabase_url or not anon_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required")
        self.user_url = f"{supabase_url.rstrip('/')}/auth/v1/user"
        self.anon_key = anon_key
        self.session = session or requests.Session()
        self.timeout = timeout

    def get_user(self, authorization: Optional[str]) -> Optional[AuthUser]:
        token = bearer_token(authorization)
        if token is None:
            return None
        try:
            response = self.session.get(
                self.user_url,
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException:
            logger.warning("Supabase auth lookup failed", exc_info=True)
            return None
        if not response.ok:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            return None
        return AuthUser(id=user_id, email=payload.get("email"))


@dataclass
class InMemoryAuthClient:
    """Test double mapping bearer tokens to users."""

    users: Dict[str, AuthUser] = field(default_factory=dict)

    def add_user(self, token: str, user_id: str, email: Optional[str] = None) -> AuthUser:
        user = AuthUser(id=user_id, email=email)
        self.users[token] = user
        return user

    def get_user(self, authorization: Optional[str]) -> Optional[AuthUser]:
        token = bearer_token(authorization)
        if token is None:
            return None
        return self.users.get(token)

    def reset(self) -> None:
        self.users.clear()
