"""Signed session tokens: issuing and stateless verification."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .errors import AuthError
from .models.user import Role

INVALID_TOKEN = "Invalid or expired token"


@dataclass(frozen=True)
class Principal:
    """Identity asserted by a verified session token."""

    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class SessionTokens:
    """Issue and verify HS256 JWTs carrying ``id``, ``role``, ``iat`` and ``exp``.

    The signing key is always supplied by the caller.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=1),
    ):
        if not secret:
            raise ValueError("a signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: int, role: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "role": Role(role).value,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: Optional[str]) -> Principal:
        if not token:
            raise AuthError(INVALID_TOKEN)
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.PyJWTError:
            raise AuthError(INVALID_TOKEN)

        user_id = payload.get("id")
        # bool is an int subclass; reject it explicitly.
        if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id < 1:
            raise AuthError(INVALID_TOKEN)
        try:
            role = Role(payload.get("role"))
        except ValueError:
            raise AuthError(INVALID_TOKEN)
        return Principal(id=user_id, role=role)
