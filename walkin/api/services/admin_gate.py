"""Pluggable admin access gates.

The queue core never checks credentials itself: routes ask an ``AdminGate``
to authorize the request and get back the admin principal or ``None``.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Protocol

import jwt
from starlette.requests import HTTPConnection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminPrincipal:
    user_id: str


class AdminGate(Protocol):
    def authorize(self, request: HTTPConnection) -> AdminPrincipal | None: ...


class HeaderAdminGate:
    """Shared-secret header gate.

    ``X-Admin-Session`` must equal the configured token. An empty token
    denies every request.
    """

    def __init__(
        self,
        token: str,
        *,
        header: str = "x-admin-session",
        user_header: str = "x-admin-user",
        default_user: str = "admin",
    ) -> None:
        self.token = token
        self.header = header
        self.user_header = user_header
        self.default_user = default_user
        if not token:
            logger.warning("ADMIN_TOKEN is empty, admin endpoints are locked")

    def authorize(self, request: HTTPConnection) -> AdminPrincipal | None:
        supplied = request.headers.get(self.header)
        if not self.token or not supplied:
            return None
        if not hmac.compare_digest(supplied.encode(), self.token.encode()):
            logger.warning("Rejected admin request with invalid session header")
            return None
        return AdminPrincipal(user_id=request.headers.get(self.user_header) or self.default_user)


class JwtCookieAdminGate:
    """Session-cookie gate: a signed JWT carrying ``sub`` and ``is_admin``."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", cookie: str = "auth_token") -> None:
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.cookie = cookie

    def authorize(self, request: HTTPConnection) -> AdminPrincipal | None:
        token = request.cookies.get(self.cookie)
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Admin token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid admin token: {e}")
            return None

        user_id = payload.get("sub")
        if not user_id or payload.get("is_admin") is not True:
            return None
        return AdminPrincipal(user_id=str(user_id))


def build_admin_gate(kind: str, *, admin_token: str, jwt_secret_key: str, jwt_algorithm: str) -> AdminGate:
    if kind == "header":
        return HeaderAdminGate(admin_token)
    if kind == "jwt":
        return JwtCookieAdminGate(jwt_secret_key, jwt_algorithm)
    raise ValueError(f"Unknown admin gate '{kind}' (expected 'header' or 'jwt')")
