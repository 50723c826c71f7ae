"""Handshake authentication for Socket.IO connections.

Clients send the SimpleJWT access token in the Socket.IO ``auth`` payload
(``{"token": "<jwt>"}``). A ``token`` query-string parameter is accepted as a
fallback for clients that cannot send an auth payload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.exceptions import TokenError

logger = logging.getLogger(__name__)

MISSING_TOKEN = "missing token"
INVALID_TOKEN = "invalid token"
USER_NOT_FOUND = "user not found"


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: int
    username: str
    full_name: str


def _strip_bearer(value: str) -> str:
    parts = value.split(None, 1)
    if parts and parts[0].lower() == "bearer":
        return parts[1].strip() if len(parts) > 1 else ""
    return value.strip()


def _failure_code(exc: AuthenticationFailed) -> str | None:
    # SimpleJWT raises with a dict detail: {"detail": ..., "code": ...}.
    if isinstance(exc.detail, dict):
        code = exc.detail.get("code")
        return str(code) if code is not None else None
    return getattr(exc.detail, "code", None)


def extract_token(environ: dict[str, Any] | None, auth: Any | None) -> str | None:
    """Extract the JWT from the Socket.IO auth payload or the query string.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and _strip_bearer(auth_token):
            return _strip_bearer(auth_token)

    scope: Any = environ or {}
    if isinstance(scope, dict) and "asgi.scope" in scope:
        inner = scope.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and _strip_bearer(token):
        return _strip_bearer(token)

    return None


def authenticate_token(token: str) -> AuthenticatedUser:
    """Validate an access token and load the user it belongs to.

    Raises ``ConnectionRefusedError`` carrying one of the handshake reasons.
    """

    jwt_auth = JWTAuthentication()
    try:
        validated = jwt_auth.get_validated_token(token)
    except (InvalidToken, TokenError) as exc:
        raise ConnectionRefusedError(INVALID_TOKEN) from exc

    try:
        user = jwt_auth.get_user(validated)
    except InvalidToken as exc:
        # Token without a recognizable user id claim.
        raise ConnectionRefusedError(INVALID_TOKEN) from exc
    except AuthenticationFailed as exc:
        if _failure_code(exc) == "user_not_found":
            raise ConnectionRefusedError(USER_NOT_FOUND) from exc
        # Inactive users and other account-level rejections.
        raise ConnectionRefusedError(INVALID_TOKEN) from exc

    return AuthenticatedUser(
        user_id=int(user.id),
        username=user.username,
        full_name=getattr(user, "name", "") or "",
    )


authenticate_token_async = database_sync_to_async(authenticate_token)
