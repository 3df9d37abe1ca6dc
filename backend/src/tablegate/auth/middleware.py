"""Authentication middleware for FastAPI."""

import base64
import binascii
import logging
from typing import Any, Callable

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tablegate.auth.jwt_service import JWTError, JWTService
from tablegate.auth.password import PasswordService
from tablegate.auth.types import Identity

logger = logging.getLogger(__name__)

# memberID -> membership_users row, or None
MemberLookup = Callable[[str], dict[str, Any] | None]


def _truthy(value: Any) -> bool:
    try:
        return bool(int(value))
    except (TypeError, ValueError):
        return False


class Authenticator:
    """Turns an Authorization header into an Identity.

    Supports two schemes:
    1. ``Bearer <jwt>``: claims ``sub`` (member id) and ``group`` (group id);
       only ``type == "access"`` tokens are accepted. The member must be
       approved and not banned in ``membership_users``, and a ``group`` claim
       must match the stored group; without one the stored group is used.
    2. ``Basic <base64 user:pass>``: checked against ``membership_users``;
       only approved, non-banned members authenticate.
    """

    def __init__(
        self,
        jwt_service: JWTService,
        password_service: PasswordService | None = None,
        member_lookup: MemberLookup | None = None,
    ):
        self._jwt_service = jwt_service
        self._password_service = password_service
        self._member_lookup = member_lookup

    def authenticate(self, authorization: str | None) -> Identity | None:
        """Resolve the header to an Identity, or None if it does not authenticate."""
        if not authorization:
            return None
        scheme, _, credentials = authorization.partition(" ")
        scheme = scheme.lower()
        credentials = credentials.strip()
        if scheme == "bearer":
            return self._from_bearer(credentials)
        if scheme == "basic":
            return self._from_basic(credentials)
        return None

    def _active_member(self, member_id: str) -> dict[str, Any] | None:
        if not self._member_lookup:
            return None
        member = self._member_lookup(member_id)
        if not member or not _truthy(member.get("isApproved")) or _truthy(member.get("isBanned")):
            return None
        return member

    def _from_bearer(self, token: str) -> Identity | None:
        try:
            claims = self._jwt_service.decode_token(token)
        except JWTError as e:
            logger.debug("Rejected bearer token: %s", e)
            return None

        # Only accept access tokens
        if claims.type != "access":
            return None

        member = self._active_member(claims.user_id)
        if not member:
            logger.info("Bearer token rejected for inactive or unknown member %s", claims.user_id)
            return None
        group_id = str(member["groupID"])
        if claims.group_id is not None and claims.group_id != group_id:
            logger.info("Bearer token group is stale for member %s", claims.user_id)
            return None
        return Identity(user_id=claims.user_id, group_id=group_id)

    def _from_basic(self, credentials: str) -> Identity | None:
        if not self._password_service:
            return None
        try:
            decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        member_id, sep, password = decoded.partition(":")
        if not sep or not member_id:
            return None

        member = self._active_member(member_id)
        if not member or not self._password_service.verify(password, member.get("passHash")):
            logger.info("Basic authentication failed for member %s", member_id)
            return None
        return Identity(user_id=str(member["memberID"]), group_id=str(member["groupID"]))


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that resolves the caller and stores it on ``request.state.identity``.

    The authenticator is fetched through a provider because it is only built
    in the application lifespan. When the provider returns None, auth is
    disabled and the ``anonymous_identity`` (if any) is used instead.

    The middleware does NOT reject unauthenticated requests - that's handled
    by the ``require_identity`` dependency.
    """

    def __init__(
        self,
        app,
        get_authenticator: Callable[[], Authenticator | None],
        anonymous_identity: Identity | None = None,
    ):
        super().__init__(app)
        self._get_authenticator = get_authenticator
        self._anonymous_identity = anonymous_identity

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.identity = None

        if self._should_skip_auth(request.url.path):
            return await call_next(request)

        authenticator = self._get_authenticator()
        if authenticator is None:
            request.state.identity = self._anonymous_identity
            return await call_next(request)

        # bcrypt and the member lookup block, keep them off the event loop
        request.state.identity = await run_in_threadpool(
            authenticator.authenticate, request.headers.get("Authorization")
        )
        return await call_next(request)

    def _should_skip_auth(self, path: str) -> bool:
        skip_paths = ["/docs", "/openapi.json", "/redoc"]
        return any(path.startswith(p) for p in skip_paths)


def get_identity(request: Request) -> Identity | None:
    """Get the resolved caller from the request state, or None."""
    return getattr(request.state, "identity", None)
