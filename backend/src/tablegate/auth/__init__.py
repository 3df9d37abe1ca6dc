"""Authentication and authorization for TableGate."""

from tablegate.auth.types import (
    Action,
    Identity,
    PermissionLevel,
    TokenClaims,
)
from tablegate.auth.password import PasswordService
from tablegate.auth.jwt_service import JWTService
from tablegate.auth.middleware import AuthMiddleware, Authenticator, get_identity
from tablegate.auth.dependencies import require_identity
from tablegate.auth.permissions import (
    PermissionResolver,
    PermissionSnapshot,
)
from tablegate.auth.ownership import OwnershipChecker
from tablegate.auth.authorizer import AuthorizationDecision, Authorizer
from tablegate.auth.store import MembershipStore

__all__ = [
    "Action",
    "Identity",
    "PermissionLevel",
    "TokenClaims",
    "PasswordService",
    "JWTService",
    "AuthMiddleware",
    "Authenticator",
    "get_identity",
    "require_identity",
    "PermissionResolver",
    "PermissionSnapshot",
    "OwnershipChecker",
    "AuthorizationDecision",
    "Authorizer",
    "MembershipStore",
]
