"""Type definitions for authentication and authorization."""

from dataclasses import dataclass
from enum import Enum, IntEnum


@dataclass(frozen=True)
class Identity:
    """The authenticated caller for one request.

    Attributes:
        user_id: Member id (AppGini ``memberID``)
        group_id: Group id the member belongs to, as a string
    """

    user_id: str
    group_id: str


class PermissionLevel(IntEnum):
    """Per-action permission level, using the generator's stored values."""

    NONE = 0
    OWNER = 1
    GROUP = 2
    ALL = 3


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"


@dataclass
class TokenClaims:
    """Claims read from a bearer token.

    Attributes:
        user_id: The member id (``sub``)
        group_id: The member's group id (``group``)
        exp: Token expiration timestamp
        iat: Token issued-at timestamp
        type: Token type; only "access" tokens authenticate API calls
    """

    user_id: str
    group_id: str | None = None
    exp: int = 0
    iat: int = 0
    type: str = "access"
