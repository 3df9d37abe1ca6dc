"""Application settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from tablegate.query.parser import DEFAULT_LIMIT, MAX_LIMIT

_TRUE_VALUES = ("1", "true", "yes")


def env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number")


@dataclass
class Settings:
    """Runtime settings for the API.

    Attributes:
        metadata_path: Directory holding ``tables/*.yaml``
        default_limit: Page size when the request has no ``limit``
        max_limit: Upper clamp for ``limit``
        strict_params: Reject a list request when any parameter segment is bad
        strict_types: Drop filter values that don't coerce to the field type
            (otherwise the literal string is bound)
        request_timeout: Seconds before a request stops issuing queries
        secret_key: Shared secret for bearer token validation
        jwt_issuer: Required token issuer (``iss``), if any
        jwt_audience: Required token audience (``aud``), if any
        jwt_leeway: Clock skew in seconds tolerated on token expiry
        admin_group: Group allowed to reload the permission snapshot
        cors_origins: Allowed browser origins
        log_level: Root logging level name
        disable_auth: Run every request as an anonymous identity (tests only)
    """

    metadata_path: Path
    default_limit: int = DEFAULT_LIMIT
    max_limit: int = MAX_LIMIT
    strict_params: bool = False
    strict_types: bool = False
    request_timeout: float = 30.0
    secret_key: str = "dev-secret-key-change-in-production"
    jwt_issuer: str | None = None
    jwt_audience: str | None = None
    jwt_leeway: float = 0.0
    admin_group: str = "Admins"
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"
    disable_auth: bool = False

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> Settings:
        """Create settings from TABLEGATE_* environment variables.

        The metadata directory defaults to ``{base_path}/metadata``.

        Raises:
            ValueError: If a numeric variable does not parse or the limits
                are inconsistent
        """
        base_path = base_path or Path.cwd()
        metadata_path = os.environ.get("TABLEGATE_METADATA_PATH")

        origins = os.environ.get("TABLEGATE_CORS_ORIGINS")
        cors_origins = (
            [o.strip() for o in origins.split(",") if o.strip()]
            if origins is not None
            else ["http://localhost:5173"]
        )

        settings = cls(
            metadata_path=Path(metadata_path) if metadata_path else base_path / "metadata",
            default_limit=_env_int("TABLEGATE_DEFAULT_LIMIT", DEFAULT_LIMIT),
            max_limit=_env_int("TABLEGATE_MAX_LIMIT", MAX_LIMIT),
            strict_params=env_flag("TABLEGATE_STRICT_PARAMS"),
            strict_types=env_flag("TABLEGATE_STRICT_VALUE_TYPES"),
            request_timeout=_env_float("TABLEGATE_REQUEST_TIMEOUT", 30.0),
            secret_key=os.environ.get(
                "TABLEGATE_SECRET_KEY", "dev-secret-key-change-in-production"
            ),
            jwt_issuer=os.environ.get("TABLEGATE_JWT_ISSUER") or None,
            jwt_audience=os.environ.get("TABLEGATE_JWT_AUDIENCE") or None,
            jwt_leeway=_env_float("TABLEGATE_JWT_LEEWAY", 0.0),
            admin_group=os.environ.get("TABLEGATE_ADMIN_GROUP", "Admins"),
            cors_origins=cors_origins,
            log_level=os.environ.get("TABLEGATE_LOG_LEVEL", "INFO").upper(),
            disable_auth=env_flag("TABLEGATE_DISABLE_AUTH"),
        )
        if settings.max_limit < 1 or settings.default_limit < 1:
            raise ValueError("Page limits must be at least 1")
        return settings
