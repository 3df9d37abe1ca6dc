"""Bearer token validation.

Tokens are minted elsewhere (the generator's own login or an identity
provider sharing the secret); this service only checks them. The claims
TableGate reads are ``sub`` (member id), ``group`` (group id, optional)
and ``type`` (only "access" authenticates).
"""

import jwt

from tablegate.auth.types import TokenClaims


class JWTError(Exception):
    """Base exception for JWT-related errors."""

    pass


class TokenExpiredError(JWTError):
    pass


class InvalidTokenError(JWTError):
    """Raised when a token is malformed, badly signed, or lacks a subject."""

    pass


class JWTService:
    """Validates tokens signed with a shared secret.

    Args:
        secret_key: Shared signing secret
        algorithm: Accepted signing algorithm (default HS256)
        issuer: Required ``iss`` value, if set
        audience: Required ``aud`` value, if set
        leeway: Seconds of clock skew tolerated on ``exp``/``nbf``
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        audience: str | None = None,
        leeway: float = 0,
    ):
        self._secret_key = secret_key
        self._algorithms = [algorithm]
        self._issuer = issuer
        self._audience = audience
        self._leeway = leeway

    def decode_token(self, token: str) -> TokenClaims:
        """Verify ``token`` and return its claims.

        Raises:
            TokenExpiredError: If ``exp`` has passed
            InvalidTokenError: For any other verification failure
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=self._algorithms,
                issuer=self._issuer,
                audience=self._audience,
                leeway=self._leeway,
                options={"require": ["sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        if not payload["sub"]:
            raise InvalidTokenError("Token has an empty subject")

        group = payload.get("group")
        return TokenClaims(
            user_id=str(payload["sub"]),
            group_id=str(group) if group is not None else None,
            exp=payload.get("exp", 0),
            iat=payload.get("iat", 0),
            type=payload.get("type", "access"),
        )
