"""FastAPI dependencies for authentication."""

from fastapi import HTTPException, Request

from tablegate.auth.middleware import get_identity
from tablegate.auth.types import Identity


def require_identity(request: Request) -> Identity:
    """Dependency that requires an authenticated caller.

    Raises:
        HTTPException 401 if not authenticated
    """
    identity = get_identity(request)
    if not identity:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": 'Bearer, Basic realm="tablegate"'},
        )
    return identity
