"""FastAPI dependencies: get_current_identity / require_admin.

Usage in any protected router:
    from src.pm_gateway.auth.dependencies import Identity, get_current_identity

    @router.get("/protected")
    async def protected(identity: Identity = Depends(get_current_identity)):
        ...

Authentication is delegated to the auth provider; this layer only verifies
the bearer token and exposes the verified identity. Authorization beyond
the admin flag (market state preconditions) is the services' job.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from src.pm_common.errors import AdminRequiredError, InvalidCredentialsError
from src.pm_gateway.auth.jwt_handler import decode_token

# tokenUrl only drives the Swagger "Authorize" button; login lives at the auth provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class Identity:
    user_id: str
    is_admin: bool = False


async def get_current_identity(token: str = Depends(oauth2_scheme)) -> Identity:
    """Verify the bearer token and return the caller's identity.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    try:
        payload = decode_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    return Identity(user_id=str(user_id), is_admin=bool(payload.get("is_admin", False)))


async def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """Verify the caller holds admin privileges.

    Raises HTTP 403 (AppError 1006) otherwise.
    """
    if not identity.is_admin:
        raise AdminRequiredError()
    return identity
