"""
Bearer token handling.

Tokens are issued elsewhere (login is not part of this service); this module
mints them for tooling and tests and resolves them back to a user id.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Any
import uuid

from jose import JWTError, jwt

from storefront.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    user_id: str | uuid.UUID,
    expires_delta: Optional[timedelta] = None,
    **extra_claims: Any
) -> str:
    """Sign an access token whose subject is the user id."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        **extra_claims,
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Verified claims of an unexpired access token, or None."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims


def get_token_user_id(token: str) -> Optional[uuid.UUID]:
    """User id carried by a valid access token, or None."""
    claims = decode_access_token(token)
    if claims is None:
        return None

    try:
        return uuid.UUID(str(claims.get("sub")))
    except ValueError:
        return None
