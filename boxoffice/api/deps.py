from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from boxoffice.core.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def _claims(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[dict]:
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


def _user_id(claims: dict) -> UUID:
    try:
        return UUID(claims["sub"])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    claims = _claims(credentials)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


def get_current_user_id(claims: dict = Depends(get_current_claims)) -> UUID:
    """Opaque id of the authenticated user. Identity itself is managed elsewhere."""
    return _user_id(claims)


def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[UUID]:
    claims = _claims(credentials)
    if claims is None:
        return None
    return _user_id(claims)


def get_current_admin_id(claims: dict = Depends(get_current_claims)) -> UUID:
    if claims.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return _user_id(claims)
