"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers (or on whole
routers) to extract and validate the caller's bearer token.
Validation is signature + expiry only; there is no session table.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from storefront.auth.jwt import TokenError, verify_token


class CurrentIdentity:
    """The authenticated user making the request, as carried in the token."""

    def __init__(self, user_id: str, email: str, token_id: Optional[str] = None):
        self.user_id = user_id
        self.email = email
        self.token_id = token_id


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no auth)."""
    if authorization and authorization.startswith("Bearer "):
        return _authenticate_jwt(authorization[7:])
    return None


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not identity:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def _authenticate_jwt(token: str) -> CurrentIdentity:
    try:
        payload = verify_token(token)
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentIdentity(
        user_id=payload.get("Id", ""),
        email=payload["sub"],
        token_id=payload.get("jti"),
    )
