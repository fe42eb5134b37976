"""JWT token issuance and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
A token is issued on every successful login and lives for exactly one
hour. Nothing is stored server-side: validity is signature + expiry.

Claims carried:
- Id    → user UUID
- sub   → user email
- email → user email
- jti   → 128-bit random token identifier
- iat   → issued-at
- exp   → iat + 1 hour
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from storefront.config import settings
from storefront.db.models import User

TOKEN_LIFETIME = timedelta(hours=1)
ALGORITHM = "HS256"


class TokenError(Exception):
    """Raised when token verification fails."""


def issue_token(user: User, now: Optional[datetime] = None) -> str:
    """Issue a signed access token for a user.

    `now` is only overridable so tests can pin the clock.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "Id": str(user.id),
        "sub": user.email,
        "email": user.email,
        "jti": uuid.uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + TOKEN_LIFETIME,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp", "iat", "sub", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
