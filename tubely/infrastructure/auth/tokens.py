"""
JWT bearer tokens.

Access tokens are HS256 JWTs issued by "tubely-access" whose subject is
the user's UUID. Validation turns a token into that UUID or fails; what
the user may do with it is decided elsewhere.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

TOKEN_ISSUER = "tubely-access"
TOKEN_ALGORITHM = "HS256"
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


class InvalidTokenError(Exception):
    """Raised when a bearer token is missing, malformed, expired or badly signed."""
    pass


def get_bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an "Authorization: Bearer <token>" header value."""
    if not authorization:
        raise InvalidTokenError("Authorization header is missing")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidTokenError("Malformed authorization header")
    return token.strip()


def make_jwt(
    user_id: UUID,
    secret: str,
    expires_in: timedelta = DEFAULT_TOKEN_LIFETIME,
) -> str:
    """Issue an access token for user_id."""
    now = datetime.now(timezone.utc)
    claims = {
        "iss": TOKEN_ISSUER,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM)


def validate_jwt(token: str, secret: str) -> UUID:
    """Verify signature, expiry and issuer, and return the subject as a UUID."""
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[TOKEN_ALGORITHM],
            issuer=TOKEN_ISSUER,
        )
    except JWTError as e:
        raise InvalidTokenError(f"Couldn't validate JWT: {e}") from e

    subject = claims.get("sub")
    try:
        return UUID(subject)
    except (TypeError, ValueError) as e:
        raise InvalidTokenError("Token subject is not a user ID") from e
