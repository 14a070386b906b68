"""Identity token utilities.

Reviewers and model owners are identified by a bearer JWT signed with the
application secret. The display name recorded in audit events comes from
the ``name`` claim, falling back to ``sub``.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel

from modelrisk.config import settings

DEFAULT_TOKEN_LIFETIME = timedelta(hours=8)


class TokenData(BaseModel):
    """Schema for decoded identity token data."""

    subject: str
    name: str | None = None
    role: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.subject


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed identity token.

    Args:
        data: Token claims (sub, name, role)
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_LIFETIME)
    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> TokenData | None:
    """
    Decode and verify an identity token.

    Args:
        token: The JWT string

    Returns:
        TokenData, or None if the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    return TokenData(subject=subject, name=payload.get("name"), role=payload.get("role"))
