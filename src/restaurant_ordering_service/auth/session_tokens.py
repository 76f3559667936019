"""Session token verification.

The external identity provider signs session tokens with a shared HS256
secret. The token subject is the caller's stable identity; the optional
email claim seeds the profile created on first authentication.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionIdentity:
    """Identity claims extracted from a verified session token."""

    user_id: str
    email: str | None = None


class SessionTokenVerifier:
    """Verifies session tokens issued by the identity provider."""

    def __init__(self, secret: str, audience: str = "authenticated") -> None:
        """Initialize verifier.

        Args:
            secret: Shared signing secret
            audience: Expected audience claim

        Raises:
            ValueError: If secret is empty
        """
        if not secret:
            raise ValueError("A session token secret must be provided")

        self.secret = secret
        self.audience = audience

    def verify(self, token: str) -> SessionIdentity | None:
        """Verify a session token.

        Args:
            token: Encoded session token

        Returns:
            SessionIdentity if the token is valid, None otherwise
        """
        try:
            claims = jwt.decode(
                token, self.secret, algorithms=[TOKEN_ALGORITHM], audience=self.audience
            )
        except JWTError as e:
            logger.info(f"Rejected session token: {e}")
            return None

        subject = claims.get("sub")
        if not subject:
            logger.info("Rejected session token without subject")
            return None

        return SessionIdentity(user_id=subject, email=claims.get("email"))

    def issue(self, user_id: str, email: str | None = None, ttl_minutes: int = 60) -> str:
        """Issue a token the same way the identity provider does.

        Used for local development and tests.

        Args:
            user_id: Identity to embed as subject
            email: Optional email claim
            ttl_minutes: Token lifetime

        Returns:
            str: Encoded session token
        """
        now = datetime.now(UTC)
        claims: dict[str, Any] = {
            "sub": user_id,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
        }
        if email is not None:
            claims["email"] = email

        token: str = jwt.encode(claims, self.secret, algorithm=TOKEN_ALGORITHM)
        return token
