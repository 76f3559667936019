"""FastAPI dependencies for request authentication.

Provides the functions endpoints use to check the public API key and to
resolve the caller's identity from the bearer session token.
"""

from typing import Annotated

from fastapi import Header, HTTPException

from restaurant_ordering_service.auth.api_key_validator import APIKeyValidator
from restaurant_ordering_service.auth.session_tokens import SessionIdentity, SessionTokenVerifier

BEARER_PREFIX = "bearer "


def get_api_key_from_header(
    x_api_key: Annotated[str | None, Header()] = None,
    validator: APIKeyValidator | None = None,
) -> str:
    """FastAPI dependency to extract and validate the X-API-Key header.

    Args:
        x_api_key: Public API key from X-API-Key header (injected by FastAPI)
        validator: APIKeyValidator instance

    Returns:
        str: The validated API key

    Raises:
        HTTPException: 401 if API key is missing or invalid
    """
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing API key")

    if validator and not validator.validate(x_api_key):
        raise HTTPException(status_code=401, detail="Invalid API key")

    return x_api_key


def get_identity_from_header(
    authorization: Annotated[str | None, Header()] = None,
    verifier: SessionTokenVerifier | None = None,
) -> SessionIdentity:
    """FastAPI dependency to resolve the caller from a bearer session token.

    Args:
        authorization: Authorization header value (injected by FastAPI)
        verifier: SessionTokenVerifier instance

    Returns:
        SessionIdentity: The verified identity

    Raises:
        HTTPException: 401 if the token is missing, malformed or invalid
    """
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        raise HTTPException(
            status_code=401,
            detail="Missing session token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[len(BEARER_PREFIX) :].strip()
    identity = verifier.verify(token) if verifier else None
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid session token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return identity
