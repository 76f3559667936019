"""Public API key validation.

Every client request carries the public (anonymous) API key of the deployment
in the X-API-Key header. The key only identifies the client application; the
caller's identity comes from the session token.
"""

import hmac


class APIKeyValidator:
    """Validates the public API key sent by client applications."""

    def __init__(self, api_keys: list[str]) -> None:
        """Initialize validator with the accepted public keys.

        Args:
            api_keys: Accepted public API keys (rotation keeps more than one live)

        Raises:
            ValueError: If api_keys list is empty
        """
        if not api_keys:
            raise ValueError("At least one API key must be provided")

        self.api_keys = [key.encode() for key in api_keys]

    def validate(self, api_key: str) -> bool:
        """Validate a public API key.

        Args:
            api_key: The key sent by the client

        Returns:
            bool: True if it matches an accepted key, False otherwise
        """
        candidate = api_key.encode()
        # compare against every key so timing does not reveal which one matched
        matches = [hmac.compare_digest(candidate, key) for key in self.api_keys]
        return any(matches)
