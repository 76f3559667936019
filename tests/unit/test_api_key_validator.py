"""Unit tests for public API key validation."""

import pytest

from restaurant_ordering_service.auth.api_key_validator import APIKeyValidator


@pytest.mark.unit
class TestAPIKeyValidator:
    """Test suite for APIKeyValidator."""

    def test_requires_at_least_one_key(self) -> None:
        """Test that an empty key list is rejected."""
        with pytest.raises(ValueError, match="At least one API key must be provided"):
            APIKeyValidator(api_keys=[])

    def test_accepts_configured_key(self) -> None:
        """Test that a configured key validates."""
        validator = APIKeyValidator(api_keys=["anon-key"])
        assert validator.validate("anon-key") is True

    def test_rejects_unknown_key(self) -> None:
        """Test that other keys are rejected."""
        validator = APIKeyValidator(api_keys=["anon-key"])
        assert validator.validate("anon-key-2") is False
        assert validator.validate("") is False

    def test_accepts_any_rotated_key(self) -> None:
        """Test that every configured key is accepted during rotation."""
        validator = APIKeyValidator(api_keys=["old-key", "new-key"])
        assert validator.validate("old-key") is True
        assert validator.validate("new-key") is True
