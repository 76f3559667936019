"""Unit tests for AWS Lambda handler."""

from unittest.mock import MagicMock, Mock, patch

import pytest

from src.lambda_handler import lambda_handler


@pytest.fixture
def api_gateway_event() -> dict:
    """API Gateway HTTP API event for GET /health."""
    return {
        "version": "2.0",
        "requestContext": {
            "http": {"method": "GET", "path": "/health"},
            "requestId": "request-id",
        },
        "rawPath": "/health",
    }


@pytest.mark.unit
class TestLambdaHandler:
    """Tests for main lambda_handler function."""

    @patch("src.lambda_handler.mangum_handler")
    def test_routes_api_gateway_events_to_mangum(
        self, mock_mangum_handler: Mock, api_gateway_event: dict
    ) -> None:
        """Test that API Gateway events are served by Mangum."""
        mock_mangum_handler.return_value = {
            "statusCode": 200,
            "body": '{"status": "healthy"}',
        }
        context = MagicMock()
        context.aws_request_id = "test-request-id"

        result = lambda_handler(api_gateway_event, context)

        assert result["statusCode"] == 200
        mock_mangum_handler.assert_called_once_with(api_gateway_event, context)

    @patch("src.lambda_handler.mangum_handler")
    def test_handles_unhandled_exceptions(
        self, mock_mangum_handler: Mock, api_gateway_event: dict
    ) -> None:
        """Test that unhandled exceptions are caught and returned as 500 errors."""
        mock_mangum_handler.side_effect = Exception("Unexpected error")
        context = MagicMock()
        context.aws_request_id = "test-request-id"

        result = lambda_handler(api_gateway_event, context)

        assert result["statusCode"] == 500
        assert result["headers"]["Content-Type"] == "application/json"
        assert "Internal server error" in result["body"]
