"""AWS Lambda handler for API Gateway requests.

API Gateway events are translated to ASGI by Mangum and served by the
FastAPI application.
"""

import logging
import os
from typing import Any

from mangum import Mangum

from lambda_dependencies import get_fastapi_app, initialize_lambda_environment

logger = logging.getLogger(__name__)

# Cold start initialization, cached for warm starts (skipped in test mode)
if os.getenv("ENVIRONMENT") != "test":
    initialize_lambda_environment()
    app = get_fastapi_app()
    mangum_handler = Mangum(app, lifespan="off")
else:
    app = None  # type: ignore
    mangum_handler = None  # type: ignore


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Serve one API Gateway request.

    Args:
        event: The API Gateway event payload
        context: The Lambda context object

    Returns:
        API Gateway response dict
    """
    logger.info(f"Received Lambda invocation, request_id: {context.aws_request_id}")

    try:
        result: dict[str, Any] = mangum_handler(event, context)
        return result
    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json"},
            "body": '{"detail": "Internal server error"}',
        }
