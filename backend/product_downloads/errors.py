"""Error types shared by the routes and the Shopify / S3 clients."""

import json
from typing import Any, Dict, List, Optional


class DownloadsError(Exception):
    """Base for all errors rendered as a plain-text response."""

    status_code = 500
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DownloadsError):
    """A required path or body parameter is missing or malformed."""

    status_code = 400


class NotFoundError(DownloadsError):
    """No matching product or attached file."""

    status_code = 404


class Unauthorized(DownloadsError):
    """Missing or invalid shop session on a protected route."""

    status_code = 401

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.headers = {"X-Shopify-API-Request-Failure-Reauthorize": "1"}


class OperationRejected(DownloadsError):
    """Shopify answered a GraphQL operation with errors or userErrors."""

    status_code = 502

    def __init__(self, op_name: str, errors: List[Any]) -> None:
        super().__init__(json.dumps(errors))
        self.op_name = op_name
        self.errors = errors


class TransportError(DownloadsError):
    """Network or provider failure talking to Shopify or S3."""

    status_code = 502
