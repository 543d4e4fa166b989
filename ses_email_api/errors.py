"""
Error types raised by the API handlers.

API Gateway maps a failed Lambda invocation to an HTTP status by matching
the errorMessage string against ".*:400.*" and ".*:500.*", so ApiError
renders its payload as compact JSON.
"""

import json
from typing import Any, Dict


class ValidationError(Exception):
    """Client input error, reported to the caller as a 400."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Validation Error: {message}")


class ApiError(Exception):
    """
    Error returned to API Gateway.

    Args:
        message: Human readable message for the caller
        status_code: HTTP status, defaults to 500
        request_id: Correlation id of the inbound request
        source_id: Caller supplied correlation label
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        request_id: str = "",
        source_id: str = "",
    ) -> None:
        self.status_code = status_code or 500
        self.payload: Dict[str, Any] = {
            "success": False,
            "statusCode": self.status_code,
            "message": message,
        }
        if request_id:
            self.payload["requestId"] = request_id
        if source_id:
            self.payload["sourceId"] = source_id
        super().__init__(json.dumps(self.payload, separators=(",", ":")))
