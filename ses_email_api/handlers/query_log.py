"""
Query Log Function

Looks up email logs by message id or destination address. The lookup mode
comes from the API resource path:
- /query/message-id/{messageid}
- /query/destination/{destination}
Both accept an optional exclusivestartkey query string parameter holding the
URL-encoded JSON cursor returned by the previous page.
"""

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional
from urllib.parse import unquote

from ..config import AppConfig
from ..errors import ApiError, ValidationError
from ..log_store import LogStore
from ..utils import is_valid_email
from . import as_object, configure_logging, create_log_store

logger = logging.getLogger(__name__)

MESSAGE_ID_QUERY = "messageId"
DESTINATION_QUERY = "destination"


def _parse_cursor(raw: str) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        cursor = json.loads(unquote(raw))
    except json.JSONDecodeError:
        raise ValidationError("exclusiveStartKey must be a JSON object")
    if not isinstance(cursor, dict):
        raise ValidationError("exclusiveStartKey must be a JSON object")
    return cursor or None


class QueryLogHandler:
    """
    Validates a log query and runs it against the log store.

    Args:
        log_store: Log query service
    """

    def __init__(self, log_store: LogStore) -> None:
        self.log_store = log_store

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        body = as_object(event).get("params")
        params = as_object(body)
        context = as_object(as_object(event).get("context"))
        message_id = params.get("messageId") or ""
        destination = params.get("destination") or ""
        exclusive_start_key = params.get("exclusiveStartKey") or ""
        resource_path = context.get("resourcePath") or ""
        request_id = context.get("requestId") or "Unknown"

        try:
            query = ""
            if body is not None and not isinstance(body, dict):
                raise ValidationError("Request parameters must be a JSON object")
            if "message-id" in resource_path:
                query = MESSAGE_ID_QUERY
            if "destination" in resource_path:
                query = DESTINATION_QUERY

            if not query:
                raise ValueError("Invalid Path")
            if query == MESSAGE_ID_QUERY and not message_id:
                raise ValidationError("messageId parameter is required")
            if query == DESTINATION_QUERY and not destination:
                raise ValidationError("destination parameter is required")

            cursor = _parse_cursor(exclusive_start_key)

            if query == MESSAGE_ID_QUERY:
                response = self.log_store.query_message_id(unquote(message_id), cursor)
            else:
                destination = unquote(destination)
                if not is_valid_email(destination):
                    raise ValidationError("A valid email address destination is required")
                response = self.log_store.query_destination(destination, cursor)

            return {**response.to_dict(), "requestId": request_id}

        except Exception as e:
            message = str(e) or "Internal handler error"
            logger.error(f"Error caught: {message}", exc_info=not isinstance(e, ValidationError))
            status_code = 400 if isinstance(e, ValidationError) else 500
            raise ApiError(message, status_code, request_id)


@lru_cache(maxsize=None)
def _get_handler() -> QueryLogHandler:
    config = AppConfig.from_env()
    configure_logging(config)
    return QueryLogHandler(create_log_store(config))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Query the email log.

    Expected input (API Gateway mapping template):
    {
        "params": {"messageId": "...", "destination": "...", "exclusiveStartKey": "..."},
        "context": {"resourcePath": "/query/message-id/{messageid}", "requestId": "..."}
    }

    Returns:
        {"success", "data", "message", "lastEvaluatedKey"?, "morePages"?, "requestId"}

    Raises:
        ApiError: JSON payload with statusCode 400 or 500
    """
    handler = _get_handler()
    logger.info(f"Event: {json.dumps(event, default=str)}")
    return handler.handle(event)
