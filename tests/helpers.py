"""
Builders for SES notifications and API Gateway events used across tests.
"""

import json
from typing import Any, Dict, Iterable


def ses_event(
    event_type: str,
    message_id: str = "msg-1",
    destination: Iterable[str] = ("a@b.com",),
    **sections: Any,
) -> Dict[str, Any]:
    """Build an SES event-publishing notification."""
    message: Dict[str, Any] = {
        "eventType": event_type,
        "mail": {
            "timestamp": "2023-01-01T00:00:00.000Z",
            "source": "do-not-reply@example.com",
            "messageId": message_id,
            "destination": list(destination),
        },
    }
    message.update(sections)
    return message


def sns_record(message: Any, envelope_id: str = "sns-1") -> Dict[str, Any]:
    """Wrap an SES notification the way SNS delivers it to Lambda."""
    return {
        "EventSource": "aws:sns",
        "Sns": {
            "Type": "Notification",
            "MessageId": envelope_id,
            "Message": message if isinstance(message, str) else json.dumps(message),
        },
    }


def api_event(params: Dict[str, Any], resource_path: str = "/send", request_id: str = "req-1") -> Dict[str, Any]:
    """Build the event produced by the API Gateway request mapping template."""
    return {
        "params": params,
        "context": {"resourcePath": resource_path, "requestId": request_id},
    }
