"""
Notification Log Function

Takes SES event notifications delivered by SNS and writes them to the log
table. One SNS invocation can carry several records; each record's
Sns.Message field holds one SES notification.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Any, Dict, List

from ..config import AppConfig
from ..events import classify
from ..log_store import LogStore
from . import configure_logging, create_log_store

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """An SNS record could not be turned into a log record."""


class NotificationLogHandler:
    """
    Classifies each SES notification in a batch and logs it.

    Args:
        config: Application configuration
        log_store: Log writer for the notification records
    """

    def __init__(self, config: AppConfig, log_store: LogStore) -> None:
        self.config = config
        self.log_store = log_store

    def handle(self, event: Dict[str, Any]) -> bool:
        """
        Log every notification in the batch.

        Returns:
            True when every record was processed, False if the batch was
            empty or any record failed
        """
        try:
            records = event.get("Records")
            if not isinstance(records, list) or not records:
                raise NotificationError("No records found in SNS event")

            workers = min(self.config.notification_workers, len(records))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(self.process_record, record) for record in records]
                message_ids = [future.result() for future in futures]

            logger.info(f"Logged SNS messages: {json.dumps(message_ids)}")
            return True

        except Exception as e:
            logger.error(f"Error caught: {str(e) or 'Internal error'}", exc_info=not isinstance(e, NotificationError))
            return False

    def process_record(self, record: Dict[str, Any]) -> str:
        """
        Classify one SNS record and write its log record.

        Returns:
            The SES MessageId of the notification

        Raises:
            NotificationError: If the notification is missing required data
        """
        sns = record.get("Sns") or {}
        try:
            message = json.loads(sns.get("Message") or "")
        except json.JSONDecodeError as e:
            raise NotificationError(f"Invalid SNS message: {str(e)}")
        if not isinstance(message, dict):
            raise NotificationError("SNS message is not a JSON object")

        event_type = message.get("eventType") or ""
        message_id = (message.get("mail") or {}).get("messageId") or ""
        if not message_id:
            raise NotificationError("Missing messageId")

        details = classify(message)
        destinations: List[str] = details.destinations
        if not destinations:
            raise NotificationError("Did not find any destinations")
        if not details.timestamp:
            raise NotificationError(f"Unknown eventType: {event_type}")

        # Sends are single recipient, so only the first destination is logged
        written = self.log_store.write_log(
            message_id=message_id,
            request_id=sns.get("MessageId") or "",
            status=str(event_type).upper(),
            destination=destinations[0],
            timestamp=details.timestamp,
            link=details.link,
            error_message=details.error_message,
        )
        if not written:
            logger.warning(f"Log write failed for {event_type} notification of {message_id}")
        return message_id


@lru_cache(maxsize=None)
def _get_handler() -> NotificationLogHandler:
    config = AppConfig.from_env()
    configure_logging(config)
    return NotificationLogHandler(config, create_log_store(config))


def lambda_handler(event: Dict[str, Any], context: Any) -> bool:
    """
    Handle an SNS event of SES notifications.

    Expected input:
    {
        "Records": [
            {"Sns": {"MessageId": "...", "Message": "<SES notification JSON>"}}
        ]
    }
    """
    handler = _get_handler()
    logger.info(f"Event: {json.dumps(event, default=str)}")
    return handler.handle(event)
