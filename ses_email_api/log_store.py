"""
Email Log Store

Writes email lifecycle records to the DynamoDB log table and queries them
back by message id (table key) or destination (global secondary index).

Table layout:
- Partition key MessageId, sort key LogTime
- Index keyed on Destination, LogTime
- TTL attribute ExpiryTime
"""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key

from .config import AppConfig
from .utils import get_timestamp, local_time

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
NO_RESULTS_MESSAGE = "No results found"
WRITE_FAILURE_METRIC = "LogWriteFailures"


@dataclass
class LogRecord:
    """One immutable fact about an email's lifecycle."""

    message_id: str
    destination: str
    log_time: str
    status: str
    request_id: str = ""
    source_id: str = ""
    link: str = ""
    error_message: str = ""
    expiry_time: Optional[int] = None

    def to_item(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "MessageId": self.message_id,
            "RequestId": self.request_id,
            "Destination": self.destination,
            "SourceId": self.source_id,
            "LogTime": self.log_time,
            "LogStatus": self.status,
        }
        if self.expiry_time is not None:
            item["ExpiryTime"] = self.expiry_time
        if self.link:
            item["Link"] = self.link
        if self.error_message:
            item["ErrorMessage"] = self.error_message
        return item


@dataclass
class QueryResult:
    """Paged result envelope returned by the query operations."""

    success: bool = False
    data: List[Dict[str, Any]] = field(default_factory=list)
    message: str = ""
    last_evaluated_key: Optional[Dict[str, Any]] = None

    @property
    def more_pages(self) -> bool:
        return self.last_evaluated_key is not None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "data": self.data,
            "message": self.message,
        }
        if self.more_pages:
            result["lastEvaluatedKey"] = self.last_evaluated_key
            result["morePages"] = True
        return result


class ThreadLocalTable:
    """
    DynamoDB Table resource with one instance per thread.

    boto3 resources must not be shared between threads, so each thread that
    writes or queries gets its own session and Table.

    Args:
        table_name: Name of the DynamoDB table
    """

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        self._local = threading.local()

    @property
    def table(self) -> Any:
        table = getattr(self._local, "table", None)
        if table is None:
            table = boto3.session.Session().resource("dynamodb").Table(self.table_name)
            self._local.table = table
        return table

    def put_item(self, **kwargs: Any) -> Dict[str, Any]:
        return self.table.put_item(**kwargs)

    def query(self, **kwargs: Any) -> Dict[str, Any]:
        return self.table.query(**kwargs)


def _plain(value: Any) -> Any:
    """Convert DynamoDB Decimals so results can be serialized to JSON."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


class LogStore:
    """
    Log writer and query service for the email log table.

    Args:
        config: Application configuration
        table: boto3 DynamoDB Table resource, or a ThreadLocalTable when
            writes run on several threads
        cloudwatch: Optional boto3 CloudWatch client used to report write failures
    """

    def __init__(self, config: AppConfig, table: Any, cloudwatch: Any = None) -> None:
        self.config = config
        self.table = table
        self.cloudwatch = cloudwatch

    # Log writer ==========================================================

    def build_record(
        self,
        message_id: str = "",
        destination: str = "",
        source_id: str = "",
        status: str = "",
        request_id: str = "",
        timestamp: str = "",
        link: str = "",
        error_message: str = "",
    ) -> LogRecord:
        """
        Validate and normalize the fields of a log record.

        Raises:
            ValueError: If destination or message_id is missing, or the
                timestamp cannot be parsed
        """
        if not destination:
            raise ValueError("destination is required")
        if not message_id:
            raise ValueError("messageId is required")

        expiry_time = None
        if self.config.log_expiry_days > 0:
            expiry_time = int(time.time()) + self.config.log_expiry_days * SECONDS_PER_DAY

        return LogRecord(
            message_id=message_id,
            destination=destination,
            log_time=get_timestamp(timestamp),
            status=status.upper() if status else "ERROR",
            request_id=request_id or "",
            source_id=source_id or "",
            link=link or "",
            error_message=error_message or "",
            expiry_time=expiry_time,
        )

    def write_log(self, **fields: Any) -> bool:
        """
        Write a sent message log to DynamoDB.

        Keyword Args:
            message_id, destination, source_id, status, request_id,
            timestamp, link, error_message

        Returns:
            True if the record was written. Failures are reported through
            logging and the LogWriteFailures metric and never raised.
        """
        try:
            record = self.build_record(**fields)
            response = self.table.put_item(Item=record.to_item())
            logger.debug(f"DynamoDB response: {json.dumps(response, default=str)}")
            return True
        except Exception as e:
            self._report_write_failure(fields, e)
            return False

    def _report_write_failure(self, fields: Dict[str, Any], error: Exception) -> None:
        logger.error(json.dumps({
            "event": "log_write_failed",
            "messageId": fields.get("message_id", ""),
            "destination": fields.get("destination", ""),
            "status": fields.get("status", ""),
            "errorType": type(error).__name__,
            "error": str(error),
        }))

        if not (self.cloudwatch and self.config.metrics_namespace):
            return
        try:
            self.cloudwatch.put_metric_data(
                Namespace=self.config.metrics_namespace,
                MetricData=[
                    {
                        "MetricName": WRITE_FAILURE_METRIC,
                        "Dimensions": [
                            {"Name": "AppName", "Value": self.config.app_name},
                        ],
                        "Value": 1,
                        "Unit": "Count",
                    }
                ],
            )
        except Exception as e:
            logger.error(f"Error publishing {WRITE_FAILURE_METRIC} metric: {str(e)}")

    # Query functions =====================================================

    def query_message_id(
        self, message_id: str, exclusive_start_key: Optional[Dict[str, Any]] = None
    ) -> QueryResult:
        """Get logs by MessageId, newest first."""
        return self._run_query(
            {"KeyConditionExpression": Key("MessageId").eq(message_id)},
            exclusive_start_key,
        )

    def query_destination(
        self, destination: str, exclusive_start_key: Optional[Dict[str, Any]] = None
    ) -> QueryResult:
        """Get logs by destination email address, newest first."""
        return self._run_query(
            {
                "IndexName": self.config.destination_index_name,
                "KeyConditionExpression": Key("Destination").eq(destination),
            },
            exclusive_start_key,
        )

    def _run_query(
        self, params: Dict[str, Any], exclusive_start_key: Optional[Dict[str, Any]]
    ) -> QueryResult:
        params["ScanIndexForward"] = False
        if self.config.query_page_limit:
            params["Limit"] = self.config.query_page_limit
        if exclusive_start_key:
            params["ExclusiveStartKey"] = exclusive_start_key

        response = self.table.query(**params)
        items = response.get("Items") or []
        if not items:
            return QueryResult(success=False, message=NO_RESULTS_MESSAGE)

        data = [self._with_local_time(_plain(item)) for item in items]
        last_key = response.get("LastEvaluatedKey")
        return QueryResult(
            success=True,
            data=data,
            last_evaluated_key=_plain(last_key) if last_key else None,
        )

    def _with_local_time(self, item: Dict[str, Any]) -> Dict[str, Any]:
        item["LocalTime"] = local_time(item["LogTime"], self.config.utc_offset)
        return item
