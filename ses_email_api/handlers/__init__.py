"""
Lambda entry points for the SES Email API.

Each module exposes lambda_handler(event, context). Clients and the
configuration are built once per process on the first invocation.
"""

import logging
from typing import Any, Dict

import boto3

from ..config import AppConfig
from ..log_store import LogStore, ThreadLocalTable


def configure_logging(config: AppConfig) -> None:
    """Set the root logger level; the Lambda runtime installs the handler."""
    logging.getLogger().setLevel(config.log_level)


def as_object(value: Any) -> Dict[str, Any]:
    """Return value if it is a JSON object, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def create_log_store(config: AppConfig) -> LogStore:
    """Create a LogStore bound to the configured DynamoDB table."""
    if not config.log_table_name:
        raise ValueError("LOG_TABLE_NAME environment variable is required")
    # Clients are thread safe and shared; Table resources are per thread
    cloudwatch = boto3.client("cloudwatch") if config.metrics_namespace else None
    return LogStore(config, ThreadLocalTable(config.log_table_name), cloudwatch)
