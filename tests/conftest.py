"""
Shared fixtures: a moto-backed log table and LogStore.
"""

import boto3
import pytest
from moto import mock_aws

from ses_email_api.config import AppConfig
from ses_email_api.log_store import LogStore

TABLE_NAME = "testLogTable"
INDEX_NAME = "destinationIdx"


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Mocked AWS credentials so no real account is touched."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        app_name="testApp",
        log_table_name=TABLE_NAME,
        destination_index_name=INDEX_NAME,
        log_expiry_days=30,
        utc_offset="+07:00",
        default_from_address="do-not-reply@example.com",
        configuration_set_name="testAppConfigSet",
    )


@pytest.fixture
def log_table():
    """Log table with the same keys and index as the deployed table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {"AttributeName": "MessageId", "KeyType": "HASH"},
                {"AttributeName": "LogTime", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "MessageId", "AttributeType": "S"},
                {"AttributeName": "LogTime", "AttributeType": "S"},
                {"AttributeName": "Destination", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": INDEX_NAME,
                    "KeySchema": [
                        {"AttributeName": "Destination", "KeyType": "HASH"},
                        {"AttributeName": "LogTime", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        yield table


@pytest.fixture
def log_store(config, log_table) -> LogStore:
    return LogStore(config, log_table)
