"""
Unit tests for the query log handler.
"""

import json
from unittest.mock import MagicMock
from urllib.parse import quote

import pytest
from botocore.exceptions import ClientError

from ses_email_api.errors import ApiError
from ses_email_api.handlers.query_log import QueryLogHandler
from ses_email_api.log_store import QueryResult
from tests.helpers import api_event

MESSAGE_ID_PATH = "/query/message-id/{messageid}"
DESTINATION_PATH = "/query/destination/{destination}"


def query_event(resource_path, message_id="", destination="", exclusive_start_key=""):
    return api_event(
        {"messageId": message_id, "destination": destination, "exclusiveStartKey": exclusive_start_key},
        resource_path=resource_path,
        request_id="req-7",
    )


class TestQueryLogHandler:
    """Request validation and dispatch with a mocked log store."""

    def setup_method(self):
        self.log_store = MagicMock()
        self.log_store.query_message_id.return_value = QueryResult(success=True, data=[{"MessageId": "msg-1"}])
        self.log_store.query_destination.return_value = QueryResult(success=True, data=[{"MessageId": "msg-1"}])
        self.handler = QueryLogHandler(self.log_store)

    def test_query_by_message_id(self):
        result = self.handler.handle(query_event(MESSAGE_ID_PATH, message_id="msg%2D1"))

        self.log_store.query_message_id.assert_called_once_with("msg-1", None)
        assert result == {"success": True, "data": [{"MessageId": "msg-1"}], "message": "", "requestId": "req-7"}

    def test_query_by_destination_decodes_address(self):
        self.handler.handle(query_event(DESTINATION_PATH, destination="a%40b.com"))

        self.log_store.query_destination.assert_called_once_with("a@b.com", None)

    def test_cursor_is_decoded_and_passed_through(self):
        cursor = {"MessageId": "msg-1", "LogTime": "2023-01-01T00:00:00.000Z"}

        self.handler.handle(query_event(MESSAGE_ID_PATH, message_id="msg-1",
                                        exclusive_start_key=quote(json.dumps(cursor))))

        self.log_store.query_message_id.assert_called_once_with("msg-1", cursor)

    def test_more_pages_returned(self):
        cursor = {"MessageId": "msg-1", "LogTime": "t"}
        self.log_store.query_message_id.return_value = QueryResult(
            success=True, data=[{"MessageId": "msg-1"}], last_evaluated_key=cursor
        )

        result = self.handler.handle(query_event(MESSAGE_ID_PATH, message_id="msg-1"))

        assert result["morePages"] is True
        assert result["lastEvaluatedKey"] == cursor

    def test_no_results_is_not_an_error(self):
        self.log_store.query_destination.return_value = QueryResult(success=False, message="No results found")

        result = self.handler.handle(query_event(DESTINATION_PATH, destination="a@b.com"))

        assert result == {"success": False, "data": [], "message": "No results found", "requestId": "req-7"}

    @pytest.mark.parametrize("event,message", [
        (query_event(MESSAGE_ID_PATH), "Validation Error: messageId parameter is required"),
        (query_event(DESTINATION_PATH), "Validation Error: destination parameter is required"),
        (query_event(DESTINATION_PATH, destination="not-an-email"),
         "Validation Error: A valid email address destination is required"),
        (query_event(MESSAGE_ID_PATH, message_id="msg-1", exclusive_start_key="%7Bbroken"),
         "Validation Error: exclusiveStartKey must be a JSON object"),
        (query_event(MESSAGE_ID_PATH, message_id="msg-1", exclusive_start_key="%5B1%5D"),
         "Validation Error: exclusiveStartKey must be a JSON object"),
    ])
    def test_client_errors_are_400(self, event, message):
        with pytest.raises(ApiError) as exc_info:
            self.handler.handle(event)

        assert exc_info.value.status_code == 400
        assert json.loads(str(exc_info.value)) == {
            "success": False,
            "statusCode": 400,
            "message": message,
            "requestId": "req-7",
        }
        self.log_store.query_destination.assert_not_called()

    @pytest.mark.parametrize("params", [["msg-1"], "msg-1"])
    def test_non_object_params_are_400(self, params):
        event = {"params": params, "context": {"resourcePath": MESSAGE_ID_PATH, "requestId": "req-7"}}

        with pytest.raises(ApiError) as exc_info:
            self.handler.handle(event)

        assert exc_info.value.status_code == 400
        assert exc_info.value.payload["message"] == "Validation Error: Request parameters must be a JSON object"
        self.log_store.query_message_id.assert_not_called()

    def test_invalid_path_is_500(self):
        with pytest.raises(ApiError) as exc_info:
            self.handler.handle(query_event("/query/unknown", message_id="msg-1"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.payload["message"] == "Invalid Path"

    def test_store_failure_is_500(self):
        self.log_store.query_message_id.side_effect = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "down"}}, "Query"
        )

        with pytest.raises(ApiError) as exc_info:
            self.handler.handle(query_event(MESSAGE_ID_PATH, message_id="msg-1"))

        assert exc_info.value.status_code == 500


class TestQueryLogWithLogTable:
    """Queries through the moto log table."""

    def test_destination_query_newest_first(self, log_store):
        log_store.write_log(message_id="msg-1", destination="a@b.com", status="QUEUED",
                            timestamp="2023-01-01T00:00:00.000Z")
        log_store.write_log(message_id="msg-1", destination="a@b.com", status="DELIVERY",
                            timestamp="2023-01-01T00:00:03.000Z")

        result = QueryLogHandler(log_store).handle(query_event(DESTINATION_PATH, destination="a@b.com"))

        assert result["success"] is True
        assert [item["LogStatus"] for item in result["data"]] == ["DELIVERY", "QUEUED"]
        assert result["data"][0]["LocalTime"] == "01 Jan 2023, 07:00:03.000 +07:00"
        assert result["requestId"] == "req-7"
