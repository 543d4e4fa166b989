"""
Send Email Function

Receives API requests and sends email via SES.

SES can send to several addresses (and cc/bcc) in one call, but then one
MessageId is shared by every recipient. Sending is limited to a single
toAddress so each MessageId maps to exactly one destination in the log.
"""

import json
import logging
from functools import lru_cache
from typing import Any, Dict, List

import boto3
from botocore.exceptions import ClientError

from ..config import AppConfig
from ..errors import ApiError, ValidationError
from ..log_store import LogStore
from ..utils import get_timestamp, is_valid_email
from . import as_object, configure_logging, create_log_store

logger = logging.getLogger(__name__)

# SES error codes where we send a 400 response to the caller
# https://docs.aws.amazon.com/ses/latest/APIReference-V2/API_SendEmail.html
SES_CLIENT_ERROR_CODES = frozenset([
    "MailFromDomainNotVerified",
    "MailFromDomainNotVerifiedException",
    "MessageRejected",
    "BadRequestException",
])

CHARSET = "UTF-8"


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


class SendEmailHandler:
    """
    Validates a send request, sends it with SES v2 and logs the outcome.

    Args:
        config: Application configuration
        ses_client: boto3 "sesv2" client
        log_store: Log writer for the outcome record
    """

    def __init__(self, config: AppConfig, ses_client: Any, log_store: LogStore) -> None:
        self.config = config
        self.ses = ses_client
        self.log_store = log_store

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        body = as_object(event).get("params")
        params = as_object(body)
        context = as_object(as_object(event).get("context"))

        to_address = params.get("toAddress") or ""
        reply_to_addresses: List[str] = params.get("replyToAddresses") or []
        from_address = params.get("fromAddress") or ""
        subject = params.get("subject") or ""
        message_text = params.get("messageText") or ""
        message_html = params.get("messageHtml") or ""
        source_id = params.get("sourceId") or "Not supplied"
        request_id = context.get("requestId") or "Unknown"

        result: Dict[str, Any] = {
            "success": False,
            "messageId": "",
            "status": "ERROR",
            "requestId": request_id,
            "sourceId": source_id,
            "destination": to_address if isinstance(to_address, str) else "",
        }

        try:
            if body is not None and not isinstance(body, dict):
                raise ValidationError("Request body must be a JSON object")
            if not to_address:
                raise ValidationError("toAddress is required")
            if not subject:
                raise ValidationError("subject is required")
            if not message_html and not message_text:
                raise ValidationError("Either messageText or messageHtml is required")
            if not isinstance(reply_to_addresses, list):
                raise ValidationError("replyToAddresses must be a list")

            for email in [*reply_to_addresses, to_address, from_address]:
                if email and not is_valid_email(email):
                    raise ValidationError(f"Invalid email address: {email}")

            email_params = self._build_email_params(
                to_address, reply_to_addresses, from_address, subject, message_text, message_html
            )

            result["timestamp"] = get_timestamp()
            response = self.ses.send_email(**email_params)

            result["status"] = "QUEUED"
            result["success"] = True
            result["messageId"] = response["MessageId"]
            logger.info(f"Email queued with MessageId: {result['messageId']}")
            return result

        except Exception as e:
            message = str(e) or "Internal Error"
            logger.error(f"Error caught: {message}", exc_info=not isinstance(e, ValidationError))
            code = _error_code(e)
            if code:
                message = e.response.get("Error", {}).get("Message") or message
            status_code = 400 if isinstance(e, ValidationError) or code in SES_CLIENT_ERROR_CODES else 500
            result["errorMessage"] = message
            raise ApiError(message, status_code, request_id, source_id)

        finally:
            self.log_store.write_log(
                message_id=result["messageId"] or request_id,
                destination=result["destination"],
                source_id=result["sourceId"],
                status=result["status"],
                request_id=result["requestId"],
                timestamp=result.get("timestamp", ""),
                error_message=result.get("errorMessage", ""),
            )

    def _build_email_params(
        self,
        to_address: str,
        reply_to_addresses: List[str],
        from_address: str,
        subject: str,
        message_text: str,
        message_html: str,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if message_text:
            body["Text"] = {"Data": message_text, "Charset": CHARSET}
        if message_html:
            body["Html"] = {"Data": message_html, "Charset": CHARSET}

        email_params: Dict[str, Any] = {
            "FromEmailAddress": from_address or self.config.default_from_address,
            "Destination": {"ToAddresses": [to_address]},
            "Content": {
                "Simple": {
                    "Subject": {"Data": subject, "Charset": CHARSET},
                    "Body": body,
                }
            },
        }
        if reply_to_addresses:
            email_params["ReplyToAddresses"] = reply_to_addresses
        if self.config.configuration_set_name:
            email_params["ConfigurationSetName"] = self.config.configuration_set_name
        return email_params


@lru_cache(maxsize=None)
def _get_handler() -> SendEmailHandler:
    config = AppConfig.from_env()
    configure_logging(config)
    return SendEmailHandler(config, boto3.client("sesv2"), create_log_store(config))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Send a single email.

    Expected input (API Gateway mapping template):
    {
        "params": {
            "toAddress": "user@example.com",
            "replyToAddresses": [] (optional),
            "fromAddress": "sender@verified-domain.com" (optional),
            "subject": "Subject",
            "messageText": "..." and/or "messageHtml": "...",
            "sourceId": "caller label" (optional)
        },
        "context": {"resourcePath": "/send", "requestId": "..."}
    }

    Raises:
        ApiError: JSON payload with statusCode 400 or 500
    """
    handler = _get_handler()
    # Message bodies are not logged
    logger.debug(f"Event keys: {json.dumps(sorted(event.get('params') or {}))}")
    return handler.handle(event)
