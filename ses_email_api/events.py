"""
SES Event Classifier

Maps an SES event-publishing notification to the fields the log needs.
Each output field has its own table keyed by EventType, and every table must
cover every event type.

Reference:
https://docs.aws.amazon.com/ses/latest/dg/event-publishing-retrieving-sns-contents.html
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

T = TypeVar("T")
Message = Dict[str, Any]


class EventType(str, Enum):
    """Event types published by the configuration set."""

    SEND = "Send"
    DELIVERY = "Delivery"
    OPEN = "Open"
    CLICK = "Click"
    BOUNCE = "Bounce"
    REJECT = "Reject"
    COMPLAINT = "Complaint"

    @classmethod
    def parse(cls, value: Any) -> Optional["EventType"]:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class ClassifiedEvent:
    """Normalized view of one SES notification."""

    timestamp: str = ""
    destinations: List[str] = field(default_factory=list)
    link: str = ""
    error_message: str = ""


def _section(message: Message, name: str) -> Dict[str, Any]:
    return message.get(name) or {}


def _address_list(value: Any) -> List[str]:
    # A single address may arrive as a bare string
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str) and v]
    return []


def _mail_destinations(message: Message) -> List[str]:
    return _address_list(_section(message, "mail").get("destination"))


def _recipient_addresses(recipients: Optional[List[Dict[str, Any]]]) -> List[str]:
    return [r["emailAddress"] for r in recipients or [] if r.get("emailAddress")]


def _complaint_recipients(message: Message) -> List[str]:
    # Complaint reports can name every address at the complainant's domain
    complaint = _section(message, "complaint")
    recipients = complaint.get("bouncedRecipients")
    if recipients is None:
        recipients = complaint.get("complainedRecipients")
    return _recipient_addresses(recipients)


def _exhaustive(name: str, table: Mapping[EventType, Callable[[Message], T]]) -> Mapping[EventType, Callable[[Message], T]]:
    missing = [event_type.value for event_type in EventType if event_type not in table]
    if missing:
        raise RuntimeError(f"{name} table has no entry for: {', '.join(missing)}")
    return MappingProxyType(dict(table))


def _empty(message: Message) -> str:
    return ""


TIMESTAMP = _exhaustive("timestamp", {
    EventType.SEND: lambda m: _section(m, "mail").get("timestamp", ""),
    EventType.OPEN: lambda m: _section(m, "open").get("timestamp", ""),
    EventType.DELIVERY: lambda m: _section(m, "delivery").get("timestamp", ""),
    EventType.CLICK: lambda m: _section(m, "click").get("timestamp", ""),
    EventType.BOUNCE: lambda m: _section(m, "bounce").get("timestamp", ""),
    EventType.REJECT: lambda m: _section(m, "reject").get("timestamp", ""),
    EventType.COMPLAINT: lambda m: _section(m, "complaint").get("timestamp", ""),
})

DESTINATIONS = _exhaustive("destinations", {
    EventType.SEND: _mail_destinations,
    EventType.OPEN: _mail_destinations,
    EventType.DELIVERY: lambda m: _address_list(_section(m, "delivery").get("recipients")),
    EventType.CLICK: _mail_destinations,
    EventType.BOUNCE: lambda m: _recipient_addresses(_section(m, "bounce").get("bouncedRecipients")),
    EventType.REJECT: _mail_destinations,
    EventType.COMPLAINT: _complaint_recipients,
})

LINK = _exhaustive("link", {
    EventType.SEND: _empty,
    EventType.OPEN: _empty,
    EventType.DELIVERY: _empty,
    EventType.CLICK: lambda m: _section(m, "click").get("link", ""),
    EventType.BOUNCE: _empty,
    EventType.REJECT: _empty,
    EventType.COMPLAINT: _empty,
})

ERROR_MESSAGE = _exhaustive("errorMessage", {
    EventType.SEND: _empty,
    EventType.OPEN: _empty,
    EventType.DELIVERY: _empty,
    EventType.CLICK: _empty,
    EventType.BOUNCE: lambda m: _section(m, "bounce").get("bounceType", ""),
    EventType.REJECT: lambda m: _section(m, "reject").get("reason", ""),
    EventType.COMPLAINT: lambda m: _section(m, "complaint").get("complaintSubType", ""),
})


def classify(message: Message) -> ClassifiedEvent:
    """
    Get event details based on the event type.

    Args:
        message: SES notification parsed from the SNS message body

    Returns:
        ClassifiedEvent; every field is empty for an unrecognized eventType
    """
    event_type = EventType.parse(message.get("eventType"))
    if event_type is None:
        return ClassifiedEvent()
    return ClassifiedEvent(
        timestamp=TIMESTAMP[event_type](message) or "",
        destinations=DESTINATIONS[event_type](message),
        link=LINK[event_type](message) or "",
        error_message=ERROR_MESSAGE[event_type](message) or "",
    )
