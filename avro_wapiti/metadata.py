"""Shipping-label projection between events and Avro records

Every record carries six routing/provenance fields next to the payload. On
the way out they are read from ``[@metadata][wapiti]`` (with defaults); on the
way in they are put back there and the payload is turned into the event body
according to ``message_format``.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import structlog

from .errors import PayloadDecodeError, PayloadEncodeError, UnsupportedMessageFormatError
from .event import Event

logger = structlog.get_logger(__name__)

METADATA_NAMESPACE = '[@metadata][wapiti]'
WARNING_TAG = '_wapitiwarning'
MESSAGE_FIELD = 'message'

LABEL_FIELDS = (
    'submitted_from',
    'originating_host',
    'vertical',
    'environment',
    'processing_key',
    'message_format',
)

HOST_IDENTITY_FIELDS = ('[host][name]', '[host][hostname]', '[host][ip]', 'host')

LABEL_DEFAULTS = {
    'submitted_from': 'local',
    'originating_host': 'local',
    'vertical': 'unknown',
    'environment': 'unknown',
    'processing_key': 'none',
    'message_format': 'json',
}

EXCLUDE_ALWAYS = ('@timestamp', '@version')


class MessageFormat(Enum):
    """How the ``message`` field of a record is interpreted"""
    JSON = "json"
    BINARY = "binary"
    PLAIN = "plain"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'MessageFormat':
        """Map a label value to a format; missing or unknown values are PLAIN"""
        if value == cls.JSON.value:
            return cls.JSON
        if value == cls.BINARY.value:
            return cls.BINARY
        return cls.PLAIN


@dataclass
class InboundPayload:
    """Result of splitting a decoded record"""
    metadata: Dict[str, Any]
    format: MessageFormat
    body: Dict[str, Any]

    def to_event(self) -> Event:
        """Build the event the pipeline receives"""
        event = Event(self.body)
        event.set(METADATA_NAMESPACE, dict(self.metadata))
        if self.format is MessageFormat.PLAIN:
            event.tag(WARNING_TAG)
        return event


def _label(event: Event, field: str) -> Optional[Any]:
    return event.get(f'{METADATA_NAMESPACE}[{field}]')


def _host_identity(event: Event) -> Optional[str]:
    for reference in HOST_IDENTITY_FIELDS:
        value = event.get(reference)
        if isinstance(value, str) and value:
            return value
    return None


def project_outbound(event: Event, default_format: str = 'json') -> Dict[str, Any]:
    """Assemble the Avro record for *event*

    Args:
        event: Event being encoded.
        default_format: message_format used when the event carries none.

    Returns:
        Record dict with the six label fields and, where the format yields
        one, the ``message`` payload.
    """
    record: Dict[str, Any] = {}
    for field in LABEL_FIELDS:
        value = _label(event, field)
        if value is None and field in ('submitted_from', 'originating_host'):
            value = _host_identity(event)
        if value is None:
            value = default_format if field == 'message_format' else LABEL_DEFAULTS[field]
        record[field] = value

    message_format = MessageFormat.parse(record['message_format'])
    if message_format is MessageFormat.JSON:
        try:
            record[MESSAGE_FIELD] = event.to_json()
        except (TypeError, ValueError) as e:
            raise PayloadEncodeError(f"event cannot be serialized as JSON: {e}") from e
    elif event.includes(MESSAGE_FIELD):
        message = event.get(MESSAGE_FIELD)
        if message_format is MessageFormat.PLAIN and not isinstance(message, str):
            message = str(message)
        record[MESSAGE_FIELD] = message

    for key in EXCLUDE_ALWAYS:
        record.pop(key, None)
    return record


def project_inbound(record: Dict[str, Any]) -> InboundPayload:
    """Split a decoded record into label metadata and an event body

    Raises:
        PayloadDecodeError: message_format is json but the payload is not a
            JSON object.
        UnsupportedMessageFormatError: message_format is binary.
    """
    metadata = {field: record.get(field) for field in LABEL_FIELDS}
    payload = record.get(MESSAGE_FIELD)
    message_format = MessageFormat.parse(metadata['message_format'])

    if message_format is MessageFormat.JSON:
        try:
            body = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise PayloadDecodeError(f"message is not valid JSON: {e}") from e
        if not isinstance(body, dict):
            raise PayloadDecodeError(f"JSON message must be an object, got {type(body).__name__}")
        return InboundPayload(metadata=metadata, format=message_format, body=body)

    if message_format is MessageFormat.BINARY:
        logger.error("binary message_format cannot be decoded", **metadata)
        raise UnsupportedMessageFormatError(metadata['message_format'], metadata, payload)

    logger.warning(
        "record has no recognized message_format, treating as plain",
        message_format=metadata['message_format'],
    )
    return InboundPayload(metadata=metadata, format=message_format, body={MESSAGE_FIELD: payload})
