"""Avro schema-registry codec

Decode/encode Avro records as events using the associated Avro schema from a
Confluent schema registry.

Decoding needs only ``endpoint`` (plus credentials). Encoding additionally
needs a way to pick the write schema: ``schema_id``, or ``subject_name`` with
one of ``schema_version``, ``schema_uri`` or ``schema_string``.

Example usage::

    from avro_wapiti import AvroWapitiCodec, CodecConfig, Event

    codec = AvroWapitiCodec(CodecConfig(
        endpoint="http://schemas.example.com",
        subject_name="my_kafka_subject_name",
        schema_uri="/app/my_kafka_subject.avsc",
        register_schema=True,
    ))
    payload = codec.encode(Event({"message": "hello"}))
    event = codec.decode(payload)
"""
from typing import Any, Callable, Optional

import structlog

from .config import CodecConfig
from .errors import AvroDecodeError
from .event import Event
from .framing import decode_frame, encode_frame
from .metadata import project_inbound, project_outbound
from .registry import SchemaRegistryClient
from .resolver import WriteSchemaResolver
from .schema_cache import SchemaCache
from .serialization import avro

logger = structlog.get_logger(__name__)

EventCallback = Callable[[Event, bytes], Any]


class AvroWapitiCodec:
    """Translates between events and registry-framed Avro messages"""

    def __init__(self, config: CodecConfig, registry=None):
        """Initialize codec

        Args:
            config: Codec options; shared by every component of this instance.
            registry: Optional registry client. Built from *config* when
                omitted.
        """
        self.config = config
        self.registry = registry
        self.schema_cache: Optional[SchemaCache] = None
        self.resolver: Optional[WriteSchemaResolver] = None
        self._on_event: Optional[EventCallback] = None
        self.register()

    def register(self) -> None:
        """Set up the registry client, schema cache and write-schema resolver

        Called by the constructor; calling it again discards the cache and
        any resolved write schema.
        """
        if self.registry is None:
            self.registry = SchemaRegistryClient.from_config(self.config)
        self.schema_cache = SchemaCache(self.registry)
        self.resolver = WriteSchemaResolver(self.config, self.registry)

    def close(self) -> None:
        close = getattr(self.registry, 'close', None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def on_event(self, callback: EventCallback) -> None:
        """Register a callback invoked with ``(event, payload)`` after each encode"""
        self._on_event = callback

    def decode(self, data) -> Event:
        """Decode one message into an event

        Args:
            data: Raw or base64 frame as bytes or str.

        Returns:
            The event, with shipping-label fields under ``[@metadata][wapiti]``.

        Raises:
            FrameError: Malformed envelope.
            RegistryFetchError: Schema id could not be fetched.
            AvroDecodeError: Body does not match the schema.
            PayloadDecodeError: Payload does not match its message_format.
            UnsupportedMessageFormatError: message_format is binary.
        """
        frame = decode_frame(data)
        logger.debug("decoding message", schema_id=frame.schema_id, base64_wrapped=frame.base64_wrapped)
        schema = self.schema_cache.get_schema(frame.schema_id)
        record = avro.decode(frame.body, schema)
        if not isinstance(record, dict):
            raise AvroDecodeError(f"schema {frame.schema_id} does not describe a record")
        return project_inbound(record).to_event()

    def encode(self, event: Event) -> bytes:
        """Encode one event into a frame

        Returns:
            The raw frame, or its base64 text (as bytes) when
            ``binary_encoded`` is off.

        Raises:
            ConfigError: Write schema options missing.
            SchemaIncompatibleError: Write schema failed the compatibility check.
            RegistryFetchError: Registry lookups failed.
            AvroEncodeError: Record does not match the write schema.
        """
        record = project_outbound(event)
        schema_id = self.resolver.resolve_write_schema_id()
        schema = self.schema_cache.get_schema(schema_id)
        payload = encode_frame(schema_id, avro.encode(record, schema), binary=self.config.binary_encoded)
        if self._on_event is not None:
            self._on_event(event, payload)
        return payload
