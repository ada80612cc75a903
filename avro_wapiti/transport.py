"""Kafka transport for codec frames

Moves already-encoded frames to and from Kafka so the command-line tool can
produce and consume with the codec. Frames stay opaque bytes here.
"""
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from kafka import KafkaConsumer, KafkaProducer
from kafka.errors import KafkaError

logger = structlog.get_logger(__name__)


@dataclass
class Message:
    """A message as carried by the transport"""
    key: Optional[str]
    value: bytes


@dataclass
class PublishResult:
    """Result of a publish operation"""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ConsumeResult:
    """Result of a consume operation"""
    message: Optional[Message]
    partition: Optional[int] = None
    offset: Optional[Any] = None
    error: Optional[str] = None


class KafkaTransport:
    """Kafka producer/consumer pair for codec frames"""

    def __init__(self, config: Dict[str, Any]):
        """Initialize Kafka transport

        Args:
            config: Configuration dict with keys:
                - bootstrap_servers: List of broker addresses
                - consumer_group: Optional consumer group (random if not provided)
                - producer_config: Optional producer configuration
                - consumer_config: Optional consumer configuration
                - send_timeout: Seconds to wait for a publish acknowledgement
        """
        self.config = config
        self.bootstrap_servers = config.get('bootstrap_servers', ['localhost:9092'])
        self.consumer_group = config.get('consumer_group', f"avro-wapiti-{uuid.uuid4()}")
        self.producer_config = config.get('producer_config', {})
        self.consumer_config = config.get('consumer_config', {})
        self.send_timeout = config.get('send_timeout', 10)

        self.producer: Optional[KafkaProducer] = None
        self.consumer: Optional[KafkaConsumer] = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        """Create the producer; the consumer is created by :meth:`subscribe`"""
        if self._connected:
            return

        try:
            self.producer = KafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                **self.producer_config
            )
        except KafkaError as e:
            raise ConnectionError(f"Failed to connect to Kafka: {e}") from e
        self._connected = True

    def disconnect(self) -> None:
        if not self._connected:
            return

        if self.producer:
            self.producer.close()
            self.producer = None

        if self.consumer:
            self.consumer.close()
            self.consumer = None

        self._connected = False

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def publish(self, topic: str, value: bytes, key: Optional[str] = None) -> PublishResult:
        """Publish one frame and wait for the broker acknowledgement

        Args:
            topic: Topic name
            value: Encoded frame
            key: Optional message key

        Returns:
            PublishResult with success status
        """
        if not self._connected or not self.producer:
            return PublishResult(success=False, error="Not connected")

        try:
            future = self.producer.send(
                topic,
                key=key.encode('utf-8') if key else None,
                value=value
            )
            record_metadata = future.get(timeout=self.send_timeout)
        except KafkaError as e:
            logger.warning("kafka publish failed", topic=topic, error=str(e))
            return PublishResult(success=False, error=str(e))

        return PublishResult(
            success=True,
            message_id=f"{record_metadata.partition}:{record_metadata.offset}"
        )

    def subscribe(self, topics: List[str]) -> None:
        if not self._connected:
            raise RuntimeError("Not connected to Kafka")

        if self.consumer:
            self.consumer.close()

        consumer_config = {
            'bootstrap_servers': self.bootstrap_servers,
            'group_id': self.consumer_group,
            'auto_offset_reset': 'earliest',
            'enable_auto_commit': True,
            **self.consumer_config
        }
        self.consumer = KafkaConsumer(*topics, **consumer_config)

    def consume(self, timeout_ms: int = 1000) -> ConsumeResult:
        """Poll for a single frame

        Returns:
            ConsumeResult; ``message`` is None on timeout or error.
        """
        if not self._connected or not self.consumer:
            return ConsumeResult(message=None, error="Not subscribed")

        try:
            records = self.consumer.poll(timeout_ms=timeout_ms, max_records=1)
        except KafkaError as e:
            logger.warning("kafka poll failed", error=str(e))
            return ConsumeResult(message=None, error=str(e))

        for _topic_partition, messages in records.items():
            if not messages:
                continue
            kafka_msg = messages[0]
            message = Message(
                key=kafka_msg.key.decode('utf-8') if kafka_msg.key else None,
                value=kafka_msg.value
            )
            return ConsumeResult(message=message, partition=kafka_msg.partition, offset=kafka_msg.offset)

        return ConsumeResult(message=None)
