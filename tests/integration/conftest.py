"""Shared fixtures for integration tests."""
import pytest


@pytest.fixture(scope="module")
def kafka_container():
    """Start a Kafka container for testing."""
    kafka = pytest.importorskip("testcontainers.kafka")
    container = kafka.KafkaContainer()
    container.start()
    yield container
    container.stop()
