"""Shared fixtures"""
import pytest

from avro_wapiti.config import CodecConfig

from fakes import FakeRegistry, WAPITI_SCHEMA_JSON


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def wapiti_schema_id(registry):
    return registry.add_schema(WAPITI_SCHEMA_JSON, subject='wapiti-value', version=1)


@pytest.fixture
def config(wapiti_schema_id):
    return CodecConfig(endpoint='http://registry.test', schema_id=wapiti_schema_id)
