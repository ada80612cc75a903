"""Unit tests for the schema cache"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from avro_wapiti.errors import RegistryFetchError, SchemaParseError
from avro_wapiti.schema_cache import SchemaCache

from fakes import FakeRegistry, WAPITI_SCHEMA_JSON


def test_schema_fetched_once_per_id(registry, wapiti_schema_id):
    """Repeated lookups of one id hit the registry exactly once"""
    cache = SchemaCache(registry)

    first = cache.get_schema(wapiti_schema_id)
    for _ in range(5):
        assert cache.get_schema(wapiti_schema_id) is first

    assert registry.fetch_counts[wapiti_schema_id] == 1
    assert wapiti_schema_id in cache
    assert len(cache) == 1


def test_each_id_fetched_separately(registry):
    other = {
        "type": "record",
        "name": "Other",
        "fields": [{"name": "n", "type": "int"}],
    }
    id_a = registry.add_schema(WAPITI_SCHEMA_JSON)
    id_b = registry.add_schema(other)
    cache = SchemaCache(registry)

    cache.get_schema(id_a)
    cache.get_schema(id_b)
    cache.get_schema(id_a)

    assert registry.fetch_counts == {id_a: 1, id_b: 1}


def test_unknown_id_raises_and_is_not_cached(registry):
    cache = SchemaCache(registry)

    with pytest.raises(RegistryFetchError):
        cache.get_schema(404)
    assert 404 not in cache

    registry.add_schema(WAPITI_SCHEMA_JSON, schema_id=404)
    assert cache.get_schema(404) is not None
    assert registry.fetch_counts[404] == 2


def test_invalid_definition_raises_parse_error(registry):
    schema_id = registry.add_schema('{"type": "record", "name": "Broken"')
    cache = SchemaCache(registry)

    with pytest.raises(SchemaParseError):
        cache.get_schema(schema_id)
    assert schema_id not in cache


def test_concurrent_lookups_fetch_once():
    """Threads racing on a cold id still cause a single fetch"""
    registry = FakeRegistry(fetch_delay=0.05)
    schema_id = registry.add_schema(WAPITI_SCHEMA_JSON)
    cache = SchemaCache(registry)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(lambda _: cache.get_schema(schema_id), range(16)))

    assert registry.fetch_counts[schema_id] == 1
    assert all(r is results[0] for r in results)
