"""Avro serialization helpers for frame bodies

Thin wrappers around fastavro's schemaless reader/writer. Frame bodies carry
no Avro container header; the schema comes from the registry via the schema
id in the frame instead.

Example usage::

    from avro_wapiti.serialization.avro import parse, encode, decode

    schema = parse('''{
        "type": "record",
        "name": "Event",
        "fields": [{"name": "message", "type": "string"}]
    }''')

    raw = encode({"message": "hello"}, schema)
    assert decode(raw, schema) == {"message": "hello"}
"""
import io
import json
from typing import Any, Dict, Union

import fastavro
from fastavro.schema import SchemaParseException

from ..errors import AvroDecodeError, AvroEncodeError, SchemaParseError


def parse(definition: Union[str, Dict[str, Any]]) -> Any:
    """Parse an Avro schema definition.

    Args:
        definition: Schema JSON text as returned by the registry, or an
            already-loaded schema dict.

    Returns:
        A fastavro parsed schema, suitable for :func:`encode`/:func:`decode`.

    Raises:
        SchemaParseError: If the definition is not valid JSON or not a valid
            Avro schema.
    """
    try:
        if isinstance(definition, (str, bytes)):
            definition = json.loads(definition)
        return fastavro.parse_schema(definition)
    except (ValueError, TypeError, KeyError, SchemaParseException) as e:
        raise SchemaParseError(f"invalid Avro schema: {e}") from e


def encode(record: Dict[str, Any], schema: Any) -> bytes:
    """Serialize *record* to schemaless Avro binary.

    Args:
        record: The Python dict to serialize.
        schema: A schema returned by :func:`parse`.

    Returns:
        Avro-encoded bytes representing the record.
    """
    buf = io.BytesIO()
    try:
        fastavro.schemaless_writer(buf, schema, record)
    except Exception as e:
        raise AvroEncodeError(f"record does not match write schema: {e}") from e
    return buf.getvalue()


def decode(data: bytes, schema: Any) -> Dict[str, Any]:
    """Deserialize schemaless Avro binary *data* using *schema*."""
    buf = io.BytesIO(data)
    try:
        return fastavro.schemaless_reader(buf, schema)
    except Exception as e:
        raise AvroDecodeError(f"cannot decode Avro body: {e}") from e
