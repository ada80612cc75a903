"""In-memory cache of registry schemas keyed by schema id"""
import threading
from typing import Any, Dict

import structlog

from .errors import RegistryFetchError
from .serialization import avro

logger = structlog.get_logger(__name__)


class SchemaCache:
    """Maps schema ids to parsed Avro schemas

    Registry ids are never reused and schemas never change, so entries are
    kept for the lifetime of the cache. A miss costs exactly one registry
    fetch; failed fetches are not stored.
    """

    def __init__(self, registry):
        """Initialize cache

        Args:
            registry: Anything with a ``schema(schema_id) -> str`` method,
                normally a :class:`~avro_wapiti.registry.SchemaRegistryClient`.
        """
        self.registry = registry
        self._schemas: Dict[int, Any] = {}
        self._lock = threading.Lock()

    def get_schema(self, schema_id: int) -> Any:
        """Return the parsed schema for *schema_id*, fetching it on first use

        Raises:
            RegistryFetchError: Registry unreachable or id unknown.
            SchemaParseError: Registry returned an invalid definition.
        """
        schema = self._schemas.get(schema_id)
        if schema is not None:
            return schema

        with self._lock:
            # another thread may have filled it while we waited
            schema = self._schemas.get(schema_id)
            if schema is None:
                definition = self.registry.schema(schema_id)
                if not definition:
                    raise RegistryFetchError(f"registry returned an empty schema for id {schema_id}")
                schema = avro.parse(definition)
                self._schemas[schema_id] = schema
                logger.debug("schema fetched", schema_id=schema_id)
        return schema

    def __contains__(self, schema_id) -> bool:
        return schema_id in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)
