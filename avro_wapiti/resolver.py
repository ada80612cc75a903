"""Write-schema resolution

Works out, once per codec instance, which registry schema id outbound
messages are encoded with.
"""
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import unquote, urlparse

import httpx
import structlog

from .config import CodecConfig
from .errors import ConfigError, SchemaIncompatibleError

logger = structlog.get_logger(__name__)


class ResolutionState(Enum):
    """States of the write-schema cell"""
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    FAILED = "failed"


def load_schema_json(config: CodecConfig, timeout: Optional[float] = None) -> str:
    """Load the write schema definition from ``schema_uri`` or ``schema_string``

    ``schema_uri`` may be a local path, a ``file://`` URL or an
    ``http(s)://`` URL.

    Raises:
        ConfigError: Neither option set, or the URI cannot be read.
    """
    if config.schema_uri:
        uri = config.schema_uri
        parsed = urlparse(uri)
        try:
            if parsed.scheme in ('http', 'https'):
                response = httpx.get(uri, timeout=timeout or config.registry_timeout, follow_redirects=True)
                response.raise_for_status()
                return response.text
            path = unquote(parsed.path) if parsed.scheme == 'file' else uri
            return Path(path).read_text()
        except (OSError, httpx.HTTPError) as e:
            raise ConfigError(f"cannot load schema from '{uri}': {e}") from e
    if config.schema_string:
        return config.schema_string
    raise ConfigError('you must supply a schema_uri or schema_string in the config')


class WriteSchemaResolver:
    """One-shot resolver for the outbound schema id

    The first successful resolution is final for the resolver's lifetime.
    Configuration and compatibility failures are final as well, so every
    later encode fails the same way instead of emitting data. Registry
    outages leave the resolver unresolved and the next call tries again.
    """

    def __init__(self, config: CodecConfig, registry):
        self.config = config
        self.registry = registry
        # (state, value) replaced as a whole so unlocked readers never see a mixed pair
        self._cell: Tuple[ResolutionState, Union[int, Exception, None]] = (ResolutionState.UNRESOLVED, None)
        self._lock = threading.Lock()

    @property
    def state(self) -> ResolutionState:
        return self._cell[0]

    @property
    def is_resolved(self) -> bool:
        return self._cell[0] is ResolutionState.RESOLVED

    def resolve_write_schema_id(self) -> int:
        """Return the write schema id, resolving it on first call

        Raises:
            ConfigError: Required options are missing.
            SchemaIncompatibleError: ``check_compatibility`` rejected the schema.
            RegistryFetchError: The registry could not be reached or refused.
        """
        state, value = self._cell
        if state is ResolutionState.RESOLVED:
            return value

        with self._lock:
            state, value = self._cell
            if state is ResolutionState.UNRESOLVED:
                try:
                    schema_id = self._resolve()
                except (ConfigError, SchemaIncompatibleError) as e:
                    self._cell = (ResolutionState.FAILED, e)
                    raise
                state, value = ResolutionState.RESOLVED, schema_id
                self._cell = (state, value)
                logger.info("write schema resolved", schema_id=schema_id, subject=self.config.subject_name)

        if state is ResolutionState.FAILED:
            # drop frames collected by earlier raises
            raise value.with_traceback(None)
        return value

    def _resolve(self) -> int:
        config = self.config

        if config.schema_id is not None:
            return config.schema_id

        if not config.subject_name:
            raise ConfigError('requires a subject_name')

        subject = self.registry.subject(config.subject_name)

        if config.schema_version is not None:
            return subject.version(config.schema_version).id

        schema_json = load_schema_json(config)

        if config.check_compatibility and not subject.compatible(schema_json):
            raise SchemaIncompatibleError(config.subject_name)

        if config.register_schema and not subject.schema_registered(schema_json):
            subject.register_schema(schema_json)

        return subject.verify_schema(schema_json).id
