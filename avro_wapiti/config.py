"""Codec configuration

One :class:`CodecConfig` is built per codec instance and handed to every
component; nothing reads configuration from module globals.
"""
import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigError

VERIFY_MODES = ('verify_none', 'verify_peer', 'verify_client_once', 'verify_fail_if_no_peer_cert')

_BOOL_STRINGS = {
    'true': True, 'yes': True, 'on': True, '1': True,
    'false': False, 'no': False, 'off': False, '0': False,
}


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOL_STRINGS:
        return _BOOL_STRINGS[value.strip().lower()]
    raise ConfigError(f"'{name}' must be a boolean, got {value!r}")


def _to_int(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}")


@dataclass(frozen=True)
class CodecConfig:
    """Recognized codec options

    Schema selection for encoding, in priority order: ``schema_id``;
    ``subject_name`` + ``schema_version``; ``subject_name`` + ``schema_uri``;
    ``subject_name`` + ``schema_string``. Decoding only needs ``endpoint``.
    """

    # schema registry endpoint and credentials
    endpoint: str
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    schema_id: Optional[int] = None
    subject_name: Optional[str] = None
    schema_version: Optional[int] = None
    schema_uri: Optional[str] = None
    schema_string: Optional[str] = None
    check_compatibility: bool = False
    register_schema: bool = False
    binary_encoded: bool = True

    # mutual TLS to the registry
    client_certificate: Optional[str] = None
    client_key: Optional[str] = None
    ca_certificate: Optional[str] = None
    verify_mode: str = 'verify_peer'

    registry_timeout: float = 10.0
    registry_retries: int = 3

    def __post_init__(self):
        if not self.endpoint:
            raise ConfigError("'endpoint' is required")
        if self.verify_mode not in VERIFY_MODES:
            raise ConfigError(
                f"'verify_mode' must be one of {', '.join(VERIFY_MODES)}, got {self.verify_mode!r}"
            )
        if self.client_key and not self.client_certificate:
            raise ConfigError("'client_key' requires 'client_certificate'")
        if self.registry_timeout <= 0:
            raise ConfigError("'registry_timeout' must be positive")
        if self.registry_retries < 1:
            raise ConfigError("'registry_retries' must be at least 1")

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> 'CodecConfig':
        """Build a config from a plain mapping (e.g. a parsed YAML section)

        Args:
            options: Option names as keys. Unknown names are rejected.

        Returns:
            CodecConfig

        Raises:
            ConfigError: On unknown options, a missing endpoint or values of
                the wrong type.
        """
        if not isinstance(options, dict):
            raise ConfigError(f"codec options must be a mapping, got {type(options).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigError(f"Unknown codec options: {', '.join(unknown)}")
        if not options.get('endpoint'):
            raise ConfigError("'endpoint' is required")

        values = dict(options)
        for name in ('schema_id', 'schema_version', 'registry_retries'):
            if name in values:
                values[name] = _to_int(name, values[name])
        for name in ('check_compatibility', 'register_schema', 'binary_encoded'):
            if name in values:
                values[name] = _to_bool(name, values[name])
        if 'registry_timeout' in values:
            try:
                values['registry_timeout'] = float(values['registry_timeout'])
            except (TypeError, ValueError):
                raise ConfigError(f"'registry_timeout' must be a number, got {values['registry_timeout']!r}")
        if values.get('registry_retries') is None:
            values.pop('registry_retries', None)

        return cls(**values)

    def validate_for_encoding(self) -> List[str]:
        """Return the problems the write-schema resolver would run into"""
        errors = []
        if self.schema_id is not None:
            return errors
        if not self.subject_name:
            errors.append("requires a subject_name when no schema_id is given")
        elif self.schema_version is None and not (self.schema_uri or self.schema_string):
            errors.append("you must supply a schema_version, schema_uri or schema_string")
        return errors


def load_config(path: str) -> Tuple[CodecConfig, Dict[str, Any]]:
    """Load a YAML or JSON config file

    The file holds a ``codec`` section with :class:`CodecConfig` options and
    an optional ``kafka`` section passed to the Kafka transport.

    Returns:
        ``(codec_config, kafka_config)``
    """
    config_path = Path(path)
    try:
        with open(config_path, 'r') as f:
            if config_path.suffix in ['.yaml', '.yml']:
                raw = yaml.safe_load(f)
            else:
                raw = json.load(f)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e

    if not isinstance(raw, dict) or 'codec' not in raw:
        raise ConfigError(f"{path}: missing 'codec' section")

    kafka = raw.get('kafka') or {}
    if not isinstance(kafka, dict):
        raise ConfigError(f"{path}: 'kafka' section must be a mapping")

    return CodecConfig.from_dict(raw['codec']), kafka
