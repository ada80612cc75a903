"""Avro schema-registry codec for Kafka event pipelines"""
from .codec import AvroWapitiCodec
from .config import CodecConfig, load_config
from .errors import (
    AvroDecodeError,
    AvroEncodeError,
    BadMagicByteError,
    CodecError,
    ConfigError,
    FrameError,
    FrameTooShortError,
    PayloadDecodeError,
    PayloadEncodeError,
    RegistryError,
    RegistryFetchError,
    SchemaIncompatibleError,
    SchemaParseError,
    SerializationError,
    UnsupportedMessageFormatError,
)
from .event import Event
from .framing import Frame, decode_frame, encode_frame
from .metadata import MessageFormat, project_inbound, project_outbound

__version__ = '0.1.0'

__all__ = [
    'AvroWapitiCodec',
    'CodecConfig',
    'load_config',
    'Event',
    'Frame',
    'decode_frame',
    'encode_frame',
    'MessageFormat',
    'project_inbound',
    'project_outbound',
    'CodecError',
    'ConfigError',
    'FrameError',
    'FrameTooShortError',
    'BadMagicByteError',
    'RegistryError',
    'RegistryFetchError',
    'SchemaIncompatibleError',
    'SchemaParseError',
    'SerializationError',
    'AvroEncodeError',
    'AvroDecodeError',
    'PayloadEncodeError',
    'PayloadDecodeError',
    'UnsupportedMessageFormatError',
]
