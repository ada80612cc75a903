"""Exception hierarchy for the avro-wapiti codec

Every failure the codec can hit while framing, resolving schemas or
(de)serializing a message is raised as a subclass of :class:`CodecError` so
the host pipeline can decide whether to retry, dead-letter or crash.
"""
from typing import Any, Dict, Optional


class CodecError(Exception):
    """Base class for all codec failures"""


class ConfigError(CodecError):
    """Missing or inconsistent codec configuration"""


class FrameError(CodecError):
    """Malformed wire envelope"""


class FrameTooShortError(FrameError):
    """Input is shorter than the 5-byte frame header"""


class BadMagicByteError(FrameError):
    """First byte of the frame is not the expected magic marker"""

    def __init__(self, magic_byte: int):
        super().__init__(f"message does not start with magic byte (got {magic_byte:#04x})")
        self.magic_byte = magic_byte


class RegistryError(CodecError):
    """Base class for schema registry failures"""


class RegistryFetchError(RegistryError):
    """Registry unreachable, or it rejected the request"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 error_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class SchemaIncompatibleError(RegistryError):
    """Schema failed the subject's compatibility check"""

    def __init__(self, subject: str):
        super().__init__(
            f"the schema json is not compatible with subject '{subject}'. "
            "fix the schema or change the compatibility level."
        )
        self.subject = subject


class SchemaParseError(CodecError):
    """Registry returned a definition that is not a valid Avro schema"""


class SerializationError(CodecError):
    """Base class for payload (de)serialization failures"""


class AvroEncodeError(SerializationError):
    """Record could not be written with the write schema"""


class AvroDecodeError(SerializationError):
    """Avro body could not be read with the schema named in the frame"""


class PayloadEncodeError(SerializationError):
    """Event cannot be rendered into the ``message`` field"""


class PayloadDecodeError(SerializationError):
    """The ``message`` field does not hold what its message_format claims"""


class UnsupportedMessageFormatError(CodecError, NotImplementedError):
    """Decoding this message_format is not implemented

    The shipping-label metadata and the undecoded payload ride along so the
    caller can route the message somewhere instead of dropping it.
    """

    def __init__(self, message_format: str, metadata: Dict[str, Any], payload: Any):
        super().__init__(f"decoding message_format '{message_format}' is not implemented")
        self.message_format = message_format
        self.metadata = metadata
        self.payload = payload
