"""Wire envelope: magic byte, schema id, Avro body

Layout (big-endian)::

    byte 0      magic marker, always 0x00
    bytes 1-4   registry schema id, unsigned 32-bit
    bytes 5..   schemaless Avro body

The whole frame may additionally be base64 encoded for transports that only
carry text. Decoding accepts both forms: strict base64 is tried first and
anything that is not valid base64 is read as a raw frame. A raw frame starts
with 0x00, which is outside the base64 alphabet, so the two never overlap.
"""
import base64
import binascii
import struct
from dataclasses import dataclass
from typing import Union

from .errors import BadMagicByteError, FrameError, FrameTooShortError

MAGIC_BYTE = 0
HEADER = struct.Struct('>BI')
HEADER_SIZE = HEADER.size  # 5
MAX_SCHEMA_ID = 2 ** 32 - 1
# trimmed around base64 text, e.g. a line read back from a file
ASCII_WHITESPACE = ' \t\n\r\x0b\x0c'

FrameInput = Union[bytes, bytearray, memoryview, str]


@dataclass(frozen=True)
class Frame:
    """A decoded envelope"""
    schema_id: int
    body: bytes
    base64_wrapped: bool = False


def encode_frame(schema_id: int, avro_bytes: bytes, binary: bool = True) -> bytes:
    """Wrap an Avro body in the wire envelope

    Args:
        schema_id: Registry id of the schema the body was written with.
        avro_bytes: Schemaless Avro body.
        binary: When False the whole frame is base64 encoded.

    Returns:
        The frame; ASCII base64 bytes when *binary* is False.
    """
    if not 0 <= schema_id <= MAX_SCHEMA_ID:
        raise FrameError(f"schema id {schema_id} does not fit in 32 bits")
    frame = HEADER.pack(MAGIC_BYTE, schema_id) + bytes(avro_bytes)
    if binary:
        return frame
    return base64.b64encode(frame)


def _unwrap(data: FrameInput):
    if isinstance(data, str):
        try:
            return base64.b64decode(data.strip(ASCII_WHITESPACE), validate=True), True
        except (binascii.Error, ValueError):
            pass
        # text that is not base64 is a raw frame that came through as str
        try:
            return data.encode('latin-1'), False
        except UnicodeEncodeError as e:
            raise FrameError('frame text is neither base64 nor raw bytes') from e
    raw = bytes(data)
    try:
        return base64.b64decode(raw.strip(), validate=True), True
    except binascii.Error:
        return raw, False


def decode_frame(data: FrameInput) -> Frame:
    """Split a frame into schema id and Avro body

    Raises:
        FrameTooShortError: Fewer than 5 bytes before or after unwrapping.
        BadMagicByteError: First byte is not 0.
    """
    if len(data) < HEADER_SIZE:
        raise FrameTooShortError('message is too small to decode')

    frame, wrapped = _unwrap(data)
    if len(frame) < HEADER_SIZE:
        raise FrameTooShortError('message is too small to decode')

    magic_byte, schema_id = HEADER.unpack_from(frame)
    if magic_byte != MAGIC_BYTE:
        raise BadMagicByteError(magic_byte)

    return Frame(schema_id=schema_id, body=frame[HEADER_SIZE:], base64_wrapped=wrapped)
