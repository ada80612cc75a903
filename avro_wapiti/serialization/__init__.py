"""Avro binary capability used by the codec"""
from .avro import parse, encode, decode

__all__ = ["parse", "encode", "decode"]
