"""Schema registry client package"""
from .client import RegisteredSchema, SchemaRegistryClient, Subject, build_ssl_context

__all__ = ['RegisteredSchema', 'SchemaRegistryClient', 'Subject', 'build_ssl_context']
