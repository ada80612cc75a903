"""Confluent-compatible schema registry client

Covers just the calls the codec needs: fetch a schema by id, and per subject
look up a version, check compatibility, test whether a schema is registered,
register it and resolve its id. Every call runs under an explicit timeout and
a bounded retry policy.
"""
import json
import ssl
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import CodecConfig
from ..errors import ConfigError, RegistryFetchError

logger = structlog.get_logger(__name__)

CONTENT_TYPE = 'application/vnd.schemaregistry.v1+json'

# Registry error codes (https://docs.confluent.io/platform/current/schema-registry/develop/api.html)
SUBJECT_NOT_FOUND = 40401
VERSION_NOT_FOUND = 40402
SCHEMA_NOT_FOUND = 40403


@dataclass(frozen=True)
class RegisteredSchema:
    """A schema as known to the registry"""
    id: int
    subject: Optional[str] = None
    version: Optional[int] = None
    schema: Optional[str] = None


def build_ssl_context(config: CodecConfig) -> Optional[ssl.SSLContext]:
    """Translate the TLS options into an SSL context

    Returns None when no TLS option is set, leaving httpx's defaults in place.
    Only ``verify_none`` changes client-side behavior; the remaining modes
    describe server-side peer checks and keep certificate verification on.
    """
    if not (config.client_certificate or config.ca_certificate or config.verify_mode == 'verify_none'):
        return None

    try:
        context = ssl.create_default_context(cafile=config.ca_certificate)
        if config.client_certificate:
            context.load_cert_chain(config.client_certificate, keyfile=config.client_key)
    except (OSError, ssl.SSLError) as e:
        raise ConfigError(f"cannot load TLS material: {e}") from e

    if config.verify_mode == 'verify_none':
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code >= 500


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        "schema registry call failed, retrying",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


class SchemaRegistryClient:
    """HTTP client for a Confluent schema registry"""

    def __init__(
        self,
        endpoint: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
        retries: int = 3,
        ssl_context: Optional[ssl.SSLContext] = None,
        transport: Optional[httpx.BaseTransport] = None,
        retry_wait_max: float = 5.0,
    ):
        """Initialize registry client

        Args:
            endpoint: Base URL of the registry, e.g. ``http://schemas.example.com``
            username: Optional basic-auth user
            password: Optional basic-auth password
            timeout: Per-request timeout in seconds
            retries: Total attempts per call for transport errors and 5xx
            ssl_context: Optional TLS context (see :func:`build_ssl_context`)
            transport: Optional httpx transport, mostly for tests
            retry_wait_max: Upper bound of the exponential backoff, seconds
        """
        self.endpoint = endpoint.rstrip('/')
        self.retries = retries
        self.retry_wait_max = retry_wait_max

        client_kwargs: Dict[str, Any] = {
            'base_url': self.endpoint,
            'timeout': httpx.Timeout(timeout),
            'headers': {'Accept': CONTENT_TYPE, 'Content-Type': CONTENT_TYPE},
        }
        if username:
            client_kwargs['auth'] = httpx.BasicAuth(username, password or '')
        if ssl_context is not None:
            client_kwargs['verify'] = ssl_context
        if transport is not None:
            client_kwargs['transport'] = transport

        self._http = httpx.Client(**client_kwargs)

    @classmethod
    def from_config(cls, config: CodecConfig, **kwargs) -> 'SchemaRegistryClient':
        return cls(
            config.endpoint,
            username=config.username,
            password=config.password,
            timeout=config.registry_timeout,
            retries=config.registry_retries,
            ssl_context=build_ssl_context(config),
            **kwargs,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Send one request, retrying transport errors and 5xx responses

        Returns:
            The response; 4xx responses are returned for the caller to map.

        Raises:
            RegistryFetchError: On exhausted retries.
        """
        def send() -> httpx.Response:
            response = self._http.request(method, path, json=body)
            if response.status_code >= 500:
                response.raise_for_status()
            return response

        retrying = Retrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential(multiplier=0.2, max=self.retry_wait_max),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            return retrying(send)
        except httpx.HTTPStatusError as e:
            raise _registry_error(method, path, e.response) from e
        except httpx.HTTPError as e:
            raise RegistryFetchError(f"{method} {self.endpoint}{path} failed: {e}") from e

    def request_json(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.request(method, path, body)
        if response.status_code >= 400:
            raise _registry_error(method, path, response)
        return _json_body(method, path, response)

    def schema(self, schema_id: int) -> str:
        """Fetch the schema definition registered under *schema_id*"""
        data = self.request_json('GET', f'/schemas/ids/{int(schema_id)}')
        try:
            return data['schema']
        except KeyError:
            raise RegistryFetchError(f"registry response for schema id {schema_id} has no 'schema'")

    def subject(self, name: str) -> 'Subject':
        return Subject(self, name)


class Subject:
    """A named, versioned lineage of schemas"""

    def __init__(self, client: SchemaRegistryClient, name: str):
        self.client = client
        self.name = name
        self._path = f"/subjects/{quote(name, safe='')}"

    def version(self, version) -> RegisteredSchema:
        """Look up a specific version (or ``"latest"``)"""
        data = self.client.request_json('GET', f'{self._path}/versions/{version}')
        return _registered(data, self.name)

    def compatible(self, schema_json: str, version='latest') -> bool:
        """Check *schema_json* against the subject's compatibility rules

        A subject with no versions yet has nothing to be incompatible with.
        """
        path = f"/compatibility{self._path}/versions/{version}"
        response = self.client.request('POST', path, {'schema': schema_json})
        if response.status_code == 404 and _error_code(response) in (SUBJECT_NOT_FOUND, VERSION_NOT_FOUND):
            return True
        if response.status_code >= 400:
            raise _registry_error('POST', path, response)
        return bool(_json_body('POST', path, response).get('is_compatible', False))

    def schema_registered(self, schema_json: str) -> bool:
        response = self.client.request('POST', self._path, {'schema': schema_json})
        if response.status_code == 404:
            return False
        if response.status_code >= 400:
            raise _registry_error('POST', self._path, response)
        return True

    def register_schema(self, schema_json: str) -> int:
        """Register *schema_json* under this subject and return its id"""
        data = self.client.request_json('POST', f'{self._path}/versions', {'schema': schema_json})
        schema_id = int(data['id'])
        logger.info("schema registered", subject=self.name, schema_id=schema_id)
        return schema_id

    def verify_schema(self, schema_json: str) -> RegisteredSchema:
        """Resolve the id under which *schema_json* is registered in this subject"""
        data = self.client.request_json('POST', self._path, {'schema': schema_json})
        return _registered(data, self.name)


def _registered(data: Dict[str, Any], subject: str) -> RegisteredSchema:
    try:
        return RegisteredSchema(
            id=int(data['id']),
            subject=data.get('subject', subject),
            version=data.get('version'),
            schema=data.get('schema'),
        )
    except (KeyError, TypeError, ValueError):
        raise RegistryFetchError(f"registry response for subject '{subject}' has no schema id")


def _json_body(method: str, path: str, response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RegistryFetchError(
            f"{method} {path}: registry returned invalid JSON", status_code=response.status_code
        ) from e
    if not isinstance(data, dict):
        raise RegistryFetchError(
            f"{method} {path}: unexpected registry response", status_code=response.status_code
        )
    return data


def _error_code(response: httpx.Response) -> Optional[int]:
    try:
        return response.json().get('error_code')
    except (ValueError, AttributeError):
        return None


def _registry_error(method: str, path: str, response: httpx.Response) -> RegistryFetchError:
    detail = response.text
    try:
        detail = response.json().get('message', detail)
    except (ValueError, AttributeError):
        pass
    return RegistryFetchError(
        f"{method} {path} returned {response.status_code}: {detail}",
        status_code=response.status_code,
        error_code=_error_code(response),
    )
