"""Unit tests for the schema registry HTTP client

Uses httpx.MockTransport to play the registry.
"""
import base64
import json
import ssl

import httpx
import pytest

from avro_wapiti.config import CodecConfig
from avro_wapiti.errors import ConfigError, RegistryFetchError
from avro_wapiti.registry import SchemaRegistryClient, build_ssl_context

from fakes import WAPITI_SCHEMA_JSON

ENDPOINT = 'http://registry.test'


def _json_response(data, status_code=200):
    return httpx.Response(status_code, json=data,
                          headers={'content-type': 'application/vnd.schemaregistry.v1+json'})


def _client(handler, **kwargs):
    kwargs.setdefault('retry_wait_max', 0)
    return SchemaRegistryClient(ENDPOINT, transport=httpx.MockTransport(handler), **kwargs)


# ---------------------------------------------------------------------------
# schema by id
# ---------------------------------------------------------------------------

def test_schema_by_id():
    requests = []

    def handler(request):
        requests.append(request)
        return _json_response({'schema': WAPITI_SCHEMA_JSON})

    with _client(handler) as client:
        assert client.schema(42) == WAPITI_SCHEMA_JSON

    assert requests[0].method == 'GET'
    assert requests[0].url.path == '/schemas/ids/42'
    assert requests[0].headers['accept'] == 'application/vnd.schemaregistry.v1+json'


def test_basic_auth_header():
    seen = {}

    def handler(request):
        seen['auth'] = request.headers.get('authorization')
        return _json_response({'schema': '"string"'})

    client = _client(handler, username='alice', password='s3cret')
    client.schema(1)

    assert seen['auth'] == 'Basic ' + base64.b64encode(b'alice:s3cret').decode()


def test_unknown_schema_id():
    def handler(request):
        return _json_response({'error_code': 40403, 'message': 'Schema not found'}, status_code=404)

    client = _client(handler)
    with pytest.raises(RegistryFetchError) as excinfo:
        client.schema(7)

    assert excinfo.value.status_code == 404
    assert excinfo.value.error_code == 40403
    assert 'Schema not found' in str(excinfo.value)


# ---------------------------------------------------------------------------
# retry policy
# ---------------------------------------------------------------------------

def test_server_error_is_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            return _json_response({'error_code': 50001, 'message': 'busy'}, status_code=503)
        return _json_response({'schema': '"string"'})

    client = _client(handler, retries=3)

    assert client.schema(1) == '"string"'
    assert len(attempts) == 2


def test_server_error_exhausts_retries():
    attempts = []

    def handler(request):
        attempts.append(request)
        return _json_response({'error_code': 50001, 'message': 'down'}, status_code=500)

    client = _client(handler, retries=3)
    with pytest.raises(RegistryFetchError) as excinfo:
        client.schema(1)

    assert len(attempts) == 3
    assert excinfo.value.status_code == 500


def test_transport_error_is_retried_then_raised():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError('connection refused', request=request)

    client = _client(handler, retries=2)
    with pytest.raises(RegistryFetchError, match='connection refused'):
        client.schema(1)

    assert len(attempts) == 2


def test_client_error_is_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return _json_response({'error_code': 40101, 'message': 'unauthorized'}, status_code=401)

    client = _client(handler, retries=5)
    with pytest.raises(RegistryFetchError):
        client.schema(1)

    assert len(attempts) == 1


# ---------------------------------------------------------------------------
# subject operations
# ---------------------------------------------------------------------------

def test_subject_version():
    def handler(request):
        assert request.url.path == '/subjects/wapiti-value/versions/3'
        return _json_response({'subject': 'wapiti-value', 'version': 3, 'id': 21, 'schema': '"string"'})

    registered = _client(handler).subject('wapiti-value').version(3)

    assert registered.id == 21
    assert registered.version == 3


def test_subject_name_is_url_quoted():
    seen = {}

    def handler(request):
        seen['path'] = request.url.raw_path
        return _json_response({'id': 1})

    _client(handler).subject('team/events value').verify_schema('"string"')

    assert seen['path'] == b'/subjects/team%2Fevents%20value'


@pytest.mark.parametrize('answer', [True, False])
def test_subject_compatible(answer):
    bodies = []

    def handler(request):
        assert request.method == 'POST'
        assert request.url.path == '/compatibility/subjects/wapiti-value/versions/latest'
        bodies.append(json.loads(request.content))
        return _json_response({'is_compatible': answer})

    assert _client(handler).subject('wapiti-value').compatible(WAPITI_SCHEMA_JSON) is answer
    assert bodies == [{'schema': WAPITI_SCHEMA_JSON}]


def test_subject_compatible_when_subject_is_new():
    def handler(request):
        return _json_response({'error_code': 40401, 'message': 'Subject not found'}, status_code=404)

    assert _client(handler).subject('brand-new').compatible(WAPITI_SCHEMA_JSON) is True


@pytest.mark.parametrize('status_code,expected', [(200, True), (404, False)])
def test_subject_schema_registered(status_code, expected):
    def handler(request):
        assert request.url.path == '/subjects/wapiti-value'
        if status_code == 404:
            return _json_response({'error_code': 40403, 'message': 'Schema not found'}, status_code=404)
        return _json_response({'subject': 'wapiti-value', 'version': 1, 'id': 5, 'schema': WAPITI_SCHEMA_JSON})

    assert _client(handler).subject('wapiti-value').schema_registered(WAPITI_SCHEMA_JSON) is expected


def test_subject_register_schema():
    bodies = []

    def handler(request):
        assert request.method == 'POST'
        assert request.url.path == '/subjects/wapiti-value/versions'
        bodies.append(json.loads(request.content))
        return _json_response({'id': 77})

    assert _client(handler).subject('wapiti-value').register_schema(WAPITI_SCHEMA_JSON) == 77
    assert bodies == [{'schema': WAPITI_SCHEMA_JSON}]


def test_subject_verify_schema():
    def handler(request):
        return _json_response({'subject': 'wapiti-value', 'version': 2, 'id': 12, 'schema': WAPITI_SCHEMA_JSON})

    registered = _client(handler).subject('wapiti-value').verify_schema(WAPITI_SCHEMA_JSON)

    assert registered.id == 12
    assert registered.subject == 'wapiti-value'


def test_subject_verify_unregistered_schema():
    def handler(request):
        return _json_response({'error_code': 40403, 'message': 'Schema not found'}, status_code=404)

    with pytest.raises(RegistryFetchError) as excinfo:
        _client(handler).subject('wapiti-value').verify_schema(WAPITI_SCHEMA_JSON)
    assert excinfo.value.error_code == 40403


def test_invalid_json_response():
    def handler(request):
        return httpx.Response(200, text='<html>proxy error</html>')

    with pytest.raises(RegistryFetchError, match='invalid JSON'):
        _client(handler).schema(1)


# ---------------------------------------------------------------------------
# TLS options
# ---------------------------------------------------------------------------

def test_no_tls_options_keeps_defaults():
    assert build_ssl_context(CodecConfig(endpoint=ENDPOINT)) is None


def test_verify_none_disables_verification():
    context = build_ssl_context(CodecConfig(endpoint=ENDPOINT, verify_mode='verify_none'))

    assert context.verify_mode == ssl.CERT_NONE
    assert context.check_hostname is False


def test_missing_ca_certificate_is_config_error(tmp_path):
    config = CodecConfig(endpoint=ENDPOINT, ca_certificate=str(tmp_path / 'missing-ca.pem'))

    with pytest.raises(ConfigError, match='TLS'):
        build_ssl_context(config)


def test_invalid_verify_mode():
    with pytest.raises(ConfigError, match='verify_mode'):
        CodecConfig(endpoint=ENDPOINT, verify_mode='verify_sometimes')


def test_from_config_applies_options():
    config = CodecConfig(endpoint=ENDPOINT + '/', username='bob', password='pw',
                         registry_timeout=2.5, registry_retries=4)

    client = SchemaRegistryClient.from_config(config)

    assert client.endpoint == ENDPOINT
    assert client.retries == 4
    client.close()
