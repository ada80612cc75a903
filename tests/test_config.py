"""Unit tests for codec configuration"""
import json

import pytest
import yaml

from avro_wapiti.config import CodecConfig, load_config
from avro_wapiti.errors import ConfigError


def test_defaults():
    config = CodecConfig(endpoint='http://registry.test')

    assert config.binary_encoded is True
    assert config.check_compatibility is False
    assert config.register_schema is False
    assert config.verify_mode == 'verify_peer'
    assert config.schema_id is None


def test_from_dict_coerces_types():
    config = CodecConfig.from_dict({
        'endpoint': 'http://registry.test',
        'schema_id': '47',
        'schema_version': 2,
        'register_schema': 'true',
        'binary_encoded': 'no',
        'registry_timeout': '2.5',
    })

    assert config.schema_id == 47
    assert config.schema_version == 2
    assert config.register_schema is True
    assert config.binary_encoded is False
    assert config.registry_timeout == 2.5


def test_from_dict_rejects_unknown_options():
    with pytest.raises(ConfigError, match='schema_idd'):
        CodecConfig.from_dict({'endpoint': 'http://registry.test', 'schema_idd': 1})


def test_from_dict_requires_endpoint():
    with pytest.raises(ConfigError, match='endpoint'):
        CodecConfig.from_dict({'schema_id': 1})


@pytest.mark.parametrize('options', [
    {'schema_id': 'forty-seven'},
    {'check_compatibility': 'maybe'},
    {'registry_timeout': 'soon'},
    {'registry_retries': 0},
])
def test_from_dict_rejects_bad_values(options):
    with pytest.raises(ConfigError):
        CodecConfig.from_dict({'endpoint': 'http://registry.test', **options})


def test_password_not_in_repr():
    config = CodecConfig(endpoint='http://registry.test', username='u', password='hunter2')
    assert 'hunter2' not in repr(config)


def test_client_key_requires_certificate():
    with pytest.raises(ConfigError, match='client_certificate'):
        CodecConfig(endpoint='http://registry.test', client_key='client.key')


@pytest.mark.parametrize('options,problems', [
    ({'schema_id': 47}, 0),
    ({'subject_name': 's', 'schema_version': 1}, 0),
    ({'subject_name': 's', 'schema_string': '"string"'}, 0),
    ({'subject_name': 's'}, 1),
    ({}, 1),
])
def test_validate_for_encoding(options, problems):
    config = CodecConfig(endpoint='http://registry.test', **options)
    assert len(config.validate_for_encoding()) == problems


def test_load_yaml_config(tmp_path):
    path = tmp_path / 'codec.yaml'
    path.write_text(yaml.dump({
        'codec': {'endpoint': 'http://registry.test', 'schema_id': 47},
        'kafka': {'bootstrap_servers': ['broker:9092']},
    }))

    codec_config, kafka_config = load_config(str(path))

    assert codec_config.schema_id == 47
    assert kafka_config == {'bootstrap_servers': ['broker:9092']}


def test_load_json_config_without_kafka(tmp_path):
    path = tmp_path / 'codec.json'
    path.write_text(json.dumps({'codec': {'endpoint': 'http://registry.test'}}))

    codec_config, kafka_config = load_config(str(path))

    assert codec_config.endpoint == 'http://registry.test'
    assert kafka_config == {}


def test_load_config_missing_codec_section(tmp_path):
    path = tmp_path / 'codec.yaml'
    path.write_text('kafka: {}\n')

    with pytest.raises(ConfigError, match="'codec'"):
        load_config(str(path))


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / 'codec.yml'
    path.write_text('codec: [unclosed\n')

    with pytest.raises(ConfigError):
        load_config(str(path))
