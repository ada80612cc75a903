"""Command-line interface for the avro-wapiti codec"""
import base64
import json
import sys
from pathlib import Path

import click
import yaml
from tabulate import tabulate

from . import __version__
from .codec import AvroWapitiCodec
from .config import load_config
from .errors import CodecError, UnsupportedMessageFormatError
from .event import Event
from .framing import HEADER_SIZE, MAGIC_BYTE, decode_frame
from .log import configure_logging
from .transport import KafkaTransport


@click.group()
@click.version_option(version=__version__)
@click.option('--log-level', default='WARNING', show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Minimum log level')
@click.option('--json-logs', is_flag=True, help='Emit logs as JSON lines')
def main(log_level, json_logs):
    """Avro Schema Registry codec

    Encode events as registry-framed Avro messages and decode them back,
    optionally straight to and from Kafka.
    """
    configure_logging(log_level, json=json_logs)


def build_codec(config_file):
    """Load *config_file* and build a codec from its ``codec`` section"""
    codec_config, kafka_config = load_config(config_file)
    return AvroWapitiCodec(codec_config), kafka_config


def _fail(message):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _read_frame(data, input_file):
    if input_file:
        with open(input_file, 'rb') as f:
            return f.read()
    if data:
        return data
    _fail("Either --data or --input-file must be provided")


def _event_output(event):
    return {'event': event.to_dict(), 'metadata': event.metadata}


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--event', '-e', 'event_json', help='Event as a JSON object')
@click.option('--event-file', '-f', type=click.Path(exists=True), help='File containing the event JSON')
@click.option('--output', '-o', type=click.Path(), help='Write the frame to this file instead of stdout')
def encode(config_file, event_json, event_file, output):
    """Encode one event

    Example:
        avro-wapiti encode codec.yaml --event '{"message": "hello"}'
    """
    if event_file:
        event_json = Path(event_file).read_text()
    if not event_json:
        _fail("Either --event or --event-file must be provided")

    try:
        event = Event.from_json(event_json)
        codec, _ = build_codec(config_file)
        with codec:
            payload = codec.encode(event)
    except ValueError as e:
        _fail(f"invalid event JSON: {e}")
    except CodecError as e:
        _fail(e)

    if output:
        Path(output).write_bytes(payload)
        click.echo(f"Wrote {len(payload)} bytes to {output}")
    elif codec.config.binary_encoded:
        # raw frames are not printable; show them base64 encoded
        click.echo(base64.b64encode(payload).decode('ascii'))
    else:
        click.echo(payload.decode('ascii'))


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--data', '-d', help='Base64 encoded frame')
@click.option('--input-file', '-f', type=click.Path(exists=True), help='File containing a raw or base64 frame')
def decode(config_file, data, input_file):
    """Decode one frame and print the event as JSON

    Example:
        avro-wapiti decode codec.yaml --data AAAAAAEK...
    """
    frame = _read_frame(data, input_file)
    try:
        codec, _ = build_codec(config_file)
        with codec:
            event = codec.decode(frame)
    except CodecError as e:
        _fail(e)

    click.echo(json.dumps(_event_output(event), indent=2))


@main.command()
@click.option('--data', '-d', help='Base64 encoded frame')
@click.option('--input-file', '-f', type=click.Path(exists=True), help='File containing a raw or base64 frame')
def inspect(data, input_file):
    """Show the frame header without contacting the registry"""
    try:
        frame = decode_frame(_read_frame(data, input_file))
    except CodecError as e:
        _fail(e)

    table = [
        ['magic byte', MAGIC_BYTE],
        ['schema id', frame.schema_id],
        ['header bytes', HEADER_SIZE],
        ['body bytes', len(frame.body)],
        ['base64 wrapped', 'yes' if frame.base64_wrapped else 'no'],
    ]
    click.echo(tabulate(table, headers=['Field', 'Value'], tablefmt='grid'))


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.argument('topic')
@click.option('--events-file', '-f', type=click.Path(exists=True), required=True,
              help='File with one JSON event per line')
@click.option('--key', '-k', help='Message key')
def produce(config_file, topic, events_file, key):
    """Encode events and publish them to a Kafka topic

    Example:
        avro-wapiti produce codec.yaml events-topic -f events.jsonl
    """
    try:
        codec, kafka_config = build_codec(config_file)
    except CodecError as e:
        _fail(e)

    published = 0
    with codec, KafkaTransport(kafka_config) as transport:
        with open(events_file, 'r') as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    payload = codec.encode(Event.from_json(line))
                except ValueError as e:
                    _fail(f"line {line_no}: invalid event JSON: {e}")
                except CodecError as e:
                    _fail(f"line {line_no}: {e}")

                result = transport.publish(topic, payload, key=key)
                if not result.success:
                    _fail(f"line {line_no}: publish failed: {result.error}")
                published += 1

    click.echo(f"Published {published} message(s) to {topic}")


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.argument('topic')
@click.option('--count', '-c', default=1, type=int, help='Number of messages to consume')
@click.option('--timeout-ms', default=5000, type=int, help='Poll timeout per message')
def consume(config_file, topic, count, timeout_ms):
    """Consume frames from a Kafka topic and print decoded events

    One JSON document is printed per line. Messages with an unsupported
    message_format are reported on stderr with their shipping label.
    """
    try:
        codec, kafka_config = build_codec(config_file)
    except CodecError as e:
        _fail(e)

    with codec, KafkaTransport(kafka_config) as transport:
        transport.subscribe([topic])
        for _ in range(count):
            result = transport.consume(timeout_ms=timeout_ms)
            if result.message is None:
                break
            try:
                event = codec.decode(result.message.value)
            except UnsupportedMessageFormatError as e:
                click.echo(json.dumps({'error': str(e), 'metadata': e.metadata}), err=True)
                continue
            except CodecError as e:
                _fail(f"offset {result.offset}: {e}")
            click.echo(json.dumps(_event_output(event)))


@main.command()
@click.argument('config_file', type=click.Path(exists=True))
def validate_config(config_file):
    """Validate a configuration file

    Example:
        avro-wapiti validate-config codec.yaml
    """
    try:
        codec_config, _ = load_config(config_file)
    except CodecError as e:
        _fail(f"Configuration validation failed: {e}")

    errors = codec_config.validate_for_encoding()
    if errors:
        click.echo("Configuration is valid for decoding only:", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)
    click.echo("✓ Configuration is valid")


@main.command()
@click.argument('output_file', type=click.Path())
def generate_config(output_file):
    """Generate a sample configuration file

    Example:
        avro-wapiti generate-config codec.yaml
    """
    config = _create_sample_config()

    output_path = Path(output_file)
    with open(output_path, 'w') as f:
        if output_path.suffix in ['.yaml', '.yml']:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(config, f, indent=2)

    click.echo(f"Sample configuration written to {output_file}")


def _create_sample_config():
    """Create a sample configuration"""
    return {
        'codec': {
            'endpoint': 'http://localhost:8081',
            'subject_name': 'my_kafka_subject_name',
            'schema_uri': '/app/my_kafka_subject.avsc',
            'register_schema': True,
            'check_compatibility': False,
            'binary_encoded': True,
        },
        'kafka': {
            'bootstrap_servers': ['localhost:9092'],
        },
    }


if __name__ == '__main__':
    main()
