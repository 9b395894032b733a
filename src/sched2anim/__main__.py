import click
import logging
import os
import sys

from datetime import tzinfo

from sched2anim.common.datetime import configured_timezone, get_operation_time_str
from sched2anim.common.env import get_int, is_debug
from sched2anim.common.shared import log_exception, unixtimestamp_ms
from sched2anim.features.featuremanager import FeatureManager, create_default_feature_manager
from sched2anim.keyvaluestore import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from sched2anim.nominal.dataclient import NominalDataClient
from sched2anim.publisher import GeoJsonLinesSink
from sched2anim.tick import TickProcessor
from sched2anim.worker import AnimationDriver


def create_feature_store() -> KeyValueStore:
    store_type: str = os.getenv('S2A_FEATURE_STORE', 'file')

    if store_type == 'file':
        return JsonFileKeyValueStore(os.getenv('S2A_FEATURE_STORE_PATH', '.sched2anim.json'))
    elif store_type == 'memory':
        return InMemoryKeyValueStore()
    elif store_type == 'mongodb':
        from sched2anim.objectstorage import ObjectStorage

        logging.info("Connecting to MongoDB ...")
        return ObjectStorage(
            os.getenv('S2A_MONGODB_USERNAME', ''),
            os.getenv('S2A_MONGODB_PASSWORD', ''),
            os.getenv('S2A_MONGODB_HOST', 'mongodb')
        )
    else:
        raise ValueError(f"Unknown feature store type {store_type}!")

def run_animation(snapshot: str|None, endpoint: str|None, output: str|None, ticks: int|None, body_segments: bool):
    try:
        adapter_type: str = os.getenv('S2A_ADAPTER_TYPE', 'file')
        adapter_endpoint: str|None = os.getenv('S2A_ADAPTER_ENDPOINT', None)

        if snapshot is not None:
            adapter_type, adapter_endpoint = 'file', snapshot
        elif endpoint is not None:
            adapter_type, adapter_endpoint = 'http', endpoint

        data_client: NominalDataClient = NominalDataClient(adapter_type, {
            'endpoint': adapter_endpoint,
            'username': os.getenv('S2A_ADAPTER_USERNAME', None),
            'password': os.getenv('S2A_ADAPTER_PASSWORD', None),
            'polyline_precision': get_int('S2A_ADAPTER_POLYLINE_PRECISION', 5)
        })

        tz: tzinfo = configured_timezone()

        feature_store: KeyValueStore = create_feature_store()

        feature_manager: FeatureManager = create_default_feature_manager(feature_store)
        tick_processor: TickProcessor = TickProcessor(feature_manager, body_segments=body_segments, tz=tz)

        output_stream = open(output, 'w', encoding='utf-8') if output is not None else sys.stdout

        try:
            driver: AnimationDriver = AnimationDriver(
                data_client,
                tick_processor,
                GeoJsonLinesSink(output_stream),
                tick_interval_ms=get_int('S2A_TICK_INTERVAL_MS', 50),
                poll_interval_seconds=get_int('S2A_POLL_INTERVAL_SECONDS', 10)
            )

            logging.info(f"Starting animation at {get_operation_time_str(unixtimestamp_ms(), tz)} ...")
            driver.run(ticks)
        finally:
            if output_stream is not sys.stdout:
                output_stream.close()

            feature_store.close()

    except Exception as ex:
        log_exception(ex)

@click.group()
def cli():
    pass

@cli.command()
@click.option('--snapshot', default=None, help='JSON snapshot file with routes and trips.')
@click.option('--endpoint', default=None, help='HTTP endpoint delivering the vehicle supply.')
@click.option('--output', default=None, help='GeoJSON lines output file, stdout if omitted.')
@click.option('--ticks', default=None, type=int, help='Stop after this number of ticks.')
@click.option('--no-body-segments', is_flag=True, default=False, help='Do not sample tram car bodies.')
def run(snapshot, endpoint, output, ticks, no_body_segments):

    # set logging default configuration, frames go to stdout
    logging.basicConfig(
        format="[%(levelname)s] %(asctime)s %(message)s",
        level=logging.DEBUG if is_debug() else logging.INFO,
        stream=sys.stderr
    )

    # run the animation
    run_animation(snapshot, endpoint, output, ticks, not no_body_segments)

@cli.group()
def features():
    pass

@features.command('list')
def list_features():
    feature_store: KeyValueStore = create_feature_store()

    try:
        feature_manager: FeatureManager = create_default_feature_manager(feature_store)

        for feature in feature_manager.get_all_features():
            state: str = 'enabled' if feature['enabled'] else 'disabled'
            click.echo(f"{feature['id']} [{state}] {feature['name']}: {feature['description']}")
    finally:
        feature_store.close()

def _change_feature(feature_id: str, enabled: bool|None) -> None:
    feature_store: KeyValueStore = create_feature_store()

    try:
        feature_manager: FeatureManager = create_default_feature_manager(feature_store)

        if not feature_manager.is_registered(feature_id):
            raise click.BadParameter(f"Unknown feature {feature_id}")

        if enabled is None:
            enabled = feature_manager.toggle_feature(feature_id)
        else:
            feature_manager.set_enabled(feature_id, enabled)
    finally:
        feature_store.close()

    click.echo(f"{feature_id} {'enabled' if enabled else 'disabled'}")

@features.command()
@click.argument('feature_id')
def enable(feature_id):
    _change_feature(feature_id, True)

@features.command()
@click.argument('feature_id')
def disable(feature_id):
    _change_feature(feature_id, False)

@features.command()
@click.argument('feature_id')
def toggle(feature_id):
    _change_feature(feature_id, None)


if __name__ == '__main__':
    cli()
