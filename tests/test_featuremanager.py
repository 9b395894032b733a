import json
import pytest

from sched2anim.features.basefeature import RenderPositionFeature
from sched2anim.features.collisionavoidance import CollisionAvoidanceFeature
from sched2anim.features.featuremanager import FeatureManager, create_default_feature_manager
from sched2anim.features.simulatedstops import SimulatedStopsFeature
from sched2anim.keyvaluestore import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore


class RecordingFeature(RenderPositionFeature):

    def __init__(self, feature_id: str = 'recording', default_enabled: bool = True) -> None:
        super().__init__(feature_id, 'Recording', 'Records every call', default_enabled)
        self.calls: list = list()

    def process_positions(self, vehicles, render_positions, linearized_routes) -> None:
        self.calls.append(list(vehicles))


class BrokenStore(KeyValueStore):

    def get(self, key: str) -> str|None:
        raise IOError('storage unavailable')

    def set(self, key: str, value: str) -> None:
        raise IOError('storage unavailable')


def test_defaults_without_stored_state():
    feature_manager: FeatureManager = create_default_feature_manager(InMemoryKeyValueStore())

    assert feature_manager.is_enabled(SimulatedStopsFeature.ID)
    assert feature_manager.is_enabled(CollisionAvoidanceFeature.ID)


def test_all_features_listing():
    features: list = create_default_feature_manager(InMemoryKeyValueStore()).get_all_features()

    assert [f['id'] for f in features] == ['simulated-stops', 'collision-avoidance']
    assert all(f['enabled'] for f in features)
    assert features[0]['name'] == 'Simulated Station Stops'


@pytest.mark.parametrize('stored', ['not json', '{"simulated-stops": true}', '[1, 2]'])
def test_unusable_stored_state_falls_back_to_defaults(stored):
    store: InMemoryKeyValueStore = InMemoryKeyValueStore({FeatureManager.STORAGE_KEY: stored})
    feature_manager: FeatureManager = create_default_feature_manager(store)

    assert feature_manager.is_enabled(SimulatedStopsFeature.ID)
    assert feature_manager.is_enabled(CollisionAvoidanceFeature.ID)


def test_stored_state_overrides_defaults():
    store: InMemoryKeyValueStore = InMemoryKeyValueStore({FeatureManager.STORAGE_KEY: '["collision-avoidance"]'})
    feature_manager: FeatureManager = create_default_feature_manager(store)

    assert not feature_manager.is_enabled(SimulatedStopsFeature.ID)
    assert feature_manager.is_enabled(CollisionAvoidanceFeature.ID)


def test_empty_stored_state_disables_everything():
    store: InMemoryKeyValueStore = InMemoryKeyValueStore({FeatureManager.STORAGE_KEY: '[]'})
    feature_manager: FeatureManager = create_default_feature_manager(store)

    assert not any(f['enabled'] for f in feature_manager.get_all_features())


def test_changes_are_persisted():
    store: InMemoryKeyValueStore = InMemoryKeyValueStore()
    feature_manager: FeatureManager = create_default_feature_manager(store)

    feature_manager.set_enabled(SimulatedStopsFeature.ID, False)

    assert json.loads(store.get(FeatureManager.STORAGE_KEY)) == ['collision-avoidance']
    assert not create_default_feature_manager(store).is_enabled(SimulatedStopsFeature.ID)


def test_toggle_returns_new_state():
    feature_manager: FeatureManager = create_default_feature_manager(InMemoryKeyValueStore())

    assert feature_manager.toggle_feature(CollisionAvoidanceFeature.ID) is False
    assert feature_manager.toggle_feature(CollisionAvoidanceFeature.ID) is True


def test_duplicate_registration_fails():
    feature_manager: FeatureManager = create_default_feature_manager(InMemoryKeyValueStore())

    with pytest.raises(ValueError):
        feature_manager.register_feature(SimulatedStopsFeature())


def test_processing_only_when_enabled():
    feature_manager: FeatureManager = FeatureManager(InMemoryKeyValueStore())
    feature: RecordingFeature = RecordingFeature()
    feature_manager.register_render_position_feature(feature)

    feature_manager.process_render_positions(['vehicle'], dict(), dict())
    feature_manager.set_enabled('recording', False)
    feature_manager.process_render_positions(['vehicle'], dict(), dict())

    assert feature.calls == [['vehicle']]
    assert feature_manager.get_render_position_features() == [feature]


def test_default_disabled_feature():
    feature_manager: FeatureManager = FeatureManager(InMemoryKeyValueStore())
    feature_manager.register_render_position_feature(RecordingFeature(default_enabled=False))

    assert feature_manager.is_registered('recording')
    assert not feature_manager.is_enabled('recording')


def test_broken_store_is_tolerated():
    feature_manager: FeatureManager = create_default_feature_manager(BrokenStore())

    assert feature_manager.is_enabled(SimulatedStopsFeature.ID)

    feature_manager.set_enabled(SimulatedStopsFeature.ID, False)
    assert not feature_manager.is_enabled(SimulatedStopsFeature.ID)


def test_json_file_store(tmp_path):
    filename: str = str(tmp_path / 'settings.json')

    first: FeatureManager = create_default_feature_manager(JsonFileKeyValueStore(filename))
    first.set_enabled(CollisionAvoidanceFeature.ID, False)

    second: FeatureManager = create_default_feature_manager(JsonFileKeyValueStore(filename))

    assert second.is_enabled(SimulatedStopsFeature.ID)
    assert not second.is_enabled(CollisionAvoidanceFeature.ID)


def test_corrupt_json_file_falls_back_to_defaults(tmp_path):
    store_file = tmp_path / 'settings.json'
    store_file.write_text('{ broken', encoding='utf-8')

    feature_manager: FeatureManager = create_default_feature_manager(JsonFileKeyValueStore(str(store_file)))

    assert feature_manager.is_enabled(CollisionAvoidanceFeature.ID)
