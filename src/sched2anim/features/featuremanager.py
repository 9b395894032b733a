import json
import logging

from sched2anim.features.basefeature import RenderPositionFeature, VehicleFeature
from sched2anim.features.collisionavoidance import CollisionAvoidanceFeature
from sched2anim.features.simulatedstops import SimulatedStopsFeature
from sched2anim.geo.linearroute import LinearizedRoute
from sched2anim.keyvaluestore import KeyValueStore
from sched2anim.model.types import RenderPosition, VehicleRenderContext


class FeatureManager:

    STORAGE_KEY: str = 'vehicle-features'

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

        self._all_features: list[VehicleFeature] = list()
        self._render_position_features: list[RenderPositionFeature] = list()

        # None means there is no usable persisted state, defaults apply
        self._stored_feature_ids: set[str]|None = self._load_enabled_features()
        self._enabled_features: set[str] = set(self._stored_feature_ids) if self._stored_feature_ids is not None else set()

    def register_feature(self, feature: VehicleFeature) -> None:
        if any(f.id == feature.id for f in self._all_features):
            raise ValueError(f"Feature {feature.id} is already registered!")

        self._all_features.append(feature)

        if self._stored_feature_ids is None and feature.default_enabled:
            self._enabled_features.add(feature.id)

    def register_render_position_feature(self, feature: RenderPositionFeature) -> None:
        self.register_feature(feature)
        self._render_position_features.append(feature)

    def get_render_position_features(self) -> list[RenderPositionFeature]:
        return list(self._render_position_features)

    def get_all_features(self) -> list[dict]:
        return [
            {
                'id': f.id,
                'name': f.name,
                'description': f.description,
                'enabled': self.is_enabled(f.id)
            }
            for f in self._all_features
        ]

    def is_registered(self, feature_id: str) -> bool:
        return any(f.id == feature_id for f in self._all_features)

    def is_enabled(self, feature_id: str) -> bool:
        return feature_id in self._enabled_features

    def set_enabled(self, feature_id: str, enabled: bool) -> None:
        if enabled:
            self._enabled_features.add(feature_id)
        else:
            self._enabled_features.discard(feature_id)

        self._save_enabled_features()

    def toggle_feature(self, feature_id: str) -> bool:
        new_state: bool = not self.is_enabled(feature_id)
        self.set_enabled(feature_id, new_state)

        return new_state

    def process_render_positions(
        self,
        vehicles: list[VehicleRenderContext],
        render_positions: dict[str, RenderPosition],
        linearized_routes: dict[str, LinearizedRoute]
    ) -> None:
        for feature in self._render_position_features:
            if self.is_enabled(feature.id):
                feature.process_positions(vehicles, render_positions, linearized_routes)

    def _load_enabled_features(self) -> set[str]|None:
        try:
            stored: str|None = self._store.get(self.STORAGE_KEY)
        except Exception as ex:
            logging.warning(f"{self.__class__.__name__}: Could not read feature state, using defaults: {ex}")
            return None

        if stored is None:
            return None

        try:
            feature_ids = json.loads(stored)
        except ValueError:
            logging.warning(f"{self.__class__.__name__}: Stored feature state is corrupt, using defaults.")
            return None

        if not isinstance(feature_ids, list) or not all(isinstance(f, str) for f in feature_ids):
            logging.warning(f"{self.__class__.__name__}: Stored feature state is not a list of feature IDs, using defaults.")
            return None

        return set(feature_ids)

    def _save_enabled_features(self) -> None:
        try:
            self._store.set(self.STORAGE_KEY, json.dumps(sorted(self._enabled_features)))
        except Exception as ex:
            logging.warning(f"{self.__class__.__name__}: Could not persist feature state: {ex}")


def create_default_feature_manager(store: KeyValueStore) -> FeatureManager:
    feature_manager: FeatureManager = FeatureManager(store)

    feature_manager.register_feature(SimulatedStopsFeature())
    feature_manager.register_render_position_feature(CollisionAvoidanceFeature())

    return feature_manager
