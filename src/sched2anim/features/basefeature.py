from abc import ABC, abstractmethod

from sched2anim.geo.linearroute import LinearizedRoute
from sched2anim.model.types import RenderPosition, VehicleRenderContext


class VehicleFeature:

    def __init__(self, feature_id: str, name: str, description: str, default_enabled: bool) -> None:
        self.id: str = feature_id
        self.name: str = name
        self.description: str = description
        self.default_enabled: bool = default_enabled


class RenderPositionFeature(VehicleFeature, ABC):

    @abstractmethod
    def process_positions(
        self,
        vehicles: list[VehicleRenderContext],
        render_positions: dict[str, RenderPosition],
        linearized_routes: dict[str, LinearizedRoute]
    ) -> None:
        pass
