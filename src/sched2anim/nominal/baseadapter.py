from abc import ABC, abstractmethod

from sched2anim.model.types import VehicleSupply


class BaseAdapter(ABC):

    @abstractmethod
    def get_vehicle_supply(self) -> VehicleSupply:
        pass
