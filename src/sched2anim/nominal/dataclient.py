import logging

from sched2anim.common.shared import log_exception
from sched2anim.model.types import VehicleSupply
from sched2anim.nominal.baseadapter import BaseAdapter


class NominalDataClient:

    def __init__(self, adapter_type: str, adapter_config: dict):
        self._adapter_type = adapter_type
        self._adapter_config = adapter_config

        self._adapter: BaseAdapter = self._get_configured_adapter()

    def get_vehicle_supply(self) -> VehicleSupply|None:
        try:
            logging.info(f"{self.__class__.__name__}: Loading vehicle supply with adapter of type {self._adapter_type} ...")
            supply: VehicleSupply = self._adapter.get_vehicle_supply()

            logging.info(f"{self.__class__.__name__}: Loaded {len(supply.trips)} trips on {len(supply.geometries)} routes.")

            return supply

        except Exception as ex:
            log_exception(ex)

            return None

    def _get_configured_adapter(self) -> BaseAdapter:
        adapter: BaseAdapter = None

        if self._adapter_type == 'file':
            from sched2anim.nominal.file.adapter import FileAdapter
            adapter = FileAdapter(
                self._adapter_config.get('endpoint', None),
                self._adapter_config.get('polyline_precision', 5)
            )
        elif self._adapter_type == 'http':
            from sched2anim.nominal.http.adapter import HttpAdapter
            adapter = HttpAdapter(
                self._adapter_config.get('endpoint', None),
                self._adapter_config.get('username', None),
                self._adapter_config.get('password', None),
                self._adapter_config.get('polyline_precision', 5)
            )
        else:
            raise ValueError(f"Unknown nominal adapter type {self._adapter_type}!")

        return adapter
