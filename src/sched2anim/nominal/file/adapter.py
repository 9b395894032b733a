import json

from sched2anim.model.types import VehicleSupply
from sched2anim.nominal.baseadapter import BaseAdapter
from sched2anim.nominal.parsing import parse_supply


class FileAdapter(BaseAdapter):

    def __init__(self, filename: str, polyline_precision: int = 5):
        if filename is None:
            raise ValueError('No snapshot file configured for the file adapter!')

        self._filename = filename
        self._polyline_precision = polyline_precision

    def get_vehicle_supply(self) -> VehicleSupply:
        with open(self._filename, 'r', encoding='utf-8') as snapshot_file:
            data: dict = json.load(snapshot_file)

        return parse_supply(data, self._polyline_precision)
