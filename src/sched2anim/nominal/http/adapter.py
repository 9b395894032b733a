import logging
import requests

from sched2anim.model.types import VehicleSupply
from sched2anim.nominal.baseadapter import BaseAdapter
from sched2anim.nominal.parsing import parse_supply


class HttpAdapter(BaseAdapter):

    REQUEST_TIMEOUT_SECONDS: int = 30

    def __init__(self, endpoint: str, username: str|None = None, password: str|None = None, polyline_precision: int = 5):
        if endpoint is None:
            raise ValueError('No endpoint configured for the HTTP adapter!')

        self._endpoint = endpoint
        self._username = username
        self._password = password
        self._polyline_precision = polyline_precision

    def get_vehicle_supply(self) -> VehicleSupply:
        data: dict = self._request()

        return parse_supply(data, self._polyline_precision)

    def _request(self) -> dict:
        auth: tuple[str, str]|None = None
        if self._username is not None and self._password is not None:
            auth = (self._username, self._password)

        logging.debug(f"{self.__class__.__name__}: Requesting {self._endpoint} ...")

        response: requests.Response = requests.get(
            self._endpoint,
            auth=auth,
            headers={'Accept': 'application/json'},
            timeout=self.REQUEST_TIMEOUT_SECONDS
        )

        response.raise_for_status()

        return response.json()
