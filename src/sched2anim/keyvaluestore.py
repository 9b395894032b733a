import json
import os

from abc import ABC, abstractmethod


class KeyValueStore(ABC):

    @abstractmethod
    def get(self, key: str) -> str|None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    def close(self) -> None:
        pass


class InMemoryKeyValueStore(KeyValueStore):

    def __init__(self, initial: dict[str, str]|None = None) -> None:
        self._values: dict[str, str] = dict(initial) if initial is not None else dict()

    def get(self, key: str) -> str|None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileKeyValueStore(KeyValueStore):

    def __init__(self, filename: str) -> None:
        self._filename = filename

    def get(self, key: str) -> str|None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        values: dict[str, str] = self._read()
        values[key] = value

        with open(self._filename, 'w', encoding='utf-8') as store_file:
            json.dump(values, store_file, indent=2)

    def _read(self) -> dict[str, str]:
        if not os.path.exists(self._filename):
            return dict()

        with open(self._filename, 'r', encoding='utf-8') as store_file:
            values = json.load(store_file)

        return values if isinstance(values, dict) else dict()
