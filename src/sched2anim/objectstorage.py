from pymongo import MongoClient

from sched2anim.keyvaluestore import KeyValueStore


class ObjectStorage(KeyValueStore):

    def __init__(self, username: str, password: str, host: str = 'mongodb', db_name: str = 'sched2anim'):
        self._mdb = MongoClient(f"mongodb://{username}:{password}@{host}:27017/?authSource=admin")

        self._db = self._mdb[db_name]

    def get(self, key: str) -> str|None:
        data: dict|None = self._db.settings.find_one({'key': key})

        return data.get('value') if data is not None else None

    def set(self, key: str, value: str) -> None:
        self._db.settings.update_one(
            {'key': key},
            {'$set': {'key': key, 'value': value}},
            upsert=True
        )

    def close(self) -> None:
        self._mdb.close()
