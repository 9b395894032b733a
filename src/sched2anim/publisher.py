import json
import logging

from abc import ABC, abstractmethod
from typing import TextIO

from sched2anim.model.types import RenderFrame


class RenderSink(ABC):

    @abstractmethod
    def publish(self, frame: RenderFrame) -> None:
        pass

    def close(self) -> None:
        pass


class GeoJsonLinesSink(RenderSink):

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._num_frames: int = 0

    def publish(self, frame: RenderFrame) -> None:
        features: list[dict] = [r.to_feature() for r in frame.records]
        for trip_id in sorted(frame.shapes.keys()):
            features.extend(s.to_feature() for s in frame.shapes[trip_id])

        feature_collection: dict = {
            'type': 'FeatureCollection',
            'timestamp': frame.timestamp,
            'features': features
        }

        self._stream.write(json.dumps(feature_collection))
        self._stream.write('\n')
        self._stream.flush()

        self._num_frames += 1

    def close(self) -> None:
        logging.info(f"{self.__class__.__name__}: Published {self._num_frames} frames.")
        self._stream.flush()
