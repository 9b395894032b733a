import logging
import threading
import time

from typing import Callable

from sched2anim.common.shared import log_exception
from sched2anim.model.types import RenderPosition, SmoothedVehiclePosition
from sched2anim.sim.smoothing import SmoothingTracker


class VehicleFollower:

    def __init__(
        self,
        tracker: SmoothingTracker,
        trip_id: str,
        on_camera: Callable[[RenderPosition], None],
        interval_ms: int = 50,
        on_cancel: Callable[[str], None]|None = None
    ) -> None:
        self._tracker = tracker
        self._trip_id = trip_id
        self._on_camera = on_camera
        self._interval_ms = interval_ms
        self._on_cancel = on_cancel

        self._should_run = threading.Event()
        self._thread: threading.Thread|None = None
        self._cancelled: bool = False

    @property
    def trip_id(self) -> str:
        return self._trip_id

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def step(self) -> bool:
        if self._cancelled:
            return False

        # the tracker is only read here, it is written by the tick loop
        smoothed_position: SmoothedVehiclePosition|None = self._tracker.get(self._trip_id)
        if smoothed_position is None:
            logging.info(f"{self.__class__.__name__}: Trip {self._trip_id} is gone, stop following.")
            self._cancel()

            return False

        self._on_camera(RenderPosition(
            longitude=smoothed_position.rendered_coordinate[0],
            latitude=smoothed_position.rendered_coordinate[1],
            bearing=smoothed_position.rendered_bearing
        ))

        return True

    def start(self) -> None:
        logging.info(f"{self.__class__.__name__}: Following trip {self._trip_id} ...")

        self._should_run.set()

        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._should_run.clear()

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def is_running(self) -> bool:
        return self._should_run.is_set()

    def _cancel(self) -> None:
        self._cancelled = True
        self._should_run.clear()

        if self._on_cancel is not None:
            self._on_cancel(self._trip_id)

    def _loop(self) -> None:
        while self._should_run.is_set():
            try:
                if not self.step():
                    break
            except Exception as ex:
                log_exception(ex)

            time.sleep(self._interval_ms / 1000.0)
