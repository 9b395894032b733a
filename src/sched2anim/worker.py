import logging
import signal
import threading
import time

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from sched2anim.common.shared import log_exception, unixtimestamp_ms
from sched2anim.model.types import RenderFrame, VehicleSupply
from sched2anim.nominal.dataclient import NominalDataClient
from sched2anim.publisher import RenderSink
from sched2anim.tick import TickProcessor


class AnimationDriver:

    def __init__(
        self,
        data_client: NominalDataClient,
        tick_processor: TickProcessor,
        sink: RenderSink,
        tick_interval_ms: int = 50,
        poll_interval_seconds: int = 10,
        clock: Callable[[], int] = unixtimestamp_ms,
        monotonic: Callable[[], float] = time.monotonic
    ) -> None:
        self._data_client = data_client
        self._tick_processor = tick_processor
        self._sink = sink

        self._tick_interval_ms = tick_interval_ms
        self._poll_interval_seconds = poll_interval_seconds
        self._clock = clock
        self._monotonic = monotonic

        # polling runs beside the tick loop, the newest supply is handed over at tick start
        logging.info(f"{self.__class__.__name__}: Setting up ThreadPoolExecutor ...")
        self._executor: ThreadPoolExecutor = ThreadPoolExecutor(max_workers=1)
        self._poll_future: Future|None = None

        self._supply_lock = threading.Lock()
        self._latest_supply: VehicleSupply = VehicleSupply()

        # serializes ticks and cache resets
        self._tick_lock = threading.Lock()
        self._last_tick_time: float|None = None

        self._should_run = threading.Event()
        self._vehicles_visible = threading.Event()
        self._vehicles_visible.set()

        self._tick_thread: threading.Thread|None = None
        self.num_ticks: int = 0

    def poll(self) -> None:
        supply: VehicleSupply|None = self._data_client.get_vehicle_supply()

        # keep the last supply when the data layer fails
        if supply is not None:
            with self._supply_lock:
                self._latest_supply = supply

    def tick(self) -> RenderFrame|None:
        with self._tick_lock:
            if not self._vehicles_visible.is_set():
                return None

            # variable time step, the actual elapsed duration drives smoothing
            tick_time: float = self._monotonic()
            elapsed_ms: float = (tick_time - self._last_tick_time) * 1000.0 if self._last_tick_time is not None else 0.0
            self._last_tick_time = tick_time

            with self._supply_lock:
                supply: VehicleSupply = self._latest_supply

            frame: RenderFrame = self._tick_processor.process(supply, self._clock(), elapsed_ms)
            self.num_ticks += 1

        self._sink.publish(frame)

        return frame

    def set_vehicles_visible(self, visible: bool) -> None:
        with self._tick_lock:
            if visible:
                logging.info(f"{self.__class__.__name__}: Vehicle rendering enabled.")
                self._vehicles_visible.set()
            else:
                logging.info(f"{self.__class__.__name__}: Vehicle rendering disabled, clearing per-trip state ...")
                self._vehicles_visible.clear()

                self._tick_processor.clear()
                self._last_tick_time = None

    def is_vehicles_visible(self) -> bool:
        return self._vehicles_visible.is_set()

    def start(self, max_ticks: int|None = None) -> None:
        logging.info(f"{self.__class__.__name__}: Loading initial vehicle supply ...")
        self.poll()

        self._should_run.set()

        self._tick_thread = threading.Thread(target=self._loop, args=(max_ticks,), daemon=True)
        self._tick_thread.start()

    def stop(self) -> None:
        self._should_run.clear()

        if self._tick_thread is not None and self._tick_thread is not threading.current_thread():
            self._tick_thread.join()

        logging.info(f"{self.__class__.__name__}: Shutting down ThreadPoolExecutor ...")
        self._executor.shutdown(wait=True)

        self._sink.close()

    def is_running(self) -> bool:
        return self._should_run.is_set()

    def _signal_handler(self, signum, frame):
        logging.info(f'{self.__class__.__name__}: Received signal {signum}')
        self._should_run.clear()

    def run(self, max_ticks: int|None = None) -> None:
        # register signal handlers for graceful shutdown
        previous_handlers: dict = {
            signal.SIGINT: signal.signal(signal.SIGINT, self._signal_handler),
            signal.SIGTERM: signal.signal(signal.SIGTERM, self._signal_handler)
        }

        self.start(max_ticks)

        logging.info(f"{self.__class__.__name__}: Animation startup complete.")

        try:
            while self._should_run.is_set():
                time.sleep(0.1)

        finally:
            self.stop()

            for signum, handler in previous_handlers.items():
                if handler is not None:
                    signal.signal(signum, handler)

            logging.info(f"{self.__class__.__name__}: Animation shutdown complete after {self.num_ticks} ticks.")

    def _loop(self, max_ticks: int|None) -> None:
        next_poll_time: float = self._monotonic() + self._poll_interval_seconds

        while self._should_run.is_set():
            tick_start: float = self._monotonic()

            # never queue a second poll while one is running
            if tick_start >= next_poll_time and (self._poll_future is None or self._poll_future.done()):
                self._poll_future = self._executor.submit(self._poll_safely)
                next_poll_time = tick_start + self._poll_interval_seconds

            try:
                self.tick()
            except Exception as ex:
                log_exception(ex)

            if max_ticks is not None and self.num_ticks >= max_ticks:
                self._should_run.clear()
                break

            # late ticks start right away, ticks never overlap
            remaining_seconds: float = self._tick_interval_ms / 1000.0 - (self._monotonic() - tick_start)
            if remaining_seconds > 0:
                time.sleep(remaining_seconds)

    def _poll_safely(self) -> None:
        try:
            self.poll()
        except Exception as ex:
            log_exception(ex)
