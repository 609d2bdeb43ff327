from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from puck_sim.physics import SimulationParameters
from puck_sim.simulation import simulate
from puck_sim.types import SimulationResult

logger = logging.getLogger(__name__)

ResultCallback = Callable[[SimulationResult], None]


class LatestOnlyRunner:
    """
    Runs simulate() off the calling thread and keeps only the newest answer.

    Every submit() records the request fingerprint as the latest one. A run
    that finishes after a newer request was submitted is dropped, never
    published; the solve itself is not interrupted.
    """
    def __init__(self, on_result: Optional[ResultCallback] = None, max_workers: int = 1):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="puck-sim")
        self._on_result = on_result
        self._lock = threading.Lock()
        self._latest_fingerprint: Optional[str] = None
        self._latest_result: Optional[SimulationResult] = None

    @property
    def latest_result(self) -> Optional[SimulationResult]:
        with self._lock:
            return self._latest_result

    @property
    def latest_fingerprint(self) -> Optional[str]:
        with self._lock:
            return self._latest_fingerprint

    def is_current(self, fingerprint: str) -> bool:
        with self._lock:
            return fingerprint == self._latest_fingerprint

    def submit(self, params: SimulationParameters) -> Future:
        fp = params.fingerprint()
        with self._lock:
            self._latest_fingerprint = fp
        fut = self._executor.submit(simulate, params)
        fut.add_done_callback(self._publish)
        return fut

    def _publish(self, fut: Future) -> None:
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("simulation failed: %r", exc)
            return
        result = fut.result()
        with self._lock:
            if result.fingerprint != self._latest_fingerprint:
                logger.debug("dropping superseded result %s", result.fingerprint[:12])
                return
            self._latest_result = result
        if self._on_result is not None:
            self._on_result(result)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "LatestOnlyRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown(wait=True)
