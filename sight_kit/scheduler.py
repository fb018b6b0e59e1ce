from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

F = TypeVar("F")
R = TypeVar("R")

_STOP = object()


@dataclass
class RunnerStats:
    submitted: int = 0
    dropped: int = 0
    processed: int = 0
    failed: int = 0


class SingleFlightRunner(Generic[F, R]):
    """
    Runs `process` on a dedicated worker thread with at most one frame in flight.

    `submit` is a non-blocking try-send into a capacity-1 channel. While a frame
    is queued or being processed, new frames are dropped immediately (never
    queued) and handed to `on_drop` so their resources can be released. A pass
    that has started always runs to completion.
    """

    def __init__(
        self,
        process: Callable[[F], R],
        on_result: Optional[Callable[[F, R], None]] = None,
        on_drop: Optional[Callable[[F], None]] = None,
        *,
        name: str = "detection-worker",
    ):
        self._process = process
        self._on_result = on_result
        self._on_drop = on_drop
        self._name = name
        self._channel: "queue.Queue[Any]" = queue.Queue(maxsize=1)
        self._busy = False
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._thread: Optional[threading.Thread] = None
        self.stats = RunnerStats()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    def start(self) -> "SingleFlightRunner[F, R]":
        if self.running:
            return self
        self._thread = threading.Thread(target=self._work, name=self._name, daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Let the in-flight frame finish, then stop the worker.
        """

        thread = self._thread
        if thread is None:
            return
        self._channel.put(_STOP)
        thread.join(timeout)
        if not thread.is_alive():
            self._thread = None

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no frame is queued or in flight.
        """

        return self._idle.wait(timeout)

    def __enter__(self) -> "SingleFlightRunner[F, R]":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def submit(self, frame: F) -> bool:
        if not self.running:
            raise RuntimeError("SingleFlightRunner is not started")

        with self._lock:
            self.stats.submitted += 1
            accepted = not self._busy
            if accepted:
                try:
                    self._channel.put_nowait(frame)
                except queue.Full:
                    accepted = False
                else:
                    self._busy = True
                    self._idle.clear()
            if not accepted:
                self.stats.dropped += 1

        if not accepted:
            self._release(frame)
        return accepted

    def _release(self, frame: F) -> None:
        if self._on_drop is None:
            return
        try:
            self._on_drop(frame)
        except Exception:
            logger.exception("Error releasing dropped frame")

    def _work(self) -> None:
        while True:
            item = self._channel.get()
            if item is _STOP:
                break
            ok = False
            try:
                result = self._process(item)
                if self._on_result is not None:
                    self._on_result(item, result)
                ok = True
            except Exception:
                logger.exception("Error processing frame")
            finally:
                with self._lock:
                    if ok:
                        self.stats.processed += 1
                    else:
                        self.stats.failed += 1
                    self._busy = False
                    self._idle.set()
