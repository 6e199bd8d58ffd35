"""
Notifications emitted by the simulation driver.

The driver pushes events into an ``EventChannel``; the host either drains the
queue on its own thread or subscribes callbacks that run synchronously on the
driver thread.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    percent: int
    increment: int
    status: str


@dataclass(frozen=True)
class FailureEvent:
    stress: float                   # MPa at detection
    strain: float
    increment: int
    total_increments: int
    voxel: Optional[Tuple[int, int, int]] = None
    max_ratio: float = 0.0


@dataclass(frozen=True, eq=False)
class CompletedEvent:
    """Terminal notification carrying every recorded curve sample."""
    strain: np.ndarray = field(default_factory=lambda: np.zeros(0))
    stress: np.ndarray = field(default_factory=lambda: np.zeros(0))
    increments: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=int))
    failure_detected: bool = False
    failure_increment: int = -1
    cancelled: bool = False
    error: Optional[str] = None

    @property
    def peak_index(self) -> int:
        if self.stress.size == 0:
            return -1
        return int(np.argmax(self.stress))

    @property
    def peak_stress(self) -> float:
        return float(self.stress[self.peak_index]) if self.stress.size else 0.0

    @property
    def peak_strain(self) -> float:
        """Strain at the peak stress."""
        return float(self.strain[self.peak_index]) if self.strain.size else 0.0

    @property
    def total_steps(self) -> int:
        return max(self.strain.size - 1, 0)


class EventChannel:
    """Thread-safe queue of driver events with optional synchronous listeners."""

    def __init__(self):
        self._queue = queue.Queue()
        self._subscribers: List[Callable] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable) -> Callable:
        with self._lock:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callable):
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event):
        self._queue.put(event)
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber %r raised on %s", callback, type(event).__name__)

    def get(self, timeout: Optional[float] = None):
        """Next event, or None when nothing arrives within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
