"""Batching windows that gather work for a key before it is processed."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Hashable, Optional

_MAX_PENDING_OPS = 1000


class _OpKind(Enum):
    ADD = "add"
    WAIT = "wait"
    STOP = "stop"


@dataclass
class _Op:
    kind: _OpKind
    key: Hashable = None
    wait_end: Optional[threading.Event] = None


@dataclass
class _Window:
    last_updated: float
    started: float
    waiters: list[threading.Event] = field(default_factory=list)


class Batcher:
    """Keeps one batching window per key.

    A window ends once nothing was added to it for idle_period seconds, or
    once it has been open for max_period seconds. Waiters on a window are
    released when it ends.
    """

    def __init__(
        self,
        max_period: float,
        idle_period: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if idle_period <= 0:
            raise ValueError("idle period must be positive")
        self.max_period = max_period
        self.idle_period = idle_period
        self._clock = clock
        self._windows: dict[Hashable, _Window] = {}
        self._ops: "queue.Queue[_Op]" = queue.Queue(maxsize=_MAX_PENDING_OPS)
        self._lock = threading.Lock()
        self._running = False
        self._monitor_thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the monitor; calling it again while running has no effect."""
        with self._lock:
            if self._running:
                return
            self._ops = queue.Queue(maxsize=_MAX_PENDING_OPS)
            self._running = True
            self._monitor_thread = threading.Thread(target=self._monitor, name="batcher", daemon=True)
            self._monitor_thread.start()

    def stop(self) -> None:
        """End every open window, releasing its waiters, and stop the monitor."""
        with self._lock:
            if not self._running:
                return
            thread = self._monitor_thread
        self._ops.put(_Op(_OpKind.STOP))
        if thread is not None:
            thread.join()

    def __enter__(self) -> "Batcher":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def add(self, key: Hashable) -> None:
        """Start a window for key or extend the open one. Never blocks."""
        with self._lock:
            if not self._running:
                return
            try:
                self._ops.put_nowait(_Op(_OpKind.ADD, key))
            except queue.Full:
                pass

    def wait(self, key: Hashable) -> None:
        """Block until the window for key ends, starting one if none is open.

        If the monitor is not running or its operation backlog is full, block
        for max_period instead.
        """
        end = threading.Event()
        with self._lock:
            queued = False
            if self._running:
                try:
                    self._ops.put_nowait(_Op(_OpKind.WAIT, key, end))
                    queued = True
                except queue.Full:
                    pass
        if queued:
            end.wait()
        else:
            time.sleep(self.max_period)

    def _monitor(self) -> None:
        tick = self.idle_period / 2
        next_tick = self._clock() + tick
        try:
            while True:
                try:
                    op = self._ops.get(timeout=max(0.0, next_tick - self._clock()))
                except queue.Empty:
                    for key, window in list(self._windows.items()):
                        self._check_for_window_end(key, window)
                    next_tick = self._clock() + tick
                    continue
                if op.kind is _OpKind.STOP:
                    break
                if op.kind is _OpKind.ADD:
                    self._start_or_update_window(op.key)
                elif op.kind is _OpKind.WAIT:
                    window = self._windows.get(op.key)
                    if window is None:
                        window = self._start_or_update_window(op.key)
                    if op.wait_end is not None:
                        window.waiters.append(op.wait_end)
        finally:
            for key, window in list(self._windows.items()):
                self._end_window(key, window)
            with self._lock:
                self._running = False
                while True:
                    try:
                        leftover = self._ops.get_nowait()
                    except queue.Empty:
                        break
                    if leftover.wait_end is not None:
                        leftover.wait_end.set()

    def _check_for_window_end(self, key: Hashable, window: _Window) -> None:
        now = self._clock()
        if now - window.last_updated < self.idle_period and now - window.started < self.max_period:
            return
        self._end_window(key, window)

    def _end_window(self, key: Hashable, window: _Window) -> None:
        for end in window.waiters:
            end.set()
        self._windows.pop(key, None)

    def _start_or_update_window(self, key: Hashable) -> _Window:
        now = self._clock()
        window = self._windows.get(key)
        if window is None:
            window = _Window(last_updated=now, started=now)
            self._windows[key] = window
            return window
        window.last_updated = now
        return window