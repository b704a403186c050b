"""Rate limiters, a rate-limited work queue and a task runner built on it."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Optional, Protocol

_log = logging.getLogger(__name__)


class ShutDown(Exception):
    """The queue has been shut down and holds no more items."""


class RateLimiter(Protocol):
    def when(self, item: Hashable) -> float: ...

    def forget(self, item: Hashable) -> None: ...

    def num_requeues(self, item: Hashable) -> int: ...


class ItemExponentialFailureRateLimiter:
    """Delays an item base_delay * 2**failures seconds, capped at max_delay."""

    def __init__(self, base_delay: float, max_delay: float):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._failures: dict[Hashable, int] = {}
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> float:
        with self._lock:
            exponent = self._failures.get(item, 0)
            self._failures[item] = exponent + 1
        try:
            backoff = self.base_delay * 2**exponent
        except OverflowError:
            return self.max_delay
        return min(backoff, self.max_delay)

    def forget(self, item: Hashable) -> None:
        with self._lock:
            self._failures.pop(item, None)

    def num_requeues(self, item: Hashable) -> int:
        with self._lock:
            return self._failures.get(item, 0)


class BucketRateLimiter:
    """A token bucket refilled at qps tokens a second, holding at most burst."""

    def __init__(self, qps: float, burst: int, clock: Callable[[], float] = time.monotonic):
        if qps <= 0:
            raise ValueError("qps must be positive")
        self.qps = qps
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> float:
        with self._lock:
            now = self._clock()
            self._tokens = min(float(self.burst), self._tokens + (now - self._last) * self.qps)
            self._last = now
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.qps

    def forget(self, item: Hashable) -> None:
        pass

    def num_requeues(self, item: Hashable) -> int:
        return 0


class RateLimitingQueue:
    """A deduplicating work queue whose items can be re-added after a delay.

    An item is handed to one consumer at a time; adding it again while it is
    being processed requeues it once done() is called.
    """

    def __init__(self, rate_limiter: RateLimiter, clock: Callable[[], float] = time.monotonic):
        self._limiter = rate_limiter
        self._clock = clock
        self._cond = threading.Condition()
        self._queue: deque[Hashable] = deque()
        self._dirty: set[Hashable] = set()
        self._processing: set[Hashable] = set()
        self._waiting: dict[Hashable, float] = {}
        self._heap: list[tuple[float, int, Hashable]] = []
        self._seq = itertools.count()
        self._shutting_down = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def _add_locked(self, item: Hashable) -> None:
        if self._shutting_down or item in self._dirty:
            return
        self._dirty.add(item)
        if item in self._processing:
            return
        self._queue.append(item)
        self._cond.notify()

    def add(self, item: Hashable) -> None:
        with self._cond:
            self._add_locked(item)

    def add_after(self, item: Hashable, delay: float) -> None:
        """Add the item once delay seconds have passed."""
        with self._cond:
            if self._shutting_down:
                return
            if delay <= 0:
                self._add_locked(item)
                return
            ready = self._clock() + delay
            current = self._waiting.get(item)
            if current is not None and current <= ready:
                return
            self._waiting[item] = ready
            heapq.heappush(self._heap, (ready, next(self._seq), item))
            self._cond.notify_all()

    def add_rate_limited(self, item: Hashable) -> None:
        """Add the item after the delay its rate limiter asks for."""
        self.add_after(item, self._limiter.when(item))

    def _promote_ready_locked(self, now: float) -> None:
        while self._heap and self._heap[0][0] <= now:
            ready, _, item = heapq.heappop(self._heap)
            if self._waiting.get(item) == ready:
                del self._waiting[item]
                self._add_locked(item)

    def get(self, timeout: Optional[float] = None) -> Hashable:
        """Take the next item, blocking until one is ready.

        Raises ShutDown once the queue is shut down and empty, and
        TimeoutError if timeout seconds pass without an item.
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._cond:
            while True:
                now = self._clock()
                self._promote_ready_locked(now)
                if self._queue:
                    item = self._queue.popleft()
                    self._processing.add(item)
                    self._dirty.discard(item)
                    return item
                if self._shutting_down:
                    raise ShutDown("queue is shut down")
                waits = []
                if self._heap:
                    waits.append(self._heap[0][0] - now)
                if deadline is not None:
                    remaining = deadline - now
                    if remaining <= 0:
                        raise TimeoutError("no item became ready in time")
                    waits.append(remaining)
                self._cond.wait(max(0.0, min(waits)) if waits else None)

    def done(self, item: Hashable) -> None:
        """Mark the item processed; requeue it if it was added meanwhile."""
        with self._cond:
            self._processing.discard(item)
            if item in self._dirty:
                self._queue.append(item)
                self._cond.notify()

    def forget(self, item: Hashable) -> None:
        self._limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return self._limiter.num_requeues(item)

    def shut_down(self) -> None:
        """Stop accepting items and wake every waiting consumer."""
        with self._cond:
            self._shutting_down = True
            self._heap.clear()
            self._waiting.clear()
            self._cond.notify_all()


@dataclass(eq=False)
class _Task:
    do: Callable[[], Any]
    future: Future = field(default_factory=Future)


class WorkQueue:
    """Runs tasks concurrently, started no faster than qps with bursts of burst."""

    def __init__(self, qps: float, burst: int):
        self._queue = RateLimitingQueue(BucketRateLimiter(qps, burst))
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    def add(self, do: Callable[[], Any]) -> Future:
        """Schedule do; the returned future holds its result or exception."""
        with self._lock:
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name="workqueue", daemon=True)
                self._worker.start()
        task = _Task(do)
        self._queue.add_rate_limited(task)
        return task.future

    def shut_down(self) -> None:
        self._queue.shut_down()

    def _run(self) -> None:
        while True:
            try:
                task = self._queue.get()
            except ShutDown:
                break
            threading.Thread(target=self._execute, args=(task,), daemon=True).start()

    def _execute(self, task: _Task) -> None:
        try:
            result = task.do()
        except Exception as error:  # noqa: BLE001 - handed to the caller's future
            self._finish(task)
            task.future.set_exception(error)
        else:
            self._finish(task)
            task.future.set_result(result)

    def _finish(self, task: _Task) -> None:
        self._queue.forget(task)
        self._queue.done(task)