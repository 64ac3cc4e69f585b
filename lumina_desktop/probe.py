"""Poll the service over HTTP until it answers or attempts run out."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, Optional, Protocol

import httpx

from lumina_desktop.exceptions import ReadinessTimeout
from lumina_desktop.models import ReadinessResult, ReadinessState

logger = logging.getLogger(__name__)

HttpGet = Callable[[str, float], int]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadScheduler:
    """Run callbacks on daemon ``threading.Timer`` threads."""

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(delay, 0.0), callback)
        timer.daemon = True
        timer.start()
        return timer


class _ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock; callbacks only run when :meth:`advance` is called."""

    def __init__(self):
        self._now = 0.0
        self._queue: list = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle()
        heapq.heappush(
            self._queue, (self._now + max(delay, 0.0), next(self._seq), handle, callback)
        )
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)

    def advance(self, seconds: float = 0.0) -> None:
        deadline = self._now + seconds
        while self._queue and self._queue[0][0] <= deadline:
            due, _, handle, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if not handle.cancelled:
                callback()
        self._now = deadline


def http_status(url: str, timeout: float) -> int:
    """Single GET; only the status code matters."""
    return httpx.get(url, timeout=timeout).status_code


def build_url(host: str, port: int, path: str = "/") -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    if not path.startswith("/"):
        path = "/" + path
    return f"http://{host}:{port}{path}"


class ReadinessProbe:
    """Fixed-interval, fixed-count HTTP readiness poll.

    The first attempt fires as soon as :meth:`start` is called, then one
    every ``interval`` seconds. A 200 settles the probe as READY; running out
    of attempts, or :meth:`cancel`, settles it as FAILED. Once settled no
    further request is made and ``on_settled`` has been called exactly once.
    """

    def __init__(
        self,
        url: str,
        interval: float = 2.0,
        max_attempts: int = 30,
        timeout: float = 1.5,
        scheduler: Optional[Scheduler] = None,
        http_get: HttpGet = http_status,
        on_settled: Optional[Callable[[ReadinessResult], None]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0 < timeout < interval:
            raise ValueError("per-attempt timeout must be positive and shorter than the interval")
        self.url = url
        self.interval = interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.scheduler = scheduler or ThreadScheduler()
        self.http_get = http_get
        self.on_settled = on_settled

        self._lock = threading.Lock()
        self._started = False
        self._attempts = 0
        self._handle: Optional[TimerHandle] = None
        self._result: Optional[ReadinessResult] = None
        self._done = threading.Event()

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def state(self) -> ReadinessState:
        return self._result.state if self._result else ReadinessState.PENDING

    @property
    def result(self) -> Optional[ReadinessResult]:
        return self._result

    def start(self) -> None:
        with self._lock:
            if self._started or self._result is not None:
                return
            self._started = True
            logger.info(
                "Waiting for %s (every %.1fs, up to %d attempts)",
                self.url, self.interval, self.max_attempts,
            )
            self._handle = self.scheduler.call_later(0, self.tick)

    def tick(self) -> None:
        with self._lock:
            if self._result is not None:
                return
            self._attempts += 1
            attempt = self._attempts
            started_at = self.scheduler.now()

        ok = self._attempt(attempt)

        result = None
        with self._lock:
            if self._result is not None:
                # settled (cancelled) while the request was in flight
                return
            if ok:
                result = self._settle(ReadinessState.READY)
            elif attempt >= self.max_attempts:
                result = self._settle(
                    ReadinessState.FAILED, ReadinessTimeout(self.url, attempt)
                )
            else:
                elapsed = self.scheduler.now() - started_at
                self._handle = self.scheduler.call_later(
                    max(self.interval - elapsed, 0.0), self.tick
                )
        if result is not None:
            self._notify(result)

    def cancel(self, reason: Optional[Exception] = None) -> bool:
        """Fail a pending probe immediately. Returns False if already settled."""
        with self._lock:
            if self._result is not None:
                return False
            result = self._settle(ReadinessState.FAILED, reason)
        logger.info("Readiness probe cancelled after %d attempts", result.attempts)
        self._notify(result)
        return True

    def wait(self, timeout: Optional[float] = None) -> Optional[ReadinessResult]:
        self._done.wait(timeout)
        return self._result

    def _attempt(self, attempt: int) -> bool:
        try:
            status = self.http_get(self.url, self.timeout)
        except (httpx.HTTPError, OSError) as exc:
            logger.debug("Attempt %d/%d: %s", attempt, self.max_attempts, exc)
            return False
        except Exception as exc:  # noqa: BLE001
            # counted as a miss so the attempt cap still ends the poll
            logger.warning("Attempt %d/%d failed: %r", attempt, self.max_attempts, exc)
            return False
        if status == 200:
            logger.info("Service ready at %s (attempt %d)", self.url, attempt)
            return True
        logger.debug("Attempt %d/%d: HTTP %s", attempt, self.max_attempts, status)
        return False

    def _settle(self, state: ReadinessState, reason: Optional[Exception] = None) -> ReadinessResult:
        # caller holds the lock
        self._result = ReadinessResult(state, self.url, self._attempts, reason)
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if state is ReadinessState.FAILED and isinstance(reason, ReadinessTimeout):
            logger.error("%s", reason)
        return self._result

    def _notify(self, result: ReadinessResult) -> None:
        self._done.set()
        if self.on_settled is not None:
            self.on_settled(result)


def await_ready(
    host: str,
    port: int,
    path: str = "/",
    interval: float = 2.0,
    max_attempts: int = 30,
    timeout: float = 1.5,
    http_get: HttpGet = http_status,
) -> ReadinessResult:
    """Blocking helper: poll ``http://host:port/path`` until settled."""
    probe = ReadinessProbe(
        build_url(host, port, path),
        interval=interval,
        max_attempts=max_attempts,
        timeout=timeout,
        http_get=http_get,
    )
    probe.start()
    return probe.wait()
