"""A fixed pool of worker threads, each owning a per-thread context."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from typing import Any

from p4fusion import log

Job = Callable[[Any], None]


class ThreadPool:
    """Runs queued jobs on worker threads.

    Every job is called with the context that belongs to the worker running it;
    contexts come from ``context_factory``, one per worker.  Exceptions raised
    by jobs are kept, one per worker, for ``raise_caught_exceptions``.
    """

    def __init__(self, context_factory: Callable[[], Any] | None = None) -> None:
        self._context_factory = context_factory
        self._lock = threading.Lock()
        self._work = threading.Condition(self._lock)
        self._idle = threading.Condition(self._lock)
        self._exceptions_lock = threading.Lock()
        self._jobs: deque[Job] = deque()
        self._threads: list[threading.Thread] = []
        self._exceptions: list[BaseException | None] = []
        self._contexts: list[Any] = []
        self._should_stop = False
        self._shut_down_called = False
        self._jobs_processing = 0

    def __enter__(self) -> ThreadPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shut_down()

    def initialize(self, size: int) -> None:
        """Start ``size`` worker threads."""
        with self._lock:
            self._shut_down_called = False
            self._should_stop = False
            self._jobs_processing = len(self._jobs)
        self._contexts = [self._context_factory() if self._context_factory else None for _ in range(size)]
        for index in range(size):
            self._exceptions.append(None)
            thread = threading.Thread(
                target=self._worker, args=(index,), name=f"Worker #{index}", daemon=True
            )
            self._threads.append(thread)
            thread.start()

    def _worker(self, index: int) -> None:
        context = self._contexts[index]
        while True:
            with self._work:
                self._work.wait_for(lambda: bool(self._jobs) or self._should_stop)
                if self._should_stop:
                    break
                job = self._jobs.popleft()
            try:
                job(context)
            except Exception as exc:  # noqa: BLE001 - kept for the caller
                with self._exceptions_lock:
                    self._exceptions[index] = exc
            with self._lock:
                self._jobs_processing -= 1
                if self._jobs_processing == 0:
                    self._idle.notify_all()

    def add_job(self, job: Job) -> None:
        """Queue ``job`` to be called with a worker's context."""
        with self._lock:
            self._jobs.append(job)
            self._jobs_processing += 1
            self._work.notify()

    def wait(self) -> None:
        """Block until every queued job has finished."""
        with self._idle:
            self._idle.wait_for(lambda: self._jobs_processing == 0)

    def raise_caught_exceptions(self) -> None:
        """Re-raise the first exception a job raised, if any."""
        with self._exceptions_lock:
            for exc in self._exceptions:
                if exc is not None:
                    raise exc

    def shut_down(self) -> None:
        """Stop and join the workers; later calls do nothing until re-initialized."""
        if self._shut_down_called:
            return
        self._shut_down_called = True
        with self._lock:
            self._should_stop = True
            self._work.notify_all()
        for thread in self._threads:
            thread.join()
        self._threads.clear()
        with self._exceptions_lock:
            self._exceptions.clear()
        self._contexts.clear()
        log.success("Thread pool shut down successfully")

    def resize(self, size: int) -> None:
        """Shut down and restart with ``size`` workers."""
        self.shut_down()
        self.initialize(size)

    def thread_count(self) -> int:
        """Return the number of worker threads."""
        return len(self._threads)