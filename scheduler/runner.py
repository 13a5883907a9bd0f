"""Scheduler runner -- asyncio loop that fires registered jobs once a minute.

On every whole-minute boundary:
1. Takes the registry lock and scans all registered jobs
2. Checks which jobs' cron expressions match the tick timestamp
3. Dispatches each matching callback without waiting for it
4. Releases the lock before any callback runs

Callbacks are fire-and-forget. The scheduler never retries them, never
times them out, and does not stop a job from overlapping with itself.
Failures are reported (logged, and passed to `on_error` if given) once
the callback finishes; handling them is the embedding application's job.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Union

from scheduler.cron import CronExpression

logger = logging.getLogger(__name__)

JobCallback = Callable[[], Union[None, Awaitable[None]]]
ErrorHook = Callable[[str, BaseException], None]


@dataclass(frozen=True)
class Job:
    """A registered (schedule, callback) pair."""

    id: str
    schedule: str
    expression: CronExpression
    callback: JobCallback

    def matches(self, dt: datetime) -> bool:
        return self.expression.match(dt)


def next_minute(now: datetime) -> datetime:
    """The first whole-minute boundary strictly after `now`."""
    return now.replace(second=0, microsecond=0) + timedelta(minutes=1)


class Scheduler:
    """In-memory cron scheduler with minute resolution.

    Usage:
        scheduler = Scheduler()
        scheduler.register("report", "0 9 * * MON", send_report)
        task = asyncio.create_task(scheduler.start())
        ...
        scheduler.stop()
        await task

    `stop()` is idempotent. A stopped scheduler cannot be started again;
    create a new instance instead.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        on_error: ErrorHook | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._clock = clock
        self._on_error = on_error
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()
        self._executor: Executor | None = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="minutecron")
            if max_workers
            else None
        )
        self._inflight: set[asyncio.Future[Any]] = set()

        self._running = False
        self._stopped = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup: asyncio.Event | None = None

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, job_id: str, schedule: str, callback: JobCallback) -> Job:
        """Parse `schedule` and store the job under `job_id`.

        Replaces any job already registered under that id. Raises
        CronParseError without touching the registry if the schedule is
        invalid.
        """
        expression = CronExpression.parse(schedule)
        job = Job(id=job_id, schedule=schedule, expression=expression, callback=callback)

        with self._lock:
            replaced = job_id in self._jobs
            self._jobs[job_id] = job

        if replaced:
            logger.info("Replaced job: %s (%s)", job_id, expression)
        else:
            logger.info("Registered job: %s (%s)", job_id, expression)
        return job

    def delete(self, job_id: str) -> None:
        """Remove a job. Unknown ids are ignored."""
        with self._lock:
            removed = self._jobs.pop(job_id, None)
        if removed is not None:
            logger.info("Deleted job: %s", job_id)

    def jobs(self) -> list[Job]:
        """Snapshot of all registered jobs."""
        with self._lock:
            return list(self._jobs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def inflight(self) -> int:
        """Number of dispatched callbacks that have not finished yet."""
        return len(self._inflight)

    async def start(self) -> None:
        """Run the tick loop until `stop()` is called."""
        if self._running:
            raise RuntimeError("Scheduler is already running")
        if self._stopped:
            raise RuntimeError("Scheduler was stopped; create a new instance to restart")

        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        self._running = True
        logger.info("Scheduler started with %d job(s)", len(self))

        last: datetime | None = None
        try:
            while not self._stopped:
                now = self._clock()
                target = next_minute(now)
                # a clock reading behind the last tick must not repeat it
                if last is not None and target <= last:
                    target = last + timedelta(minutes=1)
                delay = max((target - now).total_seconds(), 0.0)
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                if self._stopped:
                    break
                self.tick(target)
                last = target
        finally:
            self._running = False
            self._stopped = True
            if self._executor is not None:
                self._executor.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def stop(self) -> None:
        """Ask the loop to exit after its current tick.

        Dispatched callbacks keep running. Safe to call repeatedly and
        from other threads.
        """
        if self._stopped:
            return
        self._stopped = True
        loop, wakeup = self._loop, self._wakeup
        if loop is not None and wakeup is not None and not loop.is_closed():
            loop.call_soon_threadsafe(wakeup.set)

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def tick(self, now: datetime) -> list[str]:
        """Dispatch every job whose expression matches `now`.

        Must be called from within a running event loop. Returns the ids of
        the dispatched jobs.
        """
        loop = asyncio.get_running_loop()
        fired: list[str] = []

        with self._lock:
            for job in self._jobs.values():
                if job.matches(now):
                    self._dispatch(job, loop)
                    fired.append(job.id)

        if fired:
            logger.debug("Tick %s: fired %s", now.strftime("%Y-%m-%d %H:%M"), fired)
        else:
            logger.debug("Tick %s: nothing to fire", now.strftime("%Y-%m-%d %H:%M"))
        return fired

    def _dispatch(self, job: Job, loop: asyncio.AbstractEventLoop) -> None:
        """Start a job's callback without waiting for it."""
        if _is_async_callable(job.callback):
            future: asyncio.Future[Any] = loop.create_task(job.callback(), name=f"job:{job.id}")
        else:
            future = loop.run_in_executor(self._executor, job.callback)
        self._track(job.id, future)

    def _track(self, job_id: str, future: asyncio.Future[Any]) -> None:
        self._inflight.add(future)
        future.add_done_callback(lambda f: self._on_done(job_id, f))

    def _on_done(self, job_id: str, future: asyncio.Future[Any]) -> None:
        self._inflight.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            # a plain callable may still hand back a coroutine
            result = future.result()
            if inspect.isawaitable(result):
                self._track(job_id, asyncio.ensure_future(result))
            return

        logger.error("Job %s failed", job_id, exc_info=exc)
        if self._on_error is not None:
            self._on_error(job_id, exc)


def _is_async_callable(callback: JobCallback) -> bool:
    return inspect.iscoroutinefunction(callback) or inspect.iscoroutinefunction(
        getattr(callback, "__call__", None)
    )
