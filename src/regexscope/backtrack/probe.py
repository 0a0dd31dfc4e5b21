"""Process-isolated probe attempts.

A backtracking regex engine running in C holds the GIL and has no
cancellation hook, so a thread cannot interrupt it. Every attempt
therefore runs in its own worker process, which is terminated (and then
killed) when it exceeds its ceiling.

Timing is measured inside the worker around ``search()`` only, so process
start-up does not distort growth ratios. Start-up still counts against the
caller's overall budget: every wait here is bounded by the deadline the
caller passes in.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import queue
import time
import traceback
from dataclasses import dataclass
from enum import Enum
from multiprocessing import Queue

from regexscope.matchers import compile_with

logger = logging.getLogger(__name__)


class AttemptStatus(str, Enum):
    COMPLETED = "completed"
    CEILING_EXCEEDED = "ceiling_exceeded"
    BUDGET_EXHAUSTED = "budget_exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one probe attempt.

    Attributes:
        status: How the attempt ended
        elapsed_seconds: Time spent in search(), measured in the worker
        error: Error description for failed attempts
        terminated: Whether the worker had to be stopped
    """

    status: AttemptStatus
    elapsed_seconds: float | None = None
    error: str | None = None
    terminated: bool = False

    @classmethod
    def ok(cls, elapsed: float) -> "AttemptResult":
        return cls(AttemptStatus.COMPLETED, elapsed_seconds=elapsed)

    @classmethod
    def ceiling(cls) -> "AttemptResult":
        return cls(AttemptStatus.CEILING_EXCEEDED, terminated=True)

    @classmethod
    def exhausted(cls) -> "AttemptResult":
        return cls(AttemptStatus.BUDGET_EXHAUSTED, terminated=True)

    @classmethod
    def failure(cls, error: str) -> "AttemptResult":
        return cls(AttemptStatus.FAILED, error=error)


def _probe_worker(
    engine: str,
    pattern: str,
    prefix: str,
    unit: str,
    repetitions: int,
    terminator: str,
    result_queue: Queue,
    ready_event: mp.Event,
) -> None:
    """Worker function for one attempt.

    Builds the input locally so large strings are never pickled.
    """
    try:
        compiled = compile_with(engine, pattern)
        text = prefix + unit * repetitions + terminator

        # Signal ready; the caller's ceiling starts now
        ready_event.set()

        start = time.perf_counter()
        compiled.search(text)
        elapsed = time.perf_counter() - start

        result_queue.put(("success", elapsed, None))

    except Exception as e:
        tb = traceback.format_exc()
        ready_event.set()
        result_queue.put(("error", None, (type(e).__name__, str(e), tb)))


class ProbeRunner:
    """Runs probe attempts in terminable worker processes."""

    def __init__(self, start_method: str = "fork", kill_grace_seconds: float = 0.2):
        """Initialize runner.

        Args:
            start_method: Process start method (fork, spawn, forkserver)
            kill_grace_seconds: Time to wait after SIGTERM before SIGKILL
        """
        self.start_method = start_method
        self.kill_grace_seconds = kill_grace_seconds

    def run(
        self,
        engine: str,
        pattern: str,
        prefix: str,
        unit: str,
        repetitions: int,
        terminator: str,
        *,
        ceiling_seconds: float,
        deadline: float,
    ) -> AttemptResult:
        """Run one attempt.

        Args:
            engine: Backtracking engine module name ("re" or "regex")
            pattern: Pattern to search with
            prefix, unit, repetitions, terminator: Attack input recipe
            ceiling_seconds: Hard limit on search time for this attempt
            deadline: ``time.monotonic()`` value the whole probe must not pass

        Returns:
            Attempt result; ceiling violations are results, not exceptions
        """
        ctx = mp.get_context(self.start_method)
        result_queue: Queue = ctx.Queue()
        ready_event = ctx.Event()

        process = ctx.Process(
            target=_probe_worker,
            args=(engine, pattern, prefix, unit, repetitions, terminator, result_queue, ready_event),
            daemon=True,
        )
        process.start()

        try:
            # Wait for the worker to compile and build its input
            if not ready_event.wait(timeout=max(0.0, deadline - time.monotonic())):
                self._terminate_process(process)
                return AttemptResult.exhausted()

            wait = min(ceiling_seconds, deadline - time.monotonic())
            if wait <= 0:
                self._terminate_process(process)
                return AttemptResult.exhausted()
            try:
                status, elapsed, error_info = result_queue.get(timeout=wait)
            except queue.Empty:
                self._terminate_process(process)
                return AttemptResult.ceiling()

            if status == "success":
                return AttemptResult.ok(elapsed)
            error_type, error_msg, _ = error_info
            return AttemptResult.failure(f"{error_type}: {error_msg}")

        finally:
            if process.is_alive():
                process.join(timeout=self.kill_grace_seconds)
            if process.is_alive():
                self._terminate_process(process)
            result_queue.close()

    def _terminate_process(self, process: mp.Process) -> None:
        """Terminate a process gracefully then forcefully."""
        if not process.is_alive():
            return

        process.terminate()
        process.join(timeout=self.kill_grace_seconds)

        if process.is_alive():
            process.kill()
            process.join(timeout=self.kill_grace_seconds)
            if process.is_alive():
                logger.warning("Probe worker %s did not exit after SIGKILL", process.pid)
