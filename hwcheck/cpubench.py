"""Multi-core pi benchmark based on the Leibniz series."""

from __future__ import annotations

import math
import multiprocessing
import os
import sys
import time
from typing import Any

__all__ = ["BenchmarkError", "PiBenchmark", "leibniz_pi", "ERROR_LIMIT"]

ERROR_LIMIT = 0.0001
_CHUNK = 65536


class BenchmarkError(Exception):
    """The pi benchmark failed or gave an inaccurate result."""


def _series(depth: int, counter: Any = None) -> float:
    """Sum ``depth`` terms after the first; publish progress to ``counter`` if given."""
    estimate = 1.0
    divisor = 3.0
    sign = -1.0
    done = 0
    if counter is not None:
        counter.value = 0
    while done < depth:
        step = min(_CHUNK, depth - done)
        for _ in range(step):
            estimate += sign / divisor
            divisor += 2.0
            sign = -sign
        done += step
        if counter is not None:
            counter.value = done
    return estimate * 4.0


def leibniz_pi(iterations: int) -> float:
    """Approximate pi with the Leibniz series: the term 1 plus ``iterations`` more terms."""
    if iterations < 0:
        raise ValueError("iterations must not be negative")
    return _series(iterations)


def _worker(
    core: int,
    depth: int,
    duration: float,
    started: float,
    counter: Any,
    margin: Any,
    elapsed: Any,
) -> None:
    if hasattr(os, "sched_setaffinity"):
        try:
            os.sched_setaffinity(0, {core})
        except OSError:
            print(f"Error: failed to set affinity for core {core}", file=sys.stderr)
    while True:
        estimate = _series(depth, counter)
        if time.time() - started >= duration:
            break
    margin.value = abs(math.pi - estimate)
    elapsed.value = time.time() - started


class PiBenchmark:
    """Computes pi on every core, repeating until the duration has passed."""

    def __init__(self, depth: int, cores: int, duration_seconds: int = 0) -> None:
        self.depth = depth
        self.cores = cores
        self.duration_seconds = duration_seconds
        self._counters: list[Any] = []
        self._started: float | None = None

    def run(self) -> list[float]:
        """Run one worker process per core; return each worker's error from pi.

        Raises BenchmarkError when a worker cannot start or fails, or when an
        error reaches the limit of 0.0001.
        """
        context = multiprocessing.get_context()
        self._started = time.time()
        self._counters = [context.RawValue("Q", 0) for _ in range(self.cores)]
        margins = [context.RawValue("d", 0.0) for _ in range(self.cores)]
        durations = [context.RawValue("d", 0.0) for _ in range(self.cores)]

        workers: list[Any] = []
        try:
            for core in range(self.cores):
                process = context.Process(
                    target=_worker,
                    args=(
                        core, self.depth, self.duration_seconds, self._started,
                        self._counters[core], margins[core], durations[core],
                    ),
                    daemon=True,
                )
                try:
                    process.start()
                except OSError as exc:
                    raise BenchmarkError(f"Failed to create a worker for core {core}") from exc
                workers.append(process)

            results: list[float] = []
            failed = False
            message = ""
            for core, process in enumerate(workers):
                process.join()
                if process.exitcode != 0:
                    raise BenchmarkError(
                        f"Worker for core {core} exited with status {process.exitcode}"
                    )
                margin = margins[core].value
                results.append(margin)
                if not failed:
                    failed = margin >= ERROR_LIMIT
                if failed:
                    message = f"Pi error {margin:.6f} exceeds the limit {ERROR_LIMIT}"
        finally:
            for process in workers:
                if process.is_alive():
                    process.terminate()
                    process.join()

        if failed:
            raise BenchmarkError(message)
        return results

    def progress(self) -> tuple[int, int]:
        """Return (current step, total steps) of the running benchmark."""
        if self.duration_seconds > 0:
            total = self.duration_seconds * 1000
            current = int((time.time() - self._started) * 1000) if self._started else 0
            return current, total
        total = self.depth * self.cores
        return sum(counter.value for counter in self._counters), total