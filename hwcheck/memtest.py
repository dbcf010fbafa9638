"""Random-pattern RAM stress test over two mirrored buffers."""

from __future__ import annotations

import configparser
import os
import random
import subprocess
import sys
import threading
import time
from array import array
from dataclasses import dataclass

import psutil

from hwcheck.units import parse_duration

__all__ = [
    "MemoryMismatch",
    "IterationProgress",
    "compare_buffers",
    "random_pattern_comparison",
    "plan_buffer_size",
    "run_stress",
    "main",
]

TEST_NAME = "Random Pattern Comparison"
_DEFAULT_PERCENT = 90
_DEFAULT_PAGE_SIZE = 4096
_FILL_CHUNK = 1 << 20
_REFRESH_SECONDS = 0.5
_WORD = "Q"


class MemoryMismatch(Exception):
    """Two buffers that should hold the same pattern differ."""

    def __init__(self, offset: int, value_a: int, value_b: int) -> None:
        super().__init__(
            f"Mismatch at offset 0x{offset:x} (ValA: 0x{value_a:x}, ValB: 0x{value_b:x})"
        )
        self.offset = offset
        self.value_a = value_a
        self.value_b = value_b


@dataclass
class IterationProgress:
    """Progress of one test pass: elements written out of the total."""

    done: int = 0
    total: int = 0

    def percent(self) -> int:
        """Whole percent completed; 0 when nothing is planned."""
        return self.done * 100 // self.total if self.total > 0 else 0


def compare_buffers(buffer_a: array, buffer_b: array) -> int:
    """Compare two buffers element by element; return the count compared.

    Raises MemoryMismatch at the first differing element, with its byte offset.
    """
    count = min(len(buffer_a), len(buffer_b))
    if buffer_a[:count] == buffer_b[:count]:
        return count
    width = buffer_a.itemsize
    for index, (value_a, value_b) in enumerate(zip(buffer_a, buffer_b)):
        if value_a != value_b:
            raise MemoryMismatch(index * width, value_a, value_b)
    return count


def _fill(buffer_a: array, buffer_b: array, value: int, progress: IterationProgress) -> None:
    length = len(buffer_a)
    block = array(buffer_a.typecode, [value]) * min(_FILL_CHUNK, length)
    for start in range(0, length, _FILL_CHUNK):
        end = min(start + _FILL_CHUNK, length)
        chunk = block if end - start == len(block) else block[: end - start]
        buffer_a[start:end] = chunk
        buffer_b[start:end] = chunk
        progress.done += end - start


def random_pattern_comparison(
    buffer_a: array, buffer_b: array, progress: IterationProgress | None = None
) -> None:
    """Fill both buffers with a random word, compare, then repeat with its inverse.

    Raises MemoryMismatch when the buffers differ and ValueError when their
    lengths or types differ.
    """
    if len(buffer_a) != len(buffer_b) or buffer_a.typecode != buffer_b.typecode:
        raise ValueError("buffers must have the same length and element type")
    if progress is None:
        progress = IterationProgress()
    count = len(buffer_a)
    progress.done = 0
    progress.total = count * 2

    bits = buffer_a.itemsize * 8
    pattern = random.getrandbits(bits)
    _fill(buffer_a, buffer_b, pattern, progress)
    compare_buffers(buffer_a, buffer_b)

    _fill(buffer_a, buffer_b, ~pattern & ((1 << bits) - 1), progress)
    compare_buffers(buffer_a, buffer_b)


def plan_buffer_size(free_bytes: int, percent: int, page_size: int) -> int:
    """Bytes to test: ``percent`` of free memory (90 when not positive), whole pages only."""
    if percent <= 0:
        percent = _DEFAULT_PERCENT
    if page_size <= 0:
        page_size = _DEFAULT_PAGE_SIZE
    target = (free_bytes // 100) * percent
    return target - target % page_size


def _allocate(element_count: int) -> tuple[array, array]:
    count = element_count
    while count > 0:
        try:
            return array(_WORD, [0]) * count, array(_WORD, [0]) * count
        except MemoryError:
            count -= max(1, count // 16)
    raise MemoryError("Out of memory: cannot allocate test buffer")


class _ProgressReporter:
    """Prints the progress of the running pass at a fixed interval."""

    def __init__(self, progress: IterationProgress) -> None:
        self._progress = progress
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)

    def _loop(self) -> None:
        while not self._stop.wait(_REFRESH_SECONDS):
            percent = self._progress.percent()
            print(f"<UI> Running: {TEST_NAME} [{percent}%]")
            print(f"<INFO> 1/1 {percent}%")

    def __enter__(self) -> _ProgressReporter:
        self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._stop.set()
        self._thread.join()


def run_stress(element_count: int, duration_seconds: int) -> int:
    """Run passes over two buffers of ``element_count`` words until the duration is reached.

    At least one pass runs. Returns the number of passes; raises MemoryMismatch on failure.
    """
    buffer_a, buffer_b = _allocate(element_count)
    progress = IterationProgress()
    print(f"Starting stress test: {TEST_NAME}")
    started = time.monotonic()
    passes = 0
    while True:
        with _ProgressReporter(progress):
            random_pattern_comparison(buffer_a, buffer_b, progress)
        passes += 1
        print("Iteration completed successfully")
        if time.monotonic() - started >= duration_seconds:
            break
    return passes


def _parse_params(argv: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for argument in argv:
        key, _, value = argument.partition("=")
        params[key] = value
    return params


def _read_int(section: configparser.SectionProxy | dict, key: str) -> int:
    try:
        return int(section.get(key, "0") or 0)
    except ValueError:
        return 0


def _system(command: str, failure: str) -> None:
    if subprocess.run(command, shell=True).returncode != 0:
        print(failure, file=sys.stderr)


def _drop_caches() -> None:
    print("<UI> Dropping system caches...")
    _system("sync", "Failed to run sync")
    try:
        with open("/proc/sys/vm/drop_caches", "w") as handle:
            handle.write("3\n")
    except OSError:
        print("Failed to drop caches", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``memtest [time=10m] [conf=mem.ini]``."""
    params = _parse_params(sys.argv[1:] if argv is None else list(argv))
    if "-h" in params:
        print("Usage: memtest [time=10m]")
        return 0

    config = configparser.ConfigParser(interpolation=None)
    config.read(params.get("conf") or "mem.ini", encoding="utf-8")
    section = config["MEM"] if config.has_section("MEM") else {}
    manage_swap = _read_int(section, "swapoff") != 0
    drop_caches = _read_int(section, "clearcaches") != 0

    try:
        if manage_swap:
            print("<UI> Disabling swap...")
            _system("/sbin/swapoff -a", "Failed to disable swap")
        if drop_caches:
            _drop_caches()

        print("<UI> Initializing Memory Buffer")
        free_bytes = psutil.virtual_memory().free
        try:
            page_size = os.sysconf("SC_PAGE_SIZE")
        except (ValueError, OSError, AttributeError):
            page_size = _DEFAULT_PAGE_SIZE
        size = plan_buffer_size(free_bytes, _read_int(section, "sizepercent"), page_size)
        if size <= 0:
            raise MemoryError("Out of memory: cannot allocate test buffer")
        print(f"Available RAM: {free_bytes >> 20} Mb")
        print(f"Allocated for Test: {size >> 20} Mb ({size * 100 // free_bytes}%)")

        element_count = size // 2 // array(_WORD).itemsize
        duration = parse_duration(params.get("time") or section.get("time", ""))
        run_stress(element_count, duration)
        print(f"TEST OK {TEST_NAME} passed")
    except (MemoryMismatch, MemoryError, ValueError) as exc:
        print(f"TEST ERR: {exc}")
    except KeyboardInterrupt:
        print("Memory test interrupted by user")
    finally:
        if manage_swap:
            print("<UI> Enabling swap space...")
            _system("/sbin/swapon -a", "Failed to enable swap")
    return 0


if __name__ == "__main__":
    sys.exit(main())