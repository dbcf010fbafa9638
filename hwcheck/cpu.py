"""Processor identification and CPU stress test runner."""

from __future__ import annotations

import configparser
import platform as _host
import re
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from hwcheck.cpubench import BenchmarkError, PiBenchmark
from hwcheck.units import parse_duration

__all__ = [
    "CpuError",
    "CpuInfo",
    "AVAILABLE_TESTS",
    "parse_cpuinfo",
    "detect_platform",
    "read_cpu_info",
    "parse_mhz",
    "current_frequency_mhz",
    "build_test_queue",
    "main",
]

AVAILABLE_TESTS = ("Pi",)
_MODEL_PREFIXES = ("vendor_id", "model name", "Processor", "cpu model")
_PLATFORMS = (
    ("INTEL", "INTEL"),
    ("AMD", "AMD"),
    ("ARM", "ARM"),
    ("MIPS", "MIPS"),
    ("MBE2S-PC", "INTEL"),
)
_TOKEN_SEPARATORS = re.compile(r"[,. ]+")
_DEFAULT_ITER = 500
_REFRESH_SECONDS = 0.5


class CpuError(Exception):
    """The processor could not be identified or tested."""


@dataclass(frozen=True)
class CpuInfo:
    """Processor model text, core count and platform family."""

    model: str
    cores: int
    platform: str


def parse_cpuinfo(text: str) -> tuple[str, int]:
    """Return (model, processor count) from ``/proc/cpuinfo`` text."""
    model = ""
    cores = 0
    for line in text.splitlines():
        is_model = line.startswith(_MODEL_PREFIXES)
        is_processor = line.startswith("processor")
        _, separator, value = line.partition(":")
        if not separator:
            continue
        if is_model and not model:
            model = value.strip()
        elif is_processor:
            cores += 1
    return model, cores


def detect_platform(model: str) -> str:
    """Return INTEL, AMD, ARM or MIPS for a model text; raise CpuError otherwise."""
    brand = model.upper()
    for marker, family in _PLATFORMS:
        if marker in brand:
            return family
    raise CpuError(f"unknown processor: {model}")


def _lscpu_vendor() -> str:
    try:
        result = subprocess.run(["lscpu"], capture_output=True, text=True, timeout=1)
    except (OSError, subprocess.SubprocessError):
        return ""
    for line in result.stdout.splitlines():
        _, separator, value = line.partition(":")
        if separator and line.startswith("Vendor ID"):
            return value.strip()
    return ""


def read_cpu_info(cpuinfo_path: str = "/proc/cpuinfo") -> CpuInfo:
    """Identify the processor from cpuinfo, falling back to ``lscpu`` for the model."""
    try:
        text = Path(cpuinfo_path).read_text(errors="replace")
    except OSError as exc:
        raise CpuError(f"failed to open {cpuinfo_path}") from exc
    model, cores = parse_cpuinfo(text)
    if not model:
        model = _lscpu_vendor()
    return CpuInfo(model, cores or 1, detect_platform(model))


def parse_mhz(text: str) -> float:
    """Return the first ``cpu MHz`` value of cpuinfo text, or 0.0."""
    for line in text.splitlines():
        key, separator, value = line.partition(":")
        if separator and key.strip() == "cpu MHz":
            try:
                return float(value.strip())
            except ValueError:
                return 0.0
    return 0.0


def current_frequency_mhz(freq_path: str = "", cpuinfo_path: str = "/proc/cpuinfo") -> int:
    """Current clock in MHz from a kHz sysfs file, or from cpuinfo when no file is given."""
    if not freq_path:
        try:
            return int(parse_mhz(Path(cpuinfo_path).read_text(errors="replace")))
        except OSError:
            return 0
    try:
        raw = float(Path(freq_path).read_text().strip())
    except (OSError, ValueError):
        return 0
    return int(raw) // 1000


def _section_value(config: Mapping[str, Any], section: str, key: str) -> str:
    try:
        values = config[section]
    except KeyError:
        return ""
    return (values.get(key, "") or "").strip()


def build_test_queue(config: Mapping[str, Any], platform: str) -> list[str]:
    """Labels of the tests enabled for ``platform``, in the configured order.

    ``[TEST]`` numbers the test names from 1; the platform section's ``tests``
    key lists numbers separated by commas, dots or spaces. Unknown tests are skipped.
    """
    numbered: dict[str, str] = {}
    counter = 1
    while True:
        title = _section_value(config, "TEST", str(counter))
        if not title:
            break
        numbered[str(counter)] = title
        counter += 1

    enabled = _section_value(config, platform, "tests")
    queue = []
    for token in _TOKEN_SEPARATORS.split(enabled):
        if not token:
            continue
        name = numbered.get(token, "")
        if name in AVAILABLE_TESTS:
            queue.append(name)
    return queue


def _architecture() -> str:
    machine = _host.machine().lower()
    if machine in ("x86_64", "amd64"):
        return "64bit"
    if machine in ("i386", "i486", "i586", "i686", "x86"):
        return "32bit"
    if machine.startswith(("arm", "aarch64")):
        return "ARM"
    if machine.startswith("mips"):
        return "MIPS"
    return "Unknown"


class _StatusReporter:
    """Prints progress and clock frequency of the running test at a fixed interval."""

    def __init__(self, index: int, count: int, label: str, bench: PiBenchmark,
                 freq_path: str, cpuinfo_path: str) -> None:
        self._index = index
        self._count = count
        self._label = label
        self._bench = bench
        self._freq_path = freq_path
        self._cpuinfo_path = cpuinfo_path
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)

    def _loop(self) -> None:
        while not self._stop.wait(_REFRESH_SECONDS):
            mhz = current_frequency_mhz(self._freq_path, self._cpuinfo_path)
            current, total = self._bench.progress()
            percent = current * 100 // total if total > 0 else 0
            print(f"<UI> {self._index}/{self._count} {percent:2d}% {self._label} frequency {mhz} MHz")
            print(f"<INFO>{percent:2d}%:{mhz} MHz ")

    def __enter__(self) -> _StatusReporter:
        self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._stop.set()
        self._thread.join()


def _parse_params(argv: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for argument in argv:
        key, _, value = argument.partition("=")
        params[key] = value
    return params


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``cpu [iter=500] [time=10m] [cpu_freq=PATH] [conf=cpu.ini]``."""
    params = _parse_params(sys.argv[1:] if argv is None else list(argv))
    cpuinfo_path = params.get("cpuinfo") or "/proc/cpuinfo"
    try:
        info = read_cpu_info(cpuinfo_path)
        depth = int(params.get("iter") or _DEFAULT_ITER) * 1_000_000
        duration_text = params.get("time", "")
        duration = parse_duration(duration_text)
        if duration > 0:
            print(f"Stress duration: {duration_text}")
        freq_path = params.get("cpu_freq", "")

        config = configparser.ConfigParser(interpolation=None)
        config.read(params.get("conf") or "cpu.ini", encoding="utf-8")
        queue = build_test_queue(config, info.platform)

        if "-i" in params:
            print(f"{info.model}, cores({info.cores})")
            print(f"Architecture: {_architecture()}")
            return 0
        if "-h" in params:
            print("cpu iter={500} time={10m}")
            return 0

        for index, label in enumerate(queue, start=1):
            print(f"<UI> Test {label}")
            bench = PiBenchmark(depth, info.cores, duration)
            with _StatusReporter(index, len(queue), label, bench, freq_path, cpuinfo_path):
                bench.run()
            print("OK")

        print(f"TEST OK frequency {current_frequency_mhz(freq_path, cpuinfo_path)} MHz")
    except (CpuError, BenchmarkError, ValueError) as exc:
        print(f"TEST ERR {exc}")
    return 0


if __name__ == "__main__":
    sys.exit(main())