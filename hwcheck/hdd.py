"""Storage read/write throughput test driven by dd."""

from __future__ import annotations

import configparser
import math
import os
import re
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from hwcheck.units import format_size, parse_duration, parse_size

__all__ = [
    "StorageError",
    "DdBenchmark",
    "block_count",
    "build_command",
    "parse_records",
    "parse_speed",
    "main",
]

_ATTEMPTS = 3
_RECORD_MARKERS = ("records in", "записей считано", "записей получено")
_COPIED_MARKERS = ("copied", "скопирован")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class StorageError(Exception):
    """A storage benchmark failed."""


def block_count(size: float, block_size: float) -> int:
    """Number of blocks of ``block_size`` needed to cover ``size``."""
    if block_size <= 0:
        raise ValueError("block size must be positive")
    return math.ceil(size / block_size)


def build_command(template: str, device: str, block_size: str, count: int) -> str:
    """Fill the ``{dev}``, ``{bs}`` and ``{count}`` placeholders of a dd command."""
    command = template.replace("{dev}", device, 1)
    command = command.replace("{bs}", block_size, 1)
    return command.replace("{count}", f"{count:.0f}", 1)


def parse_records(line: str) -> int | None:
    """Return the record count from a dd ``records in`` line, or None."""
    if not any(marker in line for marker in _RECORD_MARKERS):
        return None
    match = _LEADING_INT.match(line)
    return int(match.group(1)) if match else None


def parse_speed(line: str) -> tuple[str, float] | None:
    """Return (copied amount text, bytes per second) from a dd ``copied`` line, or None."""
    if not any(marker in line for marker in _COPIED_MARKERS):
        return None
    copied = ""
    open_paren = line.find("(")
    close_paren = line.find(")")
    if open_paren != -1 and close_paren != -1:
        copied = line[open_paren + 1:close_paren]
    speed = 0.0
    last_space = line.rfind(" ")
    if last_space != -1:
        separator = line.rfind(", ", 0, last_space + 1)
        speed = parse_size(line[separator + 1:] if separator != -1 else line[1:])
    return copied, speed


@dataclass
class _Attempt:
    exit_status: int
    speed: float
    formatted_speed: str
    last_error: str
    temperature: str


def _read_temperature(device: str) -> int:
    try:
        result = subprocess.run(
            ["hddtemp", "-n", f"/dev/{device}"],
            capture_output=True, text=True, timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return 0
    match = _LEADING_INT.match(result.stdout)
    return int(match.group(1)) if match else 0


def _raise_priority(pid: int) -> None:
    for target in (0, pid):
        try:
            os.setpriority(os.PRIO_PROCESS, target, -19)
        except OSError:
            pass


class DdBenchmark:
    """Runs dd commands against one device and checks the achieved speed."""

    def __init__(
        self,
        device: str,
        size: str,
        block_size: str,
        templates: Mapping[str, str],
        *,
        monitor_temp: bool = False,
        stress: bool = False,
        log: Callable[[str], None] = print,
        watchdog_seconds: float = 30.0,
        refresh_seconds: float = 1.0,
    ) -> None:
        self.device = device
        self.size = size
        self.block_size = block_size
        self.templates = dict(templates)
        self.monitor_temp = monitor_temp
        self.stress = stress
        self.log = log
        self.watchdog_seconds = watchdog_seconds
        self.refresh_seconds = refresh_seconds
        self.summaries: dict[str, str] = {}
        self.temperature = ""

    def run(self, mode: str, speed_limit: str) -> float:
        """Run the dd command for ``mode`` with up to three attempts; return bytes per second."""
        count = block_count(parse_size(self.size), parse_size(self.block_size))
        command = build_command(self.templates.get(mode, ""), self.device, self.block_size, count)
        self.log(f"Executing: {command}")
        self.log(f"<UI> {self.device} {mode} starting...")

        for attempt in range(_ATTEMPTS):
            final = attempt == _ATTEMPTS - 1
            successful = True
            try:
                outcome = self._run_once(mode, command, count)
            except OSError as exc:
                if final:
                    raise StorageError(f"Failed to initiate process: {command}") from exc
                outcome = _Attempt(-1, 0.0, "", str(exc), "")

            if outcome.exit_status != 0:
                successful = False
                if final:
                    raise StorageError(f"dd failed: {outcome.last_error}")

            self.summaries[mode] = f"{mode}: {outcome.formatted_speed}"
            if self.monitor_temp:
                self.temperature = outcome.temperature

            minimum = parse_size(speed_limit or "")
            if not self.stress and outcome.speed < minimum:
                successful = False
                if final:
                    raise StorageError(
                        f"{mode} speed too low: {outcome.formatted_speed} < "
                        f"{format_size(minimum, 'B/s')} ({outcome.temperature})"
                    )

            if successful:
                return outcome.speed
            self.log(f"Retrying {mode} benchmark (attempt {attempt + 2}/{_ATTEMPTS})...")
        raise StorageError(f"{mode} benchmark failed")

    def _run_once(self, mode: str, command: str, count: int) -> _Attempt:
        process = subprocess.Popen(
            command, shell=True, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
            text=True, errors="replace",
        )
        _raise_priority(process.pid)

        stop = threading.Event()
        timed_out = threading.Event()

        def refresh() -> None:
            while not stop.wait(self.refresh_seconds):
                if process.poll() is None:
                    try:
                        process.send_signal(signal.SIGUSR1)
                    except ProcessLookupError:
                        pass

        def expire() -> None:
            timed_out.set()
            process.kill()

        def arm() -> threading.Timer:
            timer = threading.Timer(self.watchdog_seconds, expire)
            timer.daemon = True
            timer.start()
            return timer

        refresher = threading.Thread(target=refresh, daemon=True)
        refresher.start()
        watchdog = arm()

        records = 0
        copied = ""
        speed = 0.0
        formatted = ""
        temperature = ""
        last_error = ""
        try:
            assert process.stdout is not None
            for line in process.stdout:
                self.log(line.rstrip("\n"))
                watchdog.cancel()
                watchdog = arm()

                parsed_records = parse_records(line)
                if parsed_records is not None:
                    records = parsed_records

                parsed_speed = parse_speed(line)
                if parsed_speed is not None:
                    copied, speed = parsed_speed
                    formatted = format_size(speed, "B/s")
                    if self.monitor_temp:
                        temperature = f"temp: {_read_temperature(self.device)}°C"
                    progress = records * 100.0 / count if count > 0 else 0.0
                    self.log(
                        f"<UI> {self.device} {mode} {progress:.0f}%: {copied}, {formatted} {temperature}"
                    )
                    self.log(f"<INFO> {progress:.0f}%: {mode[:1]} {formatted}")

                if line.startswith("dd:"):
                    last_error = line[3:].strip()
            exit_status = process.wait()
        finally:
            watchdog.cancel()
            stop.set()
            refresher.join()

        if timed_out.is_set():
            self.log("STORAGE TEST ERROR: Operation timed out")
            raise StorageError("Operation timed out")
        return _Attempt(exit_status, speed, formatted, last_error, temperature)


def _parse_params(argv: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for argument in argv:
        key, _, value = argument.partition("=")
        params[key] = value
    return params


def _mount_points(device: str) -> str:
    if not Path("/sys/block", device).exists():
        raise StorageError(f"Device {device} not found in block table")
    mounts = ""
    try:
        lines = Path("/proc/mounts").read_text().splitlines()
    except OSError as exc:
        raise StorageError("failed to open /proc/mounts") from exc
    for line in lines:
        fields = line.split(" ")
        if len(fields) < 2:
            continue
        node = os.path.basename(fields[0])
        if fields[0].startswith("/dev/") and node.startswith(device):
            mounts += "{" + node + ":" + fields[1].replace("\\040", " ") + "}"
    return mounts


def _usage() -> str:
    return (
        "Usage: hdd dev={dev} [read] [write] [size={1G}] [bs={4M}] [readlimit={200Mb/s}] "
        "[writelimit={100Mb/s}] [temp] [stress] [time={10m}] [conf={hdd.ini}]"
    )


def _run(params: dict[str, str]) -> DdBenchmark:
    do_read = "read" in params
    do_write = "write" in params
    if not do_read and not do_write:
        raise StorageError("No mode specified (use 'read' and/or 'write')")
    device = params.get("dev", "")
    if not device:
        raise StorageError("Device parameter 'dev=' is missing")

    config = configparser.ConfigParser(interpolation=None)
    config.read(params.get("conf") or "hdd.ini", encoding="utf-8")
    section = config["DD"] if config.has_section("DD") else {}

    benchmark = DdBenchmark(
        device,
        params.get("size") or section.get("size", ""),
        params.get("bs") or section.get("bs", ""),
        {mode: section.get(mode, "") for mode in ("read", "write")},
        monitor_temp="temp" in params,
        stress="stress" in params,
    )

    mount_point = _mount_points(device)
    test_seconds = parse_duration(params.get("time", ""))
    started = time.monotonic()
    while True:
        if do_read:
            benchmark.run("read", params.get("readlimit", ""))
        if do_write:
            if not mount_point:
                benchmark.run("write", params.get("writelimit", ""))
            else:
                print(f"Skipping write test: {device} is mounted on {mount_point}", file=sys.stderr)
        if time.monotonic() - started >= test_seconds:
            break
    return benchmark


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``hdd dev=sda read write ...``."""
    params = _parse_params(sys.argv[1:] if argv is None else list(argv))
    if "-h" in params or "--help" in params:
        print(_usage())
        return 0
    try:
        required = int(params.get("Vers") or 0)
        actual = int(params.get("VersP") or 0)
        if 0 < actual < required:
            print(f"<WAR> USB version mismatch: actual version is lower than expected {required / 10:.1f}")
        benchmark = _run(params)
    except (StorageError, ValueError) as exc:
        print(f"TEST ERR: {exc}")
        return 1
    print(
        f"TEST OK {benchmark.summaries.get('read', '')} "
        f"{benchmark.summaries.get('write', '')} {benchmark.temperature}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())