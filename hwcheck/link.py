"""Periodic monitoring of a network interface's link speed."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

__all__ = ["LinkSpeedMonitor", "read_link_speed", "verify_speed"]

_log = logging.getLogger(__name__)
_MIN_PERIOD = 1
_MAX_PERIOD = 3600


def read_link_speed(iface: str, sysfs_root: str = "/sys") -> int:
    """Current link speed of ``iface`` in Mbit/s, or 0 when it cannot be read."""
    path = Path(sysfs_root) / "class" / "net" / iface / "speed"
    try:
        return int(path.read_text().strip() or 0)
    except (OSError, ValueError):
        return 0


def verify_speed(required: int, iface: str, sysfs_root: str = "/sys") -> int:
    """Read the link speed, log a warning when it is below ``required``, and return it."""
    current = read_link_speed(iface, sysfs_root)
    if current < required:
        _log.warning(
            "Link degradation detected on %s: current %d Mbps, expected %d Mbps",
            iface, current, required,
        )
    return current


class LinkSpeedMonitor:
    """Checks a link's speed every ``check_period_seconds`` in a background thread."""

    def __init__(
        self,
        interface: str,
        required_speed: int,
        check_period_seconds: int = 1,
        *,
        sysfs_root: str = "/sys",
        tick_seconds: float = 1.0,
    ) -> None:
        self.interface = interface
        self.required_speed = required_speed
        self.interval = min(max(check_period_seconds, _MIN_PERIOD), _MAX_PERIOD)
        self.sysfs_root = sysfs_root
        self.tick_seconds = tick_seconds
        self.last_speed: int | None = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Whether the monitoring thread has been started and not stopped."""
        with self._lock:
            return self._thread is not None

    def start(self) -> None:
        """Start monitoring; does nothing when already running."""
        with self._lock:
            if self._thread is not None:
                return
            self._stop_event.clear()
            thread = threading.Thread(target=self._loop, daemon=True)
            try:
                thread.start()
            except RuntimeError as exc:
                self._stop_event.set()
                raise RuntimeError("Failed to create link speed monitor thread") from exc
            self._thread = thread

    def stop(self) -> None:
        """Stop monitoring and wait for the thread; does nothing when not running."""
        with self._lock:
            thread, self._thread = self._thread, None
            self._stop_event.set()
        if thread is not None:
            thread.join()

    def _loop(self) -> None:
        counter = 0
        while not self._stop_event.is_set():
            if counter >= self.interval:
                counter = 0
                self.last_speed = verify_speed(self.required_speed, self.interface, self.sysfs_root)
            if self._stop_event.wait(self.tick_seconds):
                break
            counter += 1

    def __enter__(self) -> LinkSpeedMonitor:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()