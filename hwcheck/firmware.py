"""Writing serial number, UUID and MAC address to the board with an external tool."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Sequence

__all__ = ["FirmwareWriter"]

_TIMEOUT_SECONDS = 10.0


class FirmwareWriter:
    """Reads the NIC's MAC address and runs the flashing tool with new identifiers."""

    def __init__(
        self,
        command: str,
        nic: str,
        *,
        base_dir: str | None = None,
        sysfs_root: str = "/sys",
        privilege: Sequence[str] = ("sudo",),
        timeout: float = _TIMEOUT_SECONDS,
    ) -> None:
        self.command = command
        self.nic = nic
        self.base_dir = base_dir if base_dir is not None else os.getcwd()
        self.sysfs_root = sysfs_root
        self.privilege = tuple(privilege)
        self.timeout = timeout

    def _tool_path(self) -> Path:
        return Path(self.base_dir) / self.command

    def mac(self) -> str:
        """The NIC's current MAC address, or ``""`` when it cannot be read."""
        path = Path(self.sysfs_root) / "class" / "net" / self.nic / "address"
        try:
            return path.read_text().strip()
        except OSError:
            return ""

    def flash(self, serial: str, uuid: str, mac: str) -> bool:
        """Run the tool with the new serial, UUID and MAC; True when it exits with 0."""
        if not serial or not uuid or not mac or not self.command:
            return False
        tool = self._tool_path()
        if not tool.exists():
            return False
        try:
            result = subprocess.run(
                [*self.privilege, str(tool), serial, uuid, mac],
                capture_output=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0