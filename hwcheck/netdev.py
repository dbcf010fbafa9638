"""Enumeration of network interfaces backed by physical devices."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["NetInterface", "interface_kind", "scan_network_interfaces"]

_DEVICES_MARKER = "devices/"
_KINDS = {1: "ether", 280: "can"}


@dataclass(frozen=True)
class NetInterface:
    """A network interface: name, link type, speed in Mbit/s, bus path and driver."""

    name: str
    kind: str
    speed: int
    syspath: str
    driver: str


def interface_kind(type_code: int) -> str:
    """Return ``ether`` for ARP type 1, ``can`` for 280 and ``unknown`` otherwise."""
    return _KINDS.get(type_code, "unknown")


def _read_int(path: Path) -> int:
    try:
        return int(path.read_text().strip() or 0)
    except (OSError, ValueError):
        return 0


def _readlink(path: Path) -> str:
    try:
        return os.readlink(path)
    except OSError:
        return ""


def scan_network_interfaces(sysfs_root: str = "/sys") -> list[NetInterface]:
    """List interfaces that have a device behind them, sorted by name.

    Raises OSError when the ``class/net`` directory cannot be read.
    """
    base = Path(sysfs_root) / "class" / "net"
    try:
        names = os.listdir(base)
    except OSError as exc:
        raise OSError(f"opendir {base}") from exc

    interfaces = []
    for name in names:
        iface = base / name
        device = iface / "device"
        if not device.exists():
            continue
        kind = interface_kind(_read_int(iface / "type"))
        speed = _read_int(iface / "speed")
        bus = _readlink(iface) or _readlink(device)
        position = bus.find(_DEVICES_MARKER)
        if position != -1:
            bus = bus[position + len(_DEVICES_MARKER):]
        driver = os.path.basename(_readlink(device / "driver"))
        interfaces.append(NetInterface(name, kind, speed, bus, driver))
    interfaces.sort(key=lambda interface: interface.name)
    return interfaces