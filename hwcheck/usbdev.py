"""Enumeration of USB devices with their ports, drivers and string descriptors."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "UsbSysEntry",
    "UsbDevice",
    "scan_usb_topology",
    "find_topology_id",
    "interface_drivers",
    "resolve_bus_path",
    "scan_usb_devices",
]

_DEVICES_MARKER = "devices/"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_SPEED_CODES = {"1.5": 1, "12": 2, "480": 3, "5000": 4, "10000": 5, "20000": 6}


@dataclass(frozen=True)
class UsbSysEntry:
    """One entry of the USB device directory: device or interface."""

    bus: int
    address: int
    topology_id: str
    bus_path: str
    driver: str


@dataclass(frozen=True)
class UsbDevice:
    """A USB device with identifiers, version, speed code, strings and drivers."""

    busport: str
    devnum: int
    vendor: int
    product: int
    bcd: int
    speed: int
    name: str
    serial: str
    syspath: str
    driver: str

    @property
    def vendev_str(self) -> str:
        """Vendor and product ids as ``VVVV:PPPP`` in upper-case hex."""
        return f"{self.vendor:04X}:{self.product:04X}"


def _read_text(path: Path) -> str:
    try:
        return path.read_text(errors="replace")
    except OSError:
        return ""


def _leading_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _readlink(path: Path) -> str:
    try:
        return os.readlink(path)
    except OSError:
        return ""


def _hex(text: str) -> int:
    try:
        return int(text.strip(), 16)
    except ValueError:
        return 0


def _bcd(version: str) -> int:
    major, _, minor = version.strip().partition(".")
    try:
        return (int(major or "0", 16) << 8) | int((minor + "00")[:2], 16)
    except ValueError:
        return 0


def _devices_dir(sysfs_root: str) -> Path:
    return Path(sysfs_root) / "bus" / "usb" / "devices"


def scan_usb_topology(sysfs_root: str = "/sys") -> list[UsbSysEntry]:
    """Read every USB device and interface entry with its bus, address, path and driver.

    Raises OSError when the USB device directory cannot be read.
    """
    base = _devices_dir(sysfs_root)
    try:
        names = sorted(os.listdir(base))
    except OSError as exc:
        raise OSError(f"opendir {base}") from exc
    entries = []
    for name in names:
        folder = base / name
        bus_path = _readlink(folder)
        position = bus_path.find(_DEVICES_MARKER)
        if position != -1:
            bus_path = bus_path[position + len(_DEVICES_MARKER):]
        entries.append(
            UsbSysEntry(
                _leading_int(name),
                _leading_int(_read_text(folder / "devnum")),
                name,
                bus_path,
                os.path.basename(_readlink(folder / "driver")),
            )
        )
    return entries


def find_topology_id(entries: list[UsbSysEntry], bus: int, address: int) -> str:
    """Port identifier (e.g. ``1-1.2``) of the device at this bus and address, or ``""``."""
    return next(
        (entry.topology_id for entry in entries if entry.bus == bus and entry.address == address),
        "",
    )


def interface_drivers(entries: list[UsbSysEntry], topology_id: str) -> str:
    """Space-separated drivers bound to the interfaces of a device."""
    prefix = topology_id + ":"
    return " ".join(
        entry.driver for entry in entries if prefix in entry.topology_id and entry.driver
    )


def resolve_bus_path(entries: list[UsbSysEntry], topology_id: str) -> str:
    """Device path of the entry with this port identifier, or ``""``."""
    return next((entry.bus_path for entry in entries if entry.topology_id == topology_id), "")


def scan_usb_devices(sysfs_root: str = "/sys") -> list[UsbDevice]:
    """List USB devices, sorted by port identifier."""
    entries = scan_usb_topology(sysfs_root)
    base = _devices_dir(sysfs_root)
    devices = []
    for entry in entries:
        folder = base / entry.topology_id
        if not (folder / "idVendor").exists():
            continue
        bus = _leading_int(_read_text(folder / "busnum"))
        address = _leading_int(_read_text(folder / "devnum"))
        topology_id = find_topology_id(entries, bus, address)

        name = ""
        manufacturer = _read_text(folder / "manufacturer").strip()
        if manufacturer:
            name = manufacturer + ": "
        name += _read_text(folder / "product").strip()

        devices.append(
            UsbDevice(
                busport=topology_id,
                devnum=address,
                vendor=_hex(_read_text(folder / "idVendor")),
                product=_hex(_read_text(folder / "idProduct")),
                bcd=_bcd(_read_text(folder / "version")),
                speed=_SPEED_CODES.get(_read_text(folder / "speed").strip(), 0),
                name=name,
                serial=_read_text(folder / "serial").strip(),
                syspath=resolve_bus_path(entries, topology_id),
                driver=interface_drivers(entries, topology_id),
            )
        )
    devices.sort(key=lambda device: device.busport)
    return devices