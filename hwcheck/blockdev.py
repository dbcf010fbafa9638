"""Enumeration of block devices, their sizes, drivers and mounted partitions."""

from __future__ import annotations

import fcntl
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "MountPoint",
    "BlockDevice",
    "decode_mount_path",
    "collect_mounts",
    "scan_block_devices",
]

_SECTOR_SIZE = 512
_DEVICES_MARKER = "devices/"
_HDIO_GET_IDENTITY = 0x030D
_IDENTITY_SIZE = 512
_SERIAL_SLICE = slice(20, 40)
_MODEL_SLICE = slice(54, 94)
_MAJOR_MINOR = re.compile(r"\s*([+-]?\d+):([+-]?\d+)")


@dataclass(frozen=True)
class MountPoint:
    """A mounted file system identified by the device numbers it lives on."""

    major: int
    minor: int
    path: str


@dataclass(frozen=True)
class BlockDevice:
    """A block device with its model, serial, size in bytes and mounted partitions."""

    dev: str
    name: str
    serial: str
    size: int
    mount: str
    syspath: str
    driver: str


def decode_mount_path(path: str) -> str:
    """Replace the ``\\040`` escapes that ``/proc/mounts`` uses for spaces."""
    return path.replace("\\040", " ")


def collect_mounts(mounts_path: str = "/proc/mounts") -> list[MountPoint]:
    """Return the root file system followed by every mount whose device node exists.

    Raises OSError when the mounts file cannot be read.
    """
    root = os.stat("/")
    mounts = [MountPoint(os.major(root.st_dev), os.minor(root.st_dev), "/")]
    try:
        text = Path(mounts_path).read_text(errors="replace")
    except OSError as exc:
        raise OSError(f"failed to open {mounts_path}") from exc
    for line in text.splitlines():
        fields = line.split(" ")
        node = fields[0]
        target = fields[1] if len(fields) > 1 else ""
        try:
            info = os.stat(node)
        except OSError:
            continue
        mounts.append(
            MountPoint(os.major(info.st_rdev), os.minor(info.st_rdev), decode_mount_path(target))
        )
    return mounts


def _read_text(path: Path) -> str:
    try:
        return path.read_text(errors="replace")
    except OSError:
        return ""


def _read_int(path: Path) -> int:
    try:
        return int(_read_text(path).strip() or 0)
    except ValueError:
        return 0


def _readlink(path: Path) -> str:
    try:
        return os.readlink(path)
    except OSError:
        return ""


def _after_devices(link: str) -> str:
    position = link.find(_DEVICES_MARKER)
    return link[position + len(_DEVICES_MARKER):] if position != -1 else link


def _drive_identity(node: str) -> tuple[str, str] | None:
    """Model and serial reported by the drive itself, or None when unavailable."""
    try:
        handle = os.open(node, os.O_RDONLY | os.O_NONBLOCK)
    except OSError:
        return None
    try:
        buffer = bytearray(_IDENTITY_SIZE)
        fcntl.ioctl(handle, _HDIO_GET_IDENTITY, buffer, True)
    except OSError:
        return None
    finally:
        os.close(handle)
    model = bytes(buffer[_MODEL_SLICE]).decode("ascii", "replace").strip(" \0\t\r\n")
    serial = bytes(buffer[_SERIAL_SLICE]).decode("ascii", "replace").strip(" \0\t\r\n")
    return model, serial


def _partition_dirs(folder: Path, kernel_name: str) -> list[tuple[str, Path]]:
    """The device itself and every sub-directory that may be a partition."""
    entries = [(kernel_name, folder)]
    try:
        children = sorted(os.scandir(folder), key=lambda entry: entry.name)
    except OSError:
        return entries
    entries.extend(
        (child.name, Path(child.path))
        for child in children
        if child.is_dir(follow_symlinks=False)
    )
    return entries


def _partition_mounts(folder: Path, kernel_name: str, mounts: list[MountPoint]) -> str:
    mapping = ""
    for part_name, part_dir in _partition_dirs(folder, kernel_name):
        dev_file = part_dir / "dev"
        if not dev_file.exists():
            continue
        match = _MAJOR_MINOR.match(_read_text(dev_file))
        major = minor = 0
        if match:
            major, minor = int(match.group(1)), int(match.group(2))
        else:
            print(f"failed to parse {dev_file}", file=sys.stderr)
        for mount in mounts:
            if mount.major == major and mount.minor == minor:
                mapping += "{" + part_name + ":" + mount.path + "}"
                break
    return mapping


def scan_block_devices(
    sysfs_root: str = "/sys", mounts: list[MountPoint] | None = None
) -> list[BlockDevice]:
    """List the block devices backed by hardware, sorted by kernel name.

    Raises OSError when the ``block`` directory cannot be read.
    """
    if mounts is None:
        mounts = collect_mounts()
    base = Path(sysfs_root) / "block"
    try:
        names = os.listdir(base)
    except OSError as exc:
        raise OSError(f"opendir {base}") from exc

    devices = []
    for kernel_name in names:
        folder = base / kernel_name
        device_link = folder / "device"
        if not device_link.exists():
            continue

        model = ""
        if (device_link / "model").exists():
            model = _read_text(device_link / "model")
        if (device_link / "name").exists():
            model = _read_text(device_link / "name")
        model = model.strip()

        size = _read_int(folder / "size") * _SECTOR_SIZE
        driver = os.path.basename(_readlink(device_link / "driver"))
        address = _readlink(folder) or _readlink(device_link)
        address = _after_devices(address)

        mapping = _partition_mounts(folder, kernel_name, mounts)

        serial = ""
        identity = _drive_identity(f"/dev/{kernel_name}")
        if identity is not None:
            model, serial = identity

        devices.append(BlockDevice(kernel_name, model, serial, size, mapping, address, driver))
    devices.sort(key=lambda device: device.dev)
    return devices