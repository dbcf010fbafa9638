import os

import pytest

from hwcheck.firmware import FirmwareWriter

MAC = "02:00:00:00:00:01"


def _script(tmp_path, name, status):
    path = tmp_path / name
    path.write_text(f"#!/bin/sh\nexit {status}\n")
    os.chmod(path, 0o755)
    return name


def test_mac_is_read_and_stripped(tmp_path):
    address = tmp_path / "class" / "net" / "eth0" / "address"
    address.parent.mkdir(parents=True)
    address.write_text(MAC + "\n")
    writer = FirmwareWriter("tool", "eth0", sysfs_root=str(tmp_path))
    assert writer.mac() == MAC


def test_mac_missing_is_empty(tmp_path):
    writer = FirmwareWriter("tool", "eth9", sysfs_root=str(tmp_path))
    assert writer.mac() == ""


@pytest.mark.parametrize(
    "serial, uuid, mac",
    [("", "u", MAC), ("s", "", MAC), ("s", "u", "")],
)
def test_flash_rejects_empty_values(tmp_path, serial, uuid, mac):
    name = _script(tmp_path, "ok.sh", 0)
    writer = FirmwareWriter(name, "eth0", base_dir=str(tmp_path), privilege=())
    assert writer.flash(serial, uuid, mac) is False


def test_flash_without_command(tmp_path):
    writer = FirmwareWriter("", "eth0", base_dir=str(tmp_path), privilege=())
    assert writer.flash("s", "u", MAC) is False


def test_flash_missing_tool(tmp_path):
    writer = FirmwareWriter("absent.sh", "eth0", base_dir=str(tmp_path), privilege=())
    assert writer.flash("s", "u", MAC) is False


def test_flash_success(tmp_path):
    name = _script(tmp_path, "ok.sh", 0)
    writer = FirmwareWriter(name, "eth0", base_dir=str(tmp_path), privilege=())
    assert writer.flash("SN0001", "uuid-placeholder", MAC) is True


def test_flash_tool_failure(tmp_path):
    name = _script(tmp_path, "fail.sh", 1)
    writer = FirmwareWriter(name, "eth0", base_dir=str(tmp_path), privilege=())
    assert writer.flash("SN0001", "uuid-placeholder", MAC) is False