import subprocess
from unittest import mock

import pytest

from hwcheck.bluetooth import (
    BluetoothError,
    devices_output_has,
    find_adapter,
    find_device,
    is_valid_mac,
    main,
    run_check,
)

HCI_OUTPUT = (
    "hci0:   Type: Primary Bus: USB\n"
    "        BD Address: 00:11:22:33:44:55 ACL MTU: 1021:8 SCO MTU: 64:1\n"
    "        UP RUNNING PSCAN\n"
)
DEVICES_OUTPUT = (
    "Device 00:11:22:33:44:55 Test Speaker\n"
    "Device AA:BB:CC:DD:EE:FF   Phone\n"
    "Agent registered\n"
)


def _completed(args, stdout, code=0):
    return subprocess.CompletedProcess(args, code, stdout=stdout, stderr="")


def _fake_run(devices=DEVICES_OUTPUT, hci=HCI_OUTPUT, calls=None):
    def run(args, **kwargs):
        command = " ".join(args)
        if calls is not None:
            calls.append((command, kwargs.get("timeout")))
        if command == "hciconfig":
            return _completed(args, hci)
        if command == "bluetoothctl devices":
            return _completed(args, devices)
        return _completed(args, "")

    return run


@pytest.mark.parametrize(
    "mac, expected",
    [
        ("00:11:22:AA:bb:cc", True),
        ("00:11:22:33:44:5", False),
        ("00:11:22:33:44:555", False),
        ("00-11-22-33-44-55", False),
        ("GG:11:22:33:44:55", False),
        ("", False),
    ],
)
def test_is_valid_mac(mac, expected):
    assert is_valid_mac(mac) is expected


def test_devices_output_matches_mac_case_insensitively():
    assert devices_output_has(DEVICES_OUTPUT, "", "aa:bb:cc:dd:ee:ff") is True


def test_devices_output_matches_name_after_spaces():
    assert devices_output_has(DEVICES_OUTPUT, "Phone", "") is True
    assert devices_output_has(DEVICES_OUTPUT, "Test Speaker", "") is True


def test_devices_output_no_match():
    assert devices_output_has(DEVICES_OUTPUT, "Other", "00:00:00:00:00:01") is False
    assert devices_output_has(DEVICES_OUTPUT, "", "") is False


def test_devices_output_ignores_short_and_unrelated_lines():
    output = "Agent registered\nDevice 00:11:22\n"
    assert devices_output_has(output, "registered", "00:11:22") is False


def test_find_adapter_present_and_absent():
    with mock.patch("subprocess.run", side_effect=_fake_run()):
        assert find_adapter("hci0") is True
        assert find_adapter("hci1") is False


def test_find_adapter_command_failure():
    with mock.patch("subprocess.run", return_value=_completed(["hciconfig"], HCI_OUTPUT, 1)):
        assert find_adapter("hci0") is False
    with mock.patch("subprocess.run", side_effect=FileNotFoundError()):
        assert find_adapter("hci0") is False


def test_find_device_scans_and_stops():
    calls = []
    with mock.patch("subprocess.run", side_effect=_fake_run(calls=calls)):
        assert find_device("Phone", "", 2) is True
    assert [command for command, _ in calls] == [
        "bluetoothctl scan on",
        "bluetoothctl devices",
        "bluetoothctl scan off",
    ]
    assert all(timeout == 2 for _, timeout in calls)


def test_find_device_not_found():
    with mock.patch("subprocess.run", side_effect=_fake_run(devices="")):
        assert find_device("Phone", "", 1) is False


def test_find_device_timeout_counts_as_failure():
    error = subprocess.TimeoutExpired(["bluetoothctl"], 1, output=b"Device 00:11:22:33:44:55 X")
    with mock.patch("subprocess.run", side_effect=error):
        assert find_device("X", "", 1) is False


def test_run_check_requires_target_and_adapter():
    with pytest.raises(BluetoothError):
        run_check("", "", "hci0", "")
    with pytest.raises(BluetoothError):
        run_check("Phone", "", "", "")


def test_run_check_rejects_bad_mac():
    with pytest.raises(BluetoothError, match="MAC"):
        run_check("", "00-11-22-33-44-55", "hci0", "")


def test_run_check_missing_adapter():
    with mock.patch("subprocess.run", side_effect=_fake_run()):
        with pytest.raises(BluetoothError, match="hci7"):
            run_check("Phone", "", "hci7", "")


def test_run_check_success_uses_default_time():
    with mock.patch("subprocess.run", side_effect=_fake_run()):
        assert run_check("Phone", "", "hci0", "") == 10
        assert run_check("", "00:11:22:33:44:55", "hci0", "30") == 30


def test_run_check_device_not_found_messages():
    with mock.patch("subprocess.run", side_effect=_fake_run(devices="")):
        with pytest.raises(BluetoothError, match="network Phone not found"):
            run_check("Phone", "", "hci0", "1")
        with pytest.raises(BluetoothError, match="mac 00:11:22:33:44:55 not found"):
            run_check("", "00:11:22:33:44:55", "hci0", "1")


def test_main_reports_result(capsys):
    with mock.patch("subprocess.run", side_effect=_fake_run()):
        assert main(["network=Phone", "bt=hci0", "findTime=1"]) == 0
    assert "TEST OK" in capsys.readouterr().out
    assert main(["bt=hci0"]) == 0
    assert "TEST ERR" in capsys.readouterr().out


def test_main_help(capsys):
    assert main(["-h"]) == 0
    assert "findTime" in capsys.readouterr().out