"""Bluetooth adapter presence and device discovery check."""

from __future__ import annotations

import shlex
import subprocess
import sys

from hwcheck.units import parse_duration

__all__ = [
    "BluetoothError",
    "is_valid_mac",
    "devices_output_has",
    "find_adapter",
    "find_device",
    "run_check",
    "main",
]

_MAC_LENGTH = 17
_DEVICE_KEYWORD = "Device "
_ADAPTER_TIMEOUT_MS = 3000
_DEFAULT_FIND_SECONDS = 10
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class BluetoothError(Exception):
    """The Bluetooth check failed."""


def is_valid_mac(mac: str) -> bool:
    """Return True when ``mac`` has the form ``XX:XX:XX:XX:XX:XX`` with hex digits."""
    if len(mac) != _MAC_LENGTH:
        return False
    for position, char in enumerate(mac, start=1):
        if position % 3 == 0:
            if char != ":":
                return False
        elif char not in _HEX_DIGITS:
            return False
    return True


def devices_output_has(output: str, name: str, mac: str) -> bool:
    """Return True when ``bluetoothctl devices`` output lists a device with this name or MAC."""
    wanted_mac = mac.upper()
    for line in output.split("\n"):
        keyword = line.find(_DEVICE_KEYWORD)
        if keyword == -1:
            continue
        mac_start = keyword + len(_DEVICE_KEYWORD)
        mac_end = mac_start + _MAC_LENGTH
        if mac_end > len(line):
            continue
        if mac and line[mac_start:mac_end].upper() == wanted_mac:
            return True
        if name:
            current_name = line[mac_end:].lstrip(" ")
            if current_name and current_name == name:
                return True
    return False


def _run_command(command: str, timeout_ms: int) -> tuple[int, str]:
    """Run a command and return (exit status, standard output); -1 on failure or timeout."""
    try:
        result = subprocess.run(
            shlex.split(command),
            capture_output=True,
            text=True,
            timeout=max(timeout_ms, 0) / 1000,
        )
    except subprocess.TimeoutExpired as exc:
        partial = exc.output or ""
        if isinstance(partial, bytes):
            partial = partial.decode(errors="replace")
        return -1, partial
    except OSError:
        return -1, ""
    return result.returncode, result.stdout or ""


def find_adapter(adapter: str) -> bool:
    """Return True when ``hciconfig`` lists the adapter (e.g. ``hci0``)."""
    status, output = _run_command("hciconfig", _ADAPTER_TIMEOUT_MS)
    if status != 0 or not output:
        return False
    return f"{adapter}:" in output


def find_device(name: str, mac: str, find_seconds: int) -> bool:
    """Scan for Bluetooth devices and return True when one matches the name or MAC."""
    timeout_ms = find_seconds * 1000
    _run_command("bluetoothctl scan on", timeout_ms)
    found = False
    try:
        status, output = _run_command("bluetoothctl devices", timeout_ms)
        if status == 0 and output:
            found = devices_output_has(output, name, mac)
    finally:
        _run_command("bluetoothctl scan off", timeout_ms)
    return found


def _seconds(find_time: str) -> int:
    try:
        seconds = parse_duration(find_time)
    except ValueError:
        seconds = 0
    return seconds if seconds > 0 else _DEFAULT_FIND_SECONDS


def run_check(name: str, mac: str, adapter: str, find_time: str) -> int:
    """Check the adapter and search for the device; return the search time used in seconds.

    Raises BluetoothError when parameters are missing or invalid, the adapter is
    absent or the device is not found.
    """
    seconds = _seconds(find_time)
    if (not name and not mac) or not adapter:
        raise BluetoothError("Bluetooth network name/device MAC or adapter name is not specified")
    if mac and not is_valid_mac(mac):
        raise BluetoothError("invalid device MAC address")
    if not find_adapter(adapter):
        raise BluetoothError(f"Adapter {adapter} is missing")
    print("<UI>Bluetooth adapter found, searching for the network...")
    if not find_device(name, mac, seconds):
        if name:
            raise BluetoothError(f"network {name} not found")
        raise BluetoothError(f"mac {mac} not found")
    return seconds


def _usage() -> str:
    return "\n".join(
        [
            "",
            "Bluetooth test:",
            "   bluetooth [parameters, * required]",
            " * network     - name of the device to search for",
            " or mac        - MAC address of the device to search for",
            " bt            - adapter name",
            " findTime      - time to search for the device (10 s by default)",
        ]
    )


def _parse_params(argv: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for argument in argv:
        key, _, value = argument.partition("=")
        params[key] = value
    return params


def main(argv: list[str] | None = None) -> int:
    """Command entry point: ``bluetooth network=NAME|mac=MAC bt=hci0 [findTime=10]``."""
    params = _parse_params(sys.argv[1:] if argv is None else list(argv))
    if "-h" in params:
        print(_usage())
        return 0
    try:
        run_check(
            params.get("network", ""),
            params.get("mac", ""),
            params.get("bt", ""),
            params.get("findTime", ""),
        )
    except BluetoothError as exc:
        print(f"TEST ERR {exc}")
        return 0
    print("TEST OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())