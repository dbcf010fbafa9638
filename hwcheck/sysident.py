"""System identity from DMI data and the choice of available test configurations."""

from __future__ import annotations

import subprocess

__all__ = ["parse_dmidecode", "read_system_identity", "select_test_configs"]

FUNCTIONAL_CONFIG = "sberpc_ft.ini"
STRESS_CONFIG = "sberpc_stress.ini"
_SERIAL_KEY = "Serial Number:"
_UUID_KEY = "UUID:"
_FIRST_ROW = 2
_SECOND_ROW = 14


def parse_dmidecode(output: str) -> tuple[str, str]:
    """Return (serial number, UUID) from ``dmidecode -t system`` output; the last match wins."""
    serial = ""
    uuid = ""
    for line in output.split("\n"):
        position = line.find(_SERIAL_KEY)
        if position != -1:
            serial = line[position + len(_SERIAL_KEY):].strip()
        position = line.find(_UUID_KEY)
        if position != -1:
            uuid = line[position + len(_UUID_KEY):].strip()
    return serial, uuid


def read_system_identity() -> tuple[str, str]:
    """Run ``sudo dmidecode -t system`` and return (serial number, UUID), empty on failure."""
    try:
        result = subprocess.run(
            ["sudo", "dmidecode", "-t", "system"],
            capture_output=True,
            text=True,
            timeout=0.5,
        )
        output = result.stdout or ""
    except subprocess.TimeoutExpired as exc:
        output = exc.output or ""
        if isinstance(output, bytes):
            output = output.decode(errors="replace")
    except OSError:
        output = ""
    return parse_dmidecode(output) if output else ("", "")


def select_test_configs(names: list[str]) -> list[tuple[str, str, int]]:
    """Buttons for the known test configurations among ``names``: (file, title, row).

    The functional test gets row 2; the stress test gets row 14 when the
    functional one came before it, else row 2. Focus goes to the functional
    test when present, else to the stress test.
    """
    buttons: list[tuple[str, str, int]] = []
    functional_seen = False
    for name in names:
        if name == FUNCTIONAL_CONFIG:
            buttons.append((name, " Functional testing ", _FIRST_ROW))
            functional_seen = True
        if name == STRESS_CONFIG:
            row = _SECOND_ROW if functional_seen else _FIRST_ROW
            buttons.append((name, " Load testing ", row))
    return buttons