# hwcheck

Command-line checks for verifying the hardware of a Linux PC on a test
bench, plus a small library of parsers and sysfs scanners. Each command
prints progress as it goes and finishes with a verdict line, `TEST OK ...`
or `TEST ERR ...`, so the output is easy to collect from a script.

Most checks read from `/proc` and `/sys`. Some start system tools (`dd`,
`hddtemp`, `hciconfig`, `bluetoothctl`, `lscpu`, `dmidecode`), and several
need root privileges to do their job.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Commands

Parameters are given as `key=value` words or as bare flags. Run a command
with `-h` to print its usage.

### hwcheck-cpu

Reads the processor model and core count from `/proc/cpuinfo` (falling back
to `lscpu` for the model), detects the platform (`INTEL`, `AMD`, `ARM`,
`MIPS`) and runs the tests enabled for that platform. The available test is
`Pi`: a Leibniz-series computation of π in one process per core. The run
fails if any core's result differs from π by 0.0001 or more.

```
hwcheck-cpu iter=500 time=10m conf=cpu.ini
hwcheck-cpu -i
```

`iter` sets the series length in millions of terms (500 by default), `time`
keeps the computation repeating for the given duration, `cpu_freq` names a
sysfs file with the clock in kHz, and `-i` prints the processor summary
only. Which tests run is set in the configuration file (`cpu.ini` by
default): `[TEST]` numbers test names from 1, and the platform's section
lists the numbers to run:

```ini
[TEST]
1 = Pi

[INTEL]
tests = 1
```

### hwcheck-mem

Allocates a share of free memory (`sizepercent`, 90 by default), fills the
two halves with a random word and then with its inverse, and compares the
halves after each pass. A mismatch is reported with its byte offset and both
values.

```
hwcheck-mem time=10m conf=mem.ini
```

The `[MEM]` section of the configuration file may also set `swapoff = 1`
(swap is turned off for the run and on again afterwards), `clearcaches = 1`
and `time`.

### hwcheck-hdd

Measures read and/or write throughput of a block device with `dd`, retrying
up to three times, and checks the results against minimum speeds. Writing is
skipped for a device that is mounted. With `temp` the drive temperature is
read with `hddtemp`; with `stress` the speed limits are not enforced.

```
hwcheck-hdd dev=sda read write size=1G bs=4M readlimit=200M writelimit=100M
hwcheck-hdd dev=sdb read stress time=30m
```

The `dd` command lines come from the `[DD]` section of the configuration
file (`hdd.ini` by default, or `conf=`), with `{dev}`, `{bs}` and `{count}`
filled in; `size` and `bs` may be set there too:

```ini
[DD]
size = 1G
bs = 4M
read = dd if=/dev/{dev} of=/dev/null bs={bs} count={count}
write = dd if=/dev/zero of=/dev/{dev} bs={bs} count={count} oflag=direct
```

### hwcheck-bluetooth

Confirms with `hciconfig` that a Bluetooth adapter is present, then scans
with `bluetoothctl` for a device by name or by MAC address.

```
hwcheck-bluetooth bt=hci0 network=Headset findTime=15s
hwcheck-bluetooth bt=hci0 mac=00:00:5E:00:53:01
```

## Using the library

```python
from hwcheck.units import parse_duration, parse_size, format_size
from hwcheck.bluetooth import is_valid_mac
from hwcheck.cpu import detect_platform, parse_cpuinfo
from hwcheck.blockdev import collect_mounts, scan_block_devices
from hwcheck.netdev import scan_network_interfaces
from hwcheck.usbdev import scan_usb_devices

parse_duration("10m")                    # 600
parse_size("4M")                         # 4194304.0
format_size(53.5 * 1024**2, "B/s")       # "53.5 MB/s"
is_valid_mac("00:00:5E:00:53:01")        # True
detect_platform("Intel(R) Core(TM) i5")  # "INTEL"
```

Other modules:

- `hwcheck.blockdev`, `hwcheck.netdev`, `hwcheck.usbdev` — sysfs scanners
  returning dataclasses (`BlockDevice`, `NetInterface`, `UsbDevice`). They
  take the root of the tree to read, so they can be pointed at a copy of
  `/sys` as well as the live system.
- `hwcheck.link` — `LinkSpeedMonitor`, a background thread (also usable as a
  context manager) that checks an interface's link speed periodically, and
  `verify_speed` for a single check.
- `hwcheck.memtest` — `random_pattern_comparison` and `compare_buffers` over
  `array` buffers, raising `MemoryMismatch`.
- `hwcheck.cpubench` — `leibniz_pi` and `PiBenchmark`.
- `hwcheck.sysident` — `read_system_identity` (serial number and UUID from
  `dmidecode`) and `select_test_configs`.
- `hwcheck.firmware` — `FirmwareWriter`, which reads a NIC's MAC address and
  runs an external flashing tool with a new serial, UUID and MAC.
- `hwcheck.dialog` — `parse_dialog_spec` and `layout_buttons` for compact
  dialog descriptions such as `40,9{Title}{Save changes?}{Yes|No}{No}`.

## What it does not do

- There is no PCI inventory: PCI devices, PCIe generation and lane width are
  not read.
- There is no combined device-listing command; the block, network and USB
  scanners are library functions only.
- There is no network ping test; only the link-speed monitor is provided.
- There is no interactive text-mode interface; the dialog and test-selection
  helpers compute layout and choices but draw nothing.