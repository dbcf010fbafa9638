"""Hardware checks for Linux PCs: CPU, memory, storage and Bluetooth tests, sysfs scanners and helpers."""

__version__ = "0.1.0"