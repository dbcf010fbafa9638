[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hwcheck"
version = "0.1.0"
description = "Hardware acceptance checks for Linux PCs: CPU, memory, storage, Bluetooth and sysfs device inventory"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = [
    "hardware",
    "diagnostics",
    "stress-test",
    "benchmark",
    "sysfs",
    "usb",
    "bluetooth",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Manufacturing",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: System :: Benchmark",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
hwcheck-bluetooth = "hwcheck.bluetooth:main"
hwcheck-cpu = "hwcheck.cpu:main"
hwcheck-mem = "hwcheck.memtest:main"
hwcheck-hdd = "hwcheck.hdd:main"

[tool.hatch.build.targets.wheel]
packages = ["hwcheck"]

[tool.hatch.build.targets.sdist]
include = [
    "hwcheck",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
