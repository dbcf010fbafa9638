import pytest

from hwcheck.cpu import (
    CpuError,
    CpuInfo,
    build_test_queue,
    current_frequency_mhz,
    detect_platform,
    main,
    parse_cpuinfo,
    parse_mhz,
    read_cpu_info,
)

INTEL_CPUINFO = (
    "processor\t: 0\n"
    "vendor_id\t: GenuineIntel\n"
    "model name\t: Intel(R) Core(TM) i5 CPU\n"
    "cpu MHz\t\t: 2400.000\n"
    "\n"
    "processor\t: 1\n"
    "vendor_id\t: GenuineIntel\n"
    "model name\t: Intel(R) Core(TM) i5 CPU\n"
    "cpu MHz\t\t: 2500.000\n"
)

ARM_CPUINFO = (
    "Processor\t: ARMv7 Processor rev 10 (v7l)\n"
    "processor\t: 0\n"
    "BogoMIPS\t: 38.00\n"
)


def test_parse_cpuinfo_takes_first_model_line_and_counts_processors():
    model, cores = parse_cpuinfo(INTEL_CPUINFO)
    assert model == "GenuineIntel"
    assert cores == INTEL_CPUINFO.count("processor\t:")


def test_parse_cpuinfo_arm():
    model, cores = parse_cpuinfo(ARM_CPUINFO)
    assert model == "ARMv7 Processor rev 10 (v7l)"
    assert cores == 1


def test_parse_cpuinfo_empty():
    assert parse_cpuinfo("") == ("", 0)


@pytest.mark.parametrize(
    "model, family",
    [
        ("GenuineIntel", "INTEL"),
        ("AuthenticAMD", "AMD"),
        ("ARMv7 Processor", "ARM"),
        ("MIPS 24Kc", "MIPS"),
        ("MBE2S-PC", "INTEL"),
    ],
)
def test_detect_platform(model, family):
    assert detect_platform(model) == family


def test_detect_platform_unknown():
    with pytest.raises(CpuError, match="SPARC"):
        detect_platform("SPARC")


def test_parse_mhz_takes_first_value():
    assert parse_mhz(INTEL_CPUINFO) == 2400.0


def test_parse_mhz_missing():
    assert parse_mhz(ARM_CPUINFO) == 0.0


def test_read_cpu_info(tmp_path):
    path = tmp_path / "cpuinfo"
    path.write_text(INTEL_CPUINFO)
    info = read_cpu_info(str(path))
    assert info == CpuInfo("GenuineIntel", 2, "INTEL")


def test_read_cpu_info_missing_file(tmp_path):
    with pytest.raises(CpuError):
        read_cpu_info(str(tmp_path / "absent"))


def test_frequency_from_sysfs_file(tmp_path):
    path = tmp_path / "scaling_cur_freq"
    path.write_text("2400000\n")
    assert current_frequency_mhz(str(path)) == 2400


def test_frequency_missing_file_is_zero(tmp_path):
    assert current_frequency_mhz(str(tmp_path / "absent")) == 0


def test_frequency_from_cpuinfo(tmp_path):
    path = tmp_path / "cpuinfo"
    path.write_text(INTEL_CPUINFO)
    assert current_frequency_mhz("", str(path)) == int(parse_mhz(INTEL_CPUINFO))


def test_build_test_queue_skips_unknown():
    config = {"TEST": {"1": "Pi", "2": "Memory"}, "ARM": {"tests": "2, 1"}}
    assert build_test_queue(config, "ARM") == ["Pi"]


def test_build_test_queue_separators():
    config = {"TEST": {"1": "Pi"}, "INTEL": {"tests": "1.1 1"}}
    assert build_test_queue(config, "INTEL") == ["Pi", "Pi", "Pi"]


def test_build_test_queue_missing_platform():
    assert build_test_queue({"TEST": {"1": "Pi"}}, "AMD") == []


def test_main_info(tmp_path, capsys):
    path = tmp_path / "cpuinfo"
    path.write_text(INTEL_CPUINFO)
    assert main(["-i", f"cpuinfo={path}", f"conf={tmp_path / 'none.ini'}"]) == 0
    assert "GenuineIntel, cores(2)" in capsys.readouterr().out


def test_main_unknown_processor(tmp_path, capsys):
    path = tmp_path / "cpuinfo"
    path.write_text("processor\t: 0\nmodel name\t: Mystery Chip\n")
    main([f"cpuinfo={path}"])
    assert "TEST ERR unknown processor: Mystery Chip" in capsys.readouterr().out


def test_main_runs_queue(tmp_path, capsys):
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text("processor\t: 0\nvendor_id\t: GenuineIntel\n")
    freq = tmp_path / "freq"
    freq.write_text("2400000\n")
    conf = tmp_path / "cpu.ini"
    conf.write_text("[TEST]\n1 = Pi\n[INTEL]\ntests = 1\n")
    main(["iter=1", f"cpuinfo={cpuinfo}", f"cpu_freq={freq}", f"conf={conf}"])
    out = capsys.readouterr().out
    assert "<UI> Test Pi" in out
    assert out.strip().endswith("TEST OK frequency 2400 MHz")