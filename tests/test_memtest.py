from array import array
from unittest import mock

import pytest

from hwcheck.memtest import (
    IterationProgress,
    MemoryMismatch,
    compare_buffers,
    main,
    plan_buffer_size,
    random_pattern_comparison,
    run_stress,
)


def test_compare_equal_buffers_returns_count():
    buffer = array("Q", range(10))
    assert compare_buffers(buffer, array("Q", buffer)) == 10


def test_compare_reports_first_mismatch():
    first = array("Q", [7] * 8)
    second = array("Q", [7] * 8)
    second[3] = 9
    second[5] = 11
    with pytest.raises(MemoryMismatch) as info:
        compare_buffers(first, second)
    assert info.value.offset == 3 * first.itemsize
    assert info.value.value_a == 7
    assert info.value.value_b == 9
    assert "ValA: 0x7" in str(info.value)


def test_progress_percent():
    assert IterationProgress().percent() == 0
    assert IterationProgress(done=4, total=4).percent() == 100
    assert IterationProgress(done=2, total=4).percent() == 50


def test_pattern_comparison_fills_both_buffers_identically():
    first = array("Q", [0]) * 100
    second = array("Q", [1]) * 100
    progress = IterationProgress()
    random_pattern_comparison(first, second, progress)
    assert first == second
    assert len(set(first)) == 1
    assert progress.done == progress.total == 200
    assert progress.percent() == 100


def test_pattern_comparison_ends_with_inverted_pattern():
    first = array("Q", [0]) * 5
    second = array("Q", [0]) * 5
    with mock.patch("random.getrandbits", return_value=0x0F0F0F0F0F0F0F0F):
        random_pattern_comparison(first, second)
    assert list(first) == [0xF0F0F0F0F0F0F0F0] * 5


def test_pattern_comparison_rejects_unequal_buffers():
    with pytest.raises(ValueError):
        random_pattern_comparison(array("Q", [0, 0]), array("Q", [0]))


def test_plan_buffer_size_is_page_aligned_and_bounded():
    free = 123_456_789
    size = plan_buffer_size(free, 50, 4096)
    assert size % 4096 == 0
    assert 0 < size <= free // 2


def test_plan_buffer_size_defaults():
    free = 10_000_000
    assert plan_buffer_size(free, 0, 4096) == plan_buffer_size(free, 90, 4096)
    assert plan_buffer_size(free, 90, 0) == plan_buffer_size(free, 90, 4096)
    assert plan_buffer_size(0, 90, 4096) == 0


def test_run_stress_runs_at_least_once(capsys):
    assert run_stress(1000, 0) == 1
    assert "Iteration completed successfully" in capsys.readouterr().out


def test_main_help(capsys):
    assert main(["-h"]) == 0
    assert "time=" in capsys.readouterr().out


def test_main_reports_error_when_nothing_free(tmp_path, capsys):
    conf = tmp_path / "mem.ini"
    conf.write_text("[MEM]\nsizepercent=50\n", encoding="utf-8")
    fake = mock.Mock(free=0)
    with mock.patch("psutil.virtual_memory", return_value=fake):
        assert main([f"conf={conf}", "time=0"]) == 0
    assert "TEST ERR" in capsys.readouterr().out


def test_main_passes_with_small_memory(tmp_path, capsys):
    conf = tmp_path / "mem.ini"
    conf.write_text("[MEM]\nsizepercent=50\ntime=0\n", encoding="utf-8")
    fake = mock.Mock(free=1 << 20)
    with mock.patch("psutil.virtual_memory", return_value=fake):
        assert main([f"conf={conf}"]) == 0
    assert "TEST OK Random Pattern Comparison passed" in capsys.readouterr().out