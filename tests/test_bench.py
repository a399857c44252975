import random

from textlife import count_live
from textlife_bench import make_viewports, random_text, run_benchmark, time_tick


def test_random_text_is_ragged_and_repeatable():
    lines = random_text(8, 12, 0.5, random.Random(3))
    assert len(lines) == 8
    assert all(len(line) <= 12 for line in lines)
    assert lines == random_text(8, 12, 0.5, random.Random(3))


def test_zero_density_text_has_no_live_cells():
    viewports = make_viewports(1, 6, 20, 0.0, seed=4)
    # tabs may still appear, but they expand to blanks
    assert count_live(viewports[0].region) == 0


def test_make_viewports_sizes_each_viewport():
    viewports = make_viewports(3, 5, 10, 0.4, seed=2)
    assert len(viewports) == 3
    assert all(v.visible_height() == 5 for v in viewports)
    assert all(len(v.read_region()) <= 5 for v in viewports)


def test_time_tick_reports_each_component():
    viewports = make_viewports(2, 5, 10, 0.4, seed=2)
    before = [v.region for v in viewports]
    timings = time_tick(viewports)

    assert set(timings) == {"read", "step", "write", "_live"}
    assert all(timings[k] >= 0.0 for k in ("read", "step", "write"))
    assert timings["_live"] == sum(count_live(v.region) for v in viewports)
    assert all(v.region is not old for v, old in zip(viewports, before))


def test_line_timing_benchmark_prints_breakdown(capsys):
    run_benchmark(n_ticks=3, rows=5, cols=10, line_timing=True)
    out = capsys.readouterr().out
    assert "Ticks: 3" in out
    assert "Per-Tick Component Breakdown" in out
    assert "TOTAL (tick)" in out


def test_profiled_benchmark_prints_wall_time(capsys, tmp_path):
    dump = tmp_path / "prof.out"
    run_benchmark(n_ticks=3, rows=5, cols=10, dump_path=str(dump))
    out = capsys.readouterr().out
    assert "Wall time:" in out
    assert "By Self-Time" in out
    assert dump.exists()
