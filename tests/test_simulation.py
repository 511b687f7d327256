import numpy as np
import pytest

from arrakis.core.circular_trace import CircularPollTrace
from arrakis.core.config import PollingConfig
from arrakis.sim.main import _parse_args, main, run_simulations
from arrakis.sim.profiles import PROFILES, generate_arrivals
from arrakis.sim.simulation import VirtualClock, simulate_traffic


def test_virtual_clock():
    clock = VirtualClock()
    clock.advance(2.5)
    assert clock.now() == 2.5
    with pytest.raises(ValueError):
        clock.advance(-1)


def test_arrivals_are_sorted_and_bounded():
    arrivals = generate_arrivals(PROFILES["bursty"], 180, np.random.default_rng(0))
    assert np.all(np.diff(arrivals) >= 0)
    assert arrivals.min() >= 0
    assert arrivals.max() < 180


def test_idle_profile_goes_quiet():
    arrivals = generate_arrivals(PROFILES["idle_after_burst"], 300, np.random.default_rng(0))
    assert len(arrivals) > 0
    assert arrivals.max() < 120


def test_simulation_is_deterministic():
    first = simulate_traffic(PROFILES["steady"], 60, seed=7)
    second = simulate_traffic(PROFILES["steady"], 60, seed=7)
    assert first.as_row() == second.as_row()


def test_adaptive_uses_fewer_calls_when_idle():
    fixed_config = PollingConfig(disabled_wait_seconds=1)
    adaptive = simulate_traffic(PROFILES["idle_after_burst"], 300, seed=3)
    fixed = simulate_traffic(PROFILES["idle_after_burst"], 300, fixed_config, seed=3, adaptive=False)

    assert adaptive.mode == "adaptive"
    assert fixed.mode == "fixed"
    assert adaptive.api_calls < fixed.api_calls
    assert adaptive.messages == fixed.messages
    assert adaptive.undelivered == 0
    assert adaptive.decays > 0
    assert fixed.mean_wait_seconds == pytest.approx(1.0)


def test_trace_receives_one_row_per_poll():
    trace = CircularPollTrace(max_rows=100_000)
    result = simulate_traffic(PROFILES["drop"], 120, seed=1, trace=trace)
    assert len(trace) == result.api_calls
    df = trace.to_dataframe()
    assert df["message_count"].sum() == result.messages


def test_parse_args_defaults():
    args = _parse_args([])
    assert args.profile == "all"
    assert args.duration == 600.0
    assert args.fixedWait == 1
    assert args.config is None
    assert not args.useCircularTrace


def test_run_simulations_single_profile():
    args = _parse_args(["--profile", "steady", "--duration", "30"])
    table = run_simulations(args)
    assert table["mode"].tolist() == ["adaptive", "fixed"]
    assert set(table["profile"]) == {"steady"}


def test_run_simulations_writes_trace(tmp_path):
    path = tmp_path / "trace.csv.gz"
    args = _parse_args(["--profile", "steady", "--duration", "30", "--trace", str(path)])
    run_simulations(args)
    assert path.exists()


def test_main_prints_summary(capsys):
    main(["--profile", "steady", "--duration", "20"])
    out = capsys.readouterr().out
    assert "=== Simulation Summary ===" in out
    assert "steady" in out


def test_main_missing_config_exits(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main(["--config", str(tmp_path / "missing.toml")])
    assert exc.value.code == 1
