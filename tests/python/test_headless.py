import csv
import json

import pytest

from ueot.app.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(steps=2, seed=1, log_path=log_path, deterministic_log=True, log_format="basic")
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == [
        "tick",
        "population",
        "food",
        "corpses",
        "births",
        "deaths",
        "eta",
        "rho",
        "state",
        "tick_ms",
    ]
    assert [row[0] for row in rows[1:]] == ["0", "1"]


def test_headless_detailed_log_header_and_ratios(tmp_path):
    log_path = tmp_path / "detailed.csv"
    run_headless(steps=3, seed=2, log_path=log_path, deterministic_log=True, log_format="detailed")
    rows = _read_csv(log_path)
    assert len(rows) == 4
    header = rows[0]
    assert header == [
        "tick",
        "population",
        "food",
        "corpses",
        "births",
        "deaths",
        "eta",
        "rho",
        "mean_integrity",
        "total_energy",
        "state",
        "tick_ms",
        "avg_energy",
        "max_generation",
        "spin_plus_ratio",
        "shock_intensity",
        "births_per_agent",
        "deaths_per_agent",
        "tick_ms_per_agent",
    ]

    first_row = rows[1]
    idx = {name: i for i, name in enumerate(header)}
    population = int(first_row[idx["population"]])
    births = int(first_row[idx["births"]])
    deaths = int(first_row[idx["deaths"]])
    tick_ms = float(first_row[idx["tick_ms"]])

    expected_births = 0.0 if population == 0 else births / population
    expected_deaths = 0.0 if population == 0 else deaths / population

    assert float(first_row[idx["births_per_agent"]]) == pytest.approx(expected_births, abs=1e-4)
    assert float(first_row[idx["deaths_per_agent"]]) == pytest.approx(expected_deaths, abs=1e-4)
    assert float(first_row[idx["tick_ms_per_agent"]]) == 0.0
    assert 0.0 <= float(first_row[idx["spin_plus_ratio"]]) <= 1.0
    assert first_row[idx["state"]] in {"Adaptive", "Critical", "Overheated", "Collapse"}
    assert tick_ms == 0.0


def test_headless_deterministic_logs_match(tmp_path):
    first = tmp_path / "first.csv"
    second = tmp_path / "second.csv"
    run_headless(steps=20, seed=8, log_path=first, deterministic_log=True)
    run_headless(steps=20, seed=8, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    log_path = tmp_path / "summary.csv"
    summary_path = tmp_path / "summary.json"
    history = run_headless(
        steps=4,
        seed=3,
        log_path=log_path,
        deterministic_log=True,
        log_format="basic",
        summary_path=summary_path,
        summary_window=2,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["log_format"] == "basic"
    assert payload["tick_ms"]["max"] == 0.0
    assert payload["population"]["max"] == max(m.population for m in history)
    assert sum(payload["states"].values()) == 4
    assert payload["final"]["population"] == history[-1].population
    assert payload["tail_window"]["window"] == 2
    assert {"eta", "rho", "population"} <= set(payload["tail_window"])


def test_headless_reads_yaml_config(tmp_path):
    config_path = tmp_path / "run.yaml"
    config_path.write_text("seed: 4\ninitial_agents: 12\ninitial_food: 0\nparams:\n  foodRegen: 0\n")
    history = run_headless(steps=1, seed=None, log_path=None, config_path=config_path)
    assert history[0].population == 12
    assert history[0].food == 0


def test_headless_seed_overrides_config(tmp_path):
    config_path = tmp_path / "run.yaml"
    config_path.write_text("seed: 4\ninitial_agents: 12\n")
    summary_path = tmp_path / "summary.json"
    run_headless(steps=1, seed=9, log_path=None, summary_path=summary_path, config_path=config_path)
    assert json.loads(summary_path.read_text())["seed"] == 9


def test_headless_shock_is_logged(tmp_path):
    log_path = tmp_path / "shock.csv"
    run_headless(steps=3, seed=5, log_path=log_path, deterministic_log=True, shock_ticks=[1])
    rows = _read_csv(log_path)
    idx = {name: i for i, name in enumerate(rows[0])}
    assert float(rows[1][idx["shock_intensity"]]) == 0.0
    assert float(rows[2][idx["shock_intensity"]]) == pytest.approx(48.0)
    assert float(rows[3][idx["shock_intensity"]]) == pytest.approx(46.0)


def test_headless_rejects_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        run_headless(steps=1, seed=1, log_path=tmp_path / "x.csv", log_format="verbose")


def test_headless_rejects_negative_steps():
    with pytest.raises(ValueError):
        run_headless(steps=-1, seed=1, log_path=None)
