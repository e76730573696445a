"""Tests for gen_rarities."""

import json

import pytest

from alias_sampler import InvalidWeightError
from gen_rarities import (
    gen_rarities,
    get_logger,
    load_config,
    main,
    save_results,
)

TIERS = ["common", "rare", "epic", "legendary"]


def read_log(path):
    with open(path) as f:
        return [json.loads(line) for line in f]


def test_get_logger_writes_json_lines(tmp_path, capsys):
    log_path = tmp_path / "logs" / "run.json"
    log_fn = get_logger(str(log_path), print_to_console=True)
    log_fn({"event": "a"})
    log_fn({"event": "b", "value": 2})
    lines = read_log(log_path)
    assert [line["event"] for line in lines] == ["a", "b"]
    assert all("timestamp" in line for line in lines)
    assert capsys.readouterr().out.count("\n") == 2


def test_gen_rarities_numpy(tmp_path):
    log_path = tmp_path / "log.json"
    results = gen_rarities([60, 25, 10, 5], 1000, tiers=TIERS, seed=3,
                           logger=get_logger(str(log_path), False))
    assert len(results["samples"]) == 1000
    assert sum(results["counts"]) == 1000
    assert results["aliases"] == [0, 0, 0, 1]
    assert results["tiers"] == [TIERS[s] for s in results["samples"]]
    assert results["counts"][0] > results["counts"][3]
    logged = read_log(log_path)
    assert logged[0]["event"] == "gen_rarities"
    assert logged[0]["counts"] == results["counts"]


def test_gen_rarities_is_seeded():
    a = gen_rarities([1, 2, 3], 50, seed=9, quantize=True, legacy=True)
    b = gen_rarities([1, 2, 3], 50, seed=9, quantize=True, legacy=True)
    assert a == b
    assert a["tiers"] is None
    assert all(isinstance(p, int) for p in a["probabilities"])


def test_gen_rarities_torch():
    results = gen_rarities([60, 25, 10, 5], 500, seed=0, backend="torch",
                           device="cpu")
    assert sum(results["counts"]) == 500
    assert all(0 <= s < 4 for s in results["samples"])


@pytest.mark.parametrize("kwargs", [
    {"backend": "jax"},
    {"backend": "torch", "legacy": True},
    {"tiers": ["only", "two"]},
])
def test_gen_rarities_rejects_bad_options(kwargs):
    with pytest.raises(ValueError):
        gen_rarities([1, 2, 3], 10, **kwargs)


def test_gen_rarities_rejects_bad_weights():
    with pytest.raises(InvalidWeightError):
        gen_rarities([0, 0], 10)


def test_load_and_save(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"weights": [1, 2], "count": 5}))
    assert load_config(str(config_path)) == {"weights": [1, 2], "count": 5}

    config_path.write_text(json.dumps({"count": 5}))
    with pytest.raises(ValueError):
        load_config(str(config_path))

    out_path = tmp_path / "out" / "results.json"
    save_results({"counts": [1, 4]}, str(out_path))
    assert json.loads(out_path.read_text()) == {"counts": [1, 4]}


def test_main_with_weights(tmp_path, capsys):
    out_path = tmp_path / "results.json"
    status = main([
        "--weights", "60", "25", "10", "5",
        "--tiers", *TIERS,
        "--count", "40",
        "--seed", "1",
        "--out", str(out_path),
        "--log-file", str(tmp_path / "log.json"),
    ])
    assert status == 0
    results = json.loads(out_path.read_text())
    assert sum(results["counts"]) == 40
    printed = capsys.readouterr().out.split()
    assert [int(c) for c in printed] == results["counts"]


def test_main_with_config(tmp_path, capsys):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "weights": [60, 25, 10, 5], "count": 100, "seed": 4,
    }))
    status = main(["--config", str(config_path), "--quantize", "--legacy",
                   "--log-file", str(tmp_path / "log.json")])
    assert status == 0
    counts = [int(c) for c in capsys.readouterr().out.split()]
    assert len(counts) == 4
    assert sum(counts) == 100


def test_main_reports_bad_weights(tmp_path, capsys):
    log_path = tmp_path / "log.json"
    status = main(["--weights", "x", "1", "--log-file", str(log_path)])
    assert status == 1
    assert "index 0" in capsys.readouterr().err
    assert read_log(log_path)[0]["event"] == "error"


def test_main_reports_missing_config(tmp_path, capsys):
    log_path = tmp_path / "log.json"
    status = main(["--config", str(tmp_path / "missing.json"),
                   "--log-file", str(log_path)])
    assert status == 1
    assert "missing.json" in capsys.readouterr().err
    assert read_log(log_path)[0]["event"] == "error"
