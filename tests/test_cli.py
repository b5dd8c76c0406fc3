import json

from ascendancy_sim.cli import main


def write_scenario(tmp_path, attacker=None):
    scenario = {
        "attacker": attacker or {"faction": "klingon", "weapons": 3, "strayShips": 10},
        "defender": {"faction": "romulan", "weapons": 0, "strayShips": 10},
    }
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(scenario), encoding="utf-8")
    return str(path)


def test_simulate_writes_report(tmp_path, capsys):
    out = tmp_path / "result.json"
    code = main(
        ["simulate", "--scenario", write_scenario(tmp_path), "--battles", "50", "--seed", "1", "--out", str(out)]
    )
    assert code == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["totalBattles"] == 50
    assert json.loads(capsys.readouterr().out)["totalBattles"] == 50


def test_simulate_markdown(tmp_path, capsys):
    code = main(["simulate", "--scenario", write_scenario(tmp_path), "--battles", "20", "--print-md"])
    assert code == 0
    text = capsys.readouterr().out
    assert "| Attacker |" in text
    assert "Based on 20 simulated battles." in text


def test_battle_prints_rounds(tmp_path, capsys):
    code = main(["battle", "--scenario", write_scenario(tmp_path), "--seed", "4"])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["winner"] in ("attacker", "defender")
    assert isinstance(data["rounds"], list)


def test_empty_side_exits_with_error(tmp_path, capsys):
    code = main(["simulate", "--scenario", write_scenario(tmp_path, attacker={"faction": "klingon"})])
    assert code == 2
    assert "at least one ship" in capsys.readouterr().err


def test_catalog_listing(capsys):
    assert main(["catalog", "--faction", "klingon"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert "klingon" in data


def test_null_number_falls_back_to_default(tmp_path, capsys):
    path = tmp_path / "scenario.yaml"
    path.write_text(
        "attacker:\n  weapons:\n  strayShips: 2\ndefender:\n  strayShips: 2\n",
        encoding="utf-8",
    )
    code = main(["simulate", "--scenario", str(path), "--battles", "5", "--seed", "1"])
    assert code == 0
    assert json.loads(capsys.readouterr().out)["totalBattles"] == 5


def test_non_numeric_value_exits_with_error(tmp_path, capsys):
    attacker = {"faction": "klingon", "weapons": [1, 2], "strayShips": 2}
    code = main(["simulate", "--scenario", write_scenario(tmp_path, attacker=attacker)])
    assert code == 2
    assert "weapons must be a whole number" in capsys.readouterr().err


def test_foreign_fleet_exits_with_error(tmp_path, capsys):
    attacker = {"faction": "klingon", "fleets": ["romulan-strike-wing"], "strayShips": 2}
    code = main(["simulate", "--scenario", write_scenario(tmp_path, attacker=attacker)])
    assert code == 2
    assert "belongs to romulan" in capsys.readouterr().err
