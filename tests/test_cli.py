"""Tests for the command-line entry point and its exit codes."""
import json
import sys
from pathlib import Path

import pytest

from krs_planner import cli


def _run(monkeypatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["krs-cli", *argv])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    return exc.value.code


def _clash_catalog(tmp_path: Path) -> Path:
    path = tmp_path / "clash.json"
    path.write_text(json.dumps({"courses": [
        {"id": "ALG", "name": "Algebra", "sections": [
            {"id": "A", "meetings": [{"day": "Senin", "start": "08:00", "end": "10:00"}]},
            {"id": "B", "meetings": [{"day": "Senin", "start": "10:00", "end": "12:00"}]}]},
        {"id": "BIO", "name": "Biology", "sections": [
            {"id": "C", "meetings": [{"day": "Senin", "start": "09:00", "end": "11:00"}]}]},
    ]}))
    return path


def test_sample_plan_succeeds(monkeypatch, capsys, tmp_path,
                              sample_catalog_path, sample_plan_path) -> None:
    out = tmp_path / "result.json"
    code = _run(monkeypatch, "--catalog", str(sample_catalog_path),
                "--plan", str(sample_plan_path), "--out", str(out))
    assert code == 0
    assert "Variant 1:" in capsys.readouterr().out
    assert len(json.loads(out.read_text(encoding="utf-8"))["variants"]) == 5


def test_flags_override_plan(monkeypatch, capsys, sample_catalog_path, sample_plan_path) -> None:
    code = _run(monkeypatch, "--catalog", str(sample_catalog_path),
                "--plan", str(sample_plan_path), "--select", "ALG", "PSI",
                "--freeze", "ALG=ALG-C", "--target", "2", "--seed", "5")
    assert code == 0
    out = capsys.readouterr().out
    assert "Variants  : 2" in out
    assert "seed: 5" in out


def test_no_variant_exits_2_and_proves(monkeypatch, capsys, tmp_path) -> None:
    code = _run(monkeypatch, "--catalog", str(_clash_catalog(tmp_path)), "--prove")
    assert code == 2
    out = capsys.readouterr().out
    assert "blocker: Algebra" in out
    assert "Feasibility: INFEASIBLE" in out


def test_invalid_rules_exit_1(monkeypatch, capsys, tmp_path, sample_catalog_path) -> None:
    rules = tmp_path / "rules.json"
    rules.write_text(json.dumps([{"type": "maxDaysPerWeek", "id": "d", "max_days": 0}]))
    code = _run(monkeypatch, "--catalog", str(sample_catalog_path), "--rules", str(rules))
    assert code == 1
    assert "max_days" in capsys.readouterr().err


def test_bad_freeze_and_unknown_ids_exit_1(monkeypatch, sample_catalog_path) -> None:
    assert _run(monkeypatch, "--catalog", str(sample_catalog_path), "--freeze", "ALG") == 1
    assert _run(monkeypatch, "--catalog", str(sample_catalog_path), "--select", "NOPE") == 1


def test_missing_file_exit_1(monkeypatch, capsys, tmp_path) -> None:
    assert _run(monkeypatch, "--catalog", str(tmp_path / "missing.json")) == 1
    assert "File not found" in capsys.readouterr().err


def test_text_catalog(monkeypatch, capsys, tmp_path) -> None:
    table = tmp_path / "jadwal.txt"
    table.write_text(
        "SISTEM INFORMASI\t124210001\tBasic Programming\t3\tSI-A\t45\tSenin 07:00-09:30\tR1\n"
        "Dr. Sari\n",
        encoding="utf-8",
    )
    code = _run(monkeypatch, "--catalog", str(table), "--catalog-text", "--seed", "1")
    assert code == 0
    assert "layout A: 1" in capsys.readouterr().out
