"""Smoke tests for the CLI entry point."""
from __future__ import annotations

import json

import pandas as pd
import pytest

from lead_matcher import __main__
from lead_matcher.cli import main


def _write_config(tmp_path, **overrides) -> str:
    config = {
        "registry": {"seed": "samples"},
        "store": {"backend": "sqlite", "options": {"path": "leads.db"}},
    }
    config.update(overrides)
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config), encoding="utf-8")
    return str(config_path)


def _write_leads(tmp_path) -> str:
    input_path = tmp_path / "input.csv"
    input_path.write_text(
        "lead_id,name,email,zip,categories,looking_for_pro\n"
        "lead-boulder,Jane Doe,jane@example.com,80301,tiles,yes\n"
        "lead-nowhere,John Roe,john@example.com,99999,tiles,no\n",
        encoding="utf-8",
    )
    return str(input_path)


def test_cli_match_writes_results(tmp_path) -> None:
    config_path = _write_config(tmp_path)
    output_path = tmp_path / "results.csv"

    exit_code = main(["match", _write_leads(tmp_path), str(output_path), "--config", config_path])

    assert exit_code == 0
    frame = pd.read_csv(output_path)
    assert list(frame["lead_id"]) == ["lead-boulder", "lead-nowhere"]
    assert list(frame["status"]) == ["partial", "no_match"]
    assert "prof_002" in frame.loc[0, "matched_trades"]
    assert (tmp_path / "leads.db").exists()


def test_cli_leads_and_rematch_read_the_store(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = _write_config(tmp_path)
    assert main(["match", _write_leads(tmp_path), str(tmp_path / "results.csv"), "--config", config_path]) == 0
    capsys.readouterr()

    assert main(["leads", "prof_002", "--config", config_path]) == 0
    listed = capsys.readouterr().out
    assert "lead-boulder" in listed
    assert "trade" in listed

    assert main(["leads", "DenverFlooringPro@gmail.com", "--config", config_path]) == 0
    assert "lead-boulder" in capsys.readouterr().out
    assert main(["leads", "nobody@example.com", "--config", config_path]) == 1

    export_path = tmp_path / "prof_001.csv"
    assert main(["leads", "prof_001", "--config", config_path, "--output", str(export_path)]) == 0
    assert pd.read_csv(export_path).loc[0, "lead_id"] == "lead-boulder"

    assert main(["rematch", "lead-boulder", "--config", config_path]) == 0
    assert "lead-boulder\tpartial\t2" in capsys.readouterr().out

    assert main(["rematch", "lead-missing", "--config", config_path]) == 1


def test_cli_reports_configuration_errors(tmp_path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{broken", encoding="utf-8")

    assert main(["match", _write_leads(tmp_path), str(tmp_path / "out.csv"), "--config", str(config_path)]) == 1

    bad_settings = _write_config(tmp_path, matching={"search_radius_miles": 25})
    assert main(["match", _write_leads(tmp_path), str(tmp_path / "out.csv"), "--config", bad_settings]) == 1


def test_module_entry_point_delegates_to_cli(tmp_path) -> None:
    """The package entry point should behave like the CLI."""

    config_path = _write_config(tmp_path, matching={"concurrent": True, "max_workers": 2})
    output_path = tmp_path / "results.xlsx"
    pytest.importorskip("openpyxl")

    exit_code = __main__.main(
        [
            "--log-level",
            "DEBUG",
            "match",
            _write_leads(tmp_path),
            str(output_path),
            "--config",
            config_path,
            "--mode",
            "sequential",
        ]
    )

    assert exit_code == 0
    assert output_path.exists()
    assert pd.read_excel(output_path).loc[0, "customer_email"] == "jane@example.com"


def test_module_entry_point_without_arguments_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main([])

    captured = capsys.readouterr()
    assert "python -m lead_matcher" in captured.out
    assert exit_code == 2
