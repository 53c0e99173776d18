from __future__ import annotations

from pathlib import Path

from literacy_core.cli.main import main as cli_main
from literacy_core.logging.init import reset_logging


def test_cli_missing_config_is_fatal(temp_workdir: Path, capsys):
    reset_logging()
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config file not found" in out


def test_cli_explicit_config_path(temp_workdir: Path, sample_config_yaml: str, naep_files, capsys):
    reset_logging()
    cfg = temp_workdir / "custom.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    code = cli_main(["--config", str(cfg)])
    out = capsys.readouterr().out
    assert code == 0
    assert f"INFO Extracting 2 source(s) using {cfg}" in out


def test_cli_config_from_env_var(temp_workdir: Path, sample_config_yaml: str, naep_files, monkeypatch, capsys):
    reset_logging()
    cfg = temp_workdir / "env.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    monkeypatch.setenv("LITERACY_CORE_CONFIG", str(cfg))
    assert cli_main([]) == 0
    assert "SUMMARY sources=2/2" in capsys.readouterr().out


def test_cli_config_from_dotenv(temp_workdir: Path, sample_config_yaml: str, naep_files, monkeypatch, capsys):
    reset_logging()
    # registers the variable with monkeypatch so teardown removes what .env sets
    monkeypatch.setenv("LITERACY_CORE_CONFIG", "unused")
    monkeypatch.delenv("LITERACY_CORE_CONFIG")
    (temp_workdir / "alt.yml").write_text(sample_config_yaml, encoding="utf-8")
    (temp_workdir / ".env").write_text("LITERACY_CORE_CONFIG=alt.yml\n", encoding="utf-8")
    assert cli_main([]) == 0
    assert "using alt.yml" in capsys.readouterr().out


def test_cli_env_var_wins_over_dotenv(temp_workdir: Path, sample_config_yaml: str, naep_files, monkeypatch, capsys):
    reset_logging()
    (temp_workdir / "real.yml").write_text(sample_config_yaml, encoding="utf-8")
    (temp_workdir / ".env").write_text("LITERACY_CORE_CONFIG=missing.yml\n", encoding="utf-8")
    monkeypatch.setenv("LITERACY_CORE_CONFIG", "real.yml")
    assert cli_main([]) == 0
    assert "using real.yml" in capsys.readouterr().out


def test_cli_invalid_config(temp_workdir: Path, capsys):
    reset_logging()
    (temp_workdir / "config" / "sources.yml").write_text("sources: []\n", encoding="utf-8")
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config validation failed" in out


def test_cli_debug_mode(write_config: Path, naep_files, capsys):
    reset_logging()
    code = cli_main(["--debug"])
    out = capsys.readouterr().out
    assert code == 0
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG header located strategy=label" in out
    reset_logging()


def test_cli_inspect_data(write_config: Path, naep_files, capsys):
    reset_logging()
    code = cli_main(["--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "SOURCE: grade4 (./data/grade4.xlsx)" in out
    assert "header_row=2 data_start=3 strategy=label" in out
    assert "years=[2022, 2019, 2017]" in out
    assert "['United States', '221', '219', '216']" in out
    assert "SUMMARY" not in out
    assert not Path("data/combined.json").exists()


def test_cli_inspect_data_reports_failures(write_config: Path, naep_files, capsys):
    reset_logging()
    naep_files["grade8"].unlink()
    code = cli_main(["--inspect-data"])
    out = capsys.readouterr().out
    assert code == 2
    assert "SOURCE: grade8" in out
    assert "  error=" in out
