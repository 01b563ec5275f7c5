from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from contact_io.cli.__main__ import (
    EXIT_FATAL,
    EXIT_PARTIAL_FAILURE,
    EXIT_SUCCESS_ALL,
    main,
)
from contact_io.csvio.writer import IMPORT_HEADERS
from contact_io.services.orchestrator import import_csv_file


@pytest.fixture()
def no_db(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def test_template_needs_no_config(temp_workdir: Path):
    out = temp_workdir / "tpl.csv"
    assert main(["template", "--output", str(out)]) == EXIT_SUCCESS_ALL
    assert out.read_text(encoding="utf-8").splitlines()[0] == ",".join(IMPORT_HEADERS)


def test_missing_config_is_fatal(temp_workdir: Path, capsys):
    (temp_workdir / "data" / "c.csv").write_text("name\nA\n", encoding="utf-8")
    assert main(["import", "data/c.csv"]) == EXIT_FATAL
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_import_missing_file(write_config: Path, capsys):
    assert main(["--config", str(write_config), "import", "data/nope.csv"]) == EXIT_FATAL
    assert "ERROR file not found" in capsys.readouterr().out


def test_import_all_successful(write_config: Path, temp_workdir: Path, no_db, capsys):
    (temp_workdir / "data" / "c.csv").write_text("name,email\nAlice,a@x.com\nBob,b@x.com\n", encoding="utf-8")
    assert main(["--config", str(write_config), "import", "data/c.csv"]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "INFO mode=dry-run source=c.csv" in out
    assert "INFO Validated 2 contacts (dry-run, nothing written)" in out
    assert "Successfully imported" not in out
    assert "SUMMARY total=2 successful=2 failed=0 skipped_lines=0" in out
    assert not list((temp_workdir / "logs").glob("errors-*.log"))


def test_import_partial_failure_exit_code(write_config: Path, temp_workdir: Path, sample_csv: str, no_db, capsys):
    (temp_workdir / "data" / "c.csv").write_text(sample_csv, encoding="utf-8")
    assert main(["--config", str(write_config), "import", "data/c.csv"]) == EXIT_PARTIAL_FAILURE
    out = capsys.readouterr().out
    assert "WARN Validated 2 contacts, 1 failed (dry-run, nothing written)" in out
    assert "SUMMARY total=3 successful=2 failed=1" in out
    assert len(list((temp_workdir / "logs").glob("errors-*.log"))) == 1


def test_import_without_organization_is_fatal(temp_workdir: Path, no_db, capsys):
    cfg = temp_workdir / "config" / "contacts.yml"
    cfg.write_text("tag_separator: ';'\n", encoding="utf-8")
    (temp_workdir / "data" / "c.csv").write_text("name\nA\n", encoding="utf-8")
    assert main(["--config", str(cfg), "import", "data/c.csv"]) == EXIT_FATAL
    assert "ERROR Import failed: No organization found" in capsys.readouterr().out


def test_organization_flag_overrides_config(write_config: Path, temp_workdir: Path, no_db):
    (temp_workdir / "data" / "c.csv").write_text("name\nA\n", encoding="utf-8")
    with patch("contact_io.cli.__main__.import_csv_file", wraps=import_csv_file) as spy:
        main(["--config", str(write_config), "import", "data/c.csv", "--organization", "org-2"])
    assert spy.call_args.args[1] == "org-2"
    assert spy.call_args.args[2] is None


def test_connection_failure_is_fatal(write_config: Path, temp_workdir: Path, monkeypatch, capsys):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    (temp_workdir / "data" / "c.csv").write_text("name\nA\nB\n", encoding="utf-8")
    with patch("contact_io.cli.__main__._connect", side_effect=psycopg2.OperationalError("refused")):
        assert main(["--config", str(write_config), "import", "data/c.csv"]) == EXIT_FATAL
    out = capsys.readouterr().out
    assert "ERROR Import failed: database unavailable: refused" in out
    assert "Successfully imported" not in out
    assert "SUMMARY" not in out


def test_dry_run_flag_skips_connection(write_config: Path, temp_workdir: Path, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    (temp_workdir / "data" / "c.csv").write_text("name\nA\n", encoding="utf-8")
    with patch("contact_io.cli.__main__._connect") as connect:
        assert main(["--config", str(write_config), "import", "data/c.csv", "--dry-run"]) == EXIT_SUCCESS_ALL
    connect.assert_not_called()


def test_export_without_organization(temp_workdir: Path, capsys):
    cfg = temp_workdir / "config" / "contacts.yml"
    cfg.write_text("tag_separator: ';'\n", encoding="utf-8")
    assert main(["--config", str(cfg), "export"]) == EXIT_FATAL
    assert "ERROR Export failed: No organization found" in capsys.readouterr().out


def test_export_database_unavailable(write_config: Path, capsys):
    with patch("contact_io.cli.__main__._connect", side_effect=psycopg2.OperationalError("refused")):
        assert main(["--config", str(write_config), "export"]) == EXIT_FATAL
    assert "ERROR Export failed: database unavailable" in capsys.readouterr().out


def test_export_closes_connection(write_config: Path, temp_workdir: Path, capsys):
    conn = MagicMock()
    with patch("contact_io.cli.__main__._connect", return_value=conn), patch(
        "contact_io.services.exporter.fetch_contacts", return_value=[]
    ):
        assert main(["--config", str(write_config), "export", "--output-dir", "out"]) == EXIT_SUCCESS_ALL
    conn.close.assert_called_once()
    assert "INFO Contacts exported successfully (0)" in capsys.readouterr().out
    assert len(list((temp_workdir / "out").glob("contacts-export-*.csv"))) == 1
