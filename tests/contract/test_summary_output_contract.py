from __future__ import annotations

import re
from pathlib import Path

from contact_io.cli import main as cli_main
from contact_io.models.import_result import ImportReport, ImportResult
from contact_io.services.summary import render_summary_line

"""SUMMARY 行フォーマット契約テスト

SUMMARY total=<int> successful=<int> failed=<int> skipped_lines=<int> elapsed_sec=<num> throughput_rps=<num>
"""

SUMMARY_RE = re.compile(
    r"^SUMMARY total=(\d+) successful=(\d+) failed=(\d+) skipped_lines=(\d+) "
    r"elapsed_sec=(\d+(?:\.\d+)?) throughput_rps=(\d+(?:\.\d+)?)$"
)


def test_rendered_line_matches_contract():
    result = ImportResult(total=5, successful=4, failed=1)
    line = render_summary_line(ImportReport("c.csv", result, skipped_lines=1, elapsed_seconds=0.731))
    m = SUMMARY_RE.match(line)
    assert m is not None, line
    total, successful, failed = (int(m.group(i)) for i in (1, 2, 3))
    assert successful + failed == total


def test_cli_prints_exactly_one_summary_line(write_config: Path, temp_workdir: Path, sample_csv: str, monkeypatch, capsys):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    (temp_workdir / "data" / "contacts.csv").write_text(sample_csv, encoding="utf-8")
    cli_main(["--config", str(write_config), "import", "data/contacts.csv"])
    lines = [ln for ln in capsys.readouterr().out.splitlines() if ln.startswith("SUMMARY")]
    assert len(lines) == 1
    m = SUMMARY_RE.match(lines[0])
    assert m is not None, lines[0]
    assert m.group(1) == "3"
