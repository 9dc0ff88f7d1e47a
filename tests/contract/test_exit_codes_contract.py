from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import patch

from sku_import.cli import main as cli_main
from sku_import.sheet.reader import SheetReadError, read_csv_text

"""Exit code contract: 0 all imported, 2 some failed or deferred, 1 fatal."""

WIDE = "SKU,Description,31/01/2024,29/02/2024\nA-1,Widget,1,2\n"


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/import.yml 無し → exit 1
    code = cli_main([])
    captured = capsys.readouterr()
    assert code == 1
    assert "ERROR config:" in captured.out


def test_exit_code_all_success(temp_workdir: Path, write_config, write_csv, capsys):
    write_csv("north.csv", WIDE)
    write_csv("south.csv", WIDE.replace("A-1", "B-2"))

    code = cli_main([])

    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=2/2 success=2 failed=0 deferred=0 records=4" in out


def test_exit_code_partial_failure(temp_workdir: Path, write_config, write_csv, capsys):
    write_csv("failure.csv", WIDE)
    write_csv("north.csv", WIDE)

    def read_side_effect(path):
        if "failure" in str(path):
            raise SheetReadError(f"cannot read {path}: simulated")
        return read_csv_text(path)

    with patch('sku_import.services.orchestrator.read_csv_text', side_effect=read_side_effect):
        code = cli_main([])

    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY files=2/2" in out
    match = re.search(r"failed=(\d+)", out)
    assert match is not None, f"No 'failed=' found in output: {out}"
    assert int(match.group(1)) == 1


def test_exit_code_deferred_only(temp_workdir: Path, write_config, write_csv, capsys):
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(cfg.read_text(encoding="utf-8") + "large_file_threshold: 10\n", encoding="utf-8")
    write_csv("north.csv", WIDE)

    code = cli_main([])

    out = capsys.readouterr().out
    assert code == 2
    assert "success=0 failed=0 deferred=1" in out
    assert "WARN file 'north.csv' is" in out
