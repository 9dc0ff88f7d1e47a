# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pytest

from sku_import.logging.init import reset_logging
from sku_import.models import OrgCapabilities


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("SKU_IMPORT_CONFIG", raising=False)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
output_directory: ./output
organization:
  has_multiple_divisions: false
  has_multiple_clusters: false
  enable_lifecycle_tracking: false
  import_level: division
  division_csv_type: withoutDivisionColumn
division_files:
  north.csv: North
  south.csv: South
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def company_org() -> OrgCapabilities:
    return OrgCapabilities()


@pytest.fixture()
def full_org() -> OrgCapabilities:
    return OrgCapabilities(
        has_multiple_divisions=True,
        has_multiple_clusters=True,
        enable_lifecycle_tracking=True,
    )


@pytest.fixture()
def wide_csv_text() -> str:
    return (
        "SKU,Description,01/01/2024,01/02/2024,01/03/2024\n"
        "A-1,Widget,10,20,30\n"
        "B-2,Gadget,,5,7.5\n"
    )


@pytest.fixture()
def write_csv(temp_workdir: Path):
    def _write(name: str, text: str) -> Path:
        f = temp_workdir / "data" / name
        f.write_text(text, encoding="utf-8")
        return f
    return _write
