from __future__ import annotations

import pytest

from sku_import.models import FixedRole, RawSheet
from sku_import.services.number_format import (
    collect_number_samples,
    detect_number_format,
    parse_number,
    score_number_formats,
)


@pytest.mark.parametrize(
    "value,fmt,expected",
    [
        ("1,234.56", "1,234.56", 1234.56),
        ("1234.56", "1,234.56", 1234.56),
        ("1,234,567", "1,234.56", 1234567.0),
        ("1.234,56", "1.234,56", 1234.56),
        ("2.500", "1.234,56", 2500.0),
        ("2.500", "1,234.56", 2.5),
        ("1234,56", "1234,56", 1234.56),
        ("1 234,56", "1 234,56", 1234.56),
        ("1\u00a0234,56", "1 234,56", 1234.56),
        ("1 234.5", "1 234.56", 1234.5),
        ("-42", "1234", -42.0),
        ("+7", "1234.56", 7.0),
        (" 10 ", "1,234.56", 10.0),
    ],
)
def test_parse_number(value: str, fmt: str, expected: float):
    assert parse_number(value, fmt) == pytest.approx(expected)


@pytest.mark.parametrize(
    "value,fmt",
    [
        ("1.234,56", "1,234.56"),
        ("12,34.5", "1,234.56"),  # malformed grouping
        ("1234.56", "1234"),
        ("abc", "1,234.56"),
        ("", "1,234.56"),
        ("1e5", "1234.56"),
        ("inf", "1234.56"),
        ("1,5", "9.999"),  # unknown format
    ],
)
def test_parse_number_rejects(value: str, fmt: str):
    assert parse_number(value, fmt) is None


def test_detect_european_format():
    assert detect_number_format(["1.234,56", "2.500,00"]) == "1.234,56"


def test_detect_prefers_thousands_separator_on_tie():
    # both exemplars parse every sample; the one whose separator appears wins
    scores = score_number_formats(["1.234", "2.500"])
    assert scores["1,234.56"] == (2, 0)
    assert scores["1.234,56"] == (2, 2)
    assert detect_number_format(["1.234", "2.500"]) == "1.234,56"


def test_detect_space_grouping():
    assert detect_number_format(["1 234,5", "10 000,25"]) == "1 234,56"


def test_thousands_hits_only_count_parsed_samples():
    # "1 5" は空白区切りとして不正 (3 桁でない)
    scores = score_number_formats(["1,5", "1 5"])
    assert scores["1 234,56"] == (1, 0)
    assert scores["1.234,56"] == (1, 0)
    assert scores["1,234.56"] == (0, 0)
    assert detect_number_format(["1,5", "1 5"]) == "1.234,56"


def test_detect_default_without_numbers():
    assert detect_number_format([]) == "1,234.56"
    assert detect_number_format(["n/a", "-"]) == "1,234.56"


def test_collect_samples_skips_identity_columns_and_dates():
    sheet = RawSheet.from_matrix([
        ["SKU", "Description", "Jan", "Feb"],
        ["1001", "Model 2000", "1.500,5", "01/02/2024"],
        ["1002", "", "", "7"],
    ])
    roles = (FixedRole.MATERIAL_CODE, FixedRole.DESCRIPTION, FixedRole.DATE, FixedRole.DATE)
    assert collect_number_samples(sheet, roles, "dd/mm/yyyy") == ["1.500,5", "7"]


def test_collect_samples_respects_limit():
    sheet = RawSheet.from_matrix([["SKU", "Jan"]] + [[f"S{i}", str(i)] for i in range(10)])
    assert len(collect_number_samples(sheet, None, "dd/mm/yyyy", limit=4)) == 4
