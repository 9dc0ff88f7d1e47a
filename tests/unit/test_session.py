from __future__ import annotations

from unittest.mock import Mock

import pytest

from sku_import.logging.issue_log import IssueLogBuffer
from sku_import.models import (
    Dimension,
    FixedRole,
    FormatLocks,
    FormatSettings,
    ImportOutcome,
    ImportSummary,
    OrgCapabilities,
)
from sku_import.models.processing_result import DateFrequency
from sku_import.services.collaborators import AiSuggestion
from sku_import.services.errors import (
    CollaboratorError,
    DateRoleError,
    LargeFileDeferred,
    NoActiveFileError,
    StructuralValidationError,
)
from sku_import.services.session import ImportSession

PERIOD_ROWS_CSV = (
    "Period;A-1;B-2\n"
    "31/01/2024;1.234,5;2\n"
    "29/02/2024;10;\n"
)


def _outcome(dataset_id: str = "ds-1") -> ImportOutcome:
    return ImportOutcome(
        dataset_id=dataset_id,
        summary=ImportSummary(0, ("N/A", "N/A"), 0, DateFrequency("monthly", 30, 12)),
    )


def _store(dataset_id: str = "ds-1") -> Mock:
    store = Mock()
    store.import_records.return_value = _outcome(dataset_id)
    return store


def test_load_detects_formats_and_seeds_roles(company_org, wide_csv_text):
    session = ImportSession(company_org)
    token = session.load_file("sales.csv", wide_csv_text)
    assert token == 1
    assert session.settings == FormatSettings(",", "dd/mm/yyyy", "1,234.56", False)
    assert session.sheet.headers == ("SKU", "Description", "01/01/2024", "01/02/2024", "01/03/2024")
    assert session.roles == (
        FixedRole.MATERIAL_CODE, FixedRole.DESCRIPTION, FixedRole.DATE, FixedRole.DATE, FixedRole.DATE,
    )
    assert session.date_range == (2, 4)


def test_preview_produces_long_records(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("sales.csv", wide_csv_text)
    records = session.preview().records
    assert len(records) == 6
    assert records[3].to_dict() == {
        "Material Code": "B-2", "Description": "Gadget", "Date": "2024-01-01", "Sales": 0.0,
    }
    assert records[5].sales == 7.5


def test_period_rows_are_transposed_and_european_numbers_detected(company_org):
    session = ImportSession(company_org)
    session.load_file("rows.csv", PERIOD_ROWS_CSV)
    assert session.settings.separator == ";"
    assert session.settings.transposed is True
    assert session.settings.number_format == "1.234,56"
    assert session.sheet.headers == ("Period", "31/01/2024", "29/02/2024")
    records = session.preview().records
    assert [(r.material_code, r.date, r.sales) for r in records] == [
        ("A-1", "2024-01-31", 1234.5),
        ("A-1", "2024-02-29", 10.0),
        ("B-2", "2024-01-31", 2.0),
        ("B-2", "2024-02-29", 0.0),
    ]


def test_toggle_transpose_twice_restores_sheet(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("sales.csv", wide_csv_text)
    original = session.sheet
    session.toggle_transpose()
    assert session.sheet.headers[0] == "SKU"
    assert session.sheet != original
    session.toggle_transpose()
    assert session.sheet == original
    assert session.locks.transposed is True


def test_explicit_date_format_is_sticky_across_files(company_org):
    session = ImportSession(company_org)
    session.load_file("a.csv", "SKU,01/02/2024,03/04/2024\nA,1,2\n")
    assert session.settings.date_format == "dd/mm/yyyy"
    session.set_date_format("mm/dd/yyyy")
    # the next file would be detected as day-first, but the override holds
    session.load_file("b.csv", "SKU,31/01/2024\nA,1\n")
    assert session.settings.date_format == "mm/dd/yyyy"
    assert session.locks.date_format is True


def test_locked_settings_from_configuration(company_org):
    session = ImportSession(
        company_org,
        settings=FormatSettings(separator=";", date_format="mm/yyyy"),
        locks=FormatLocks(separator=True, date_format=True),
    )
    session.load_file("a.csv", "SKU;01/2024;02/2024\nA;;10\n")
    assert [(r.date, r.sales) for r in session.preview().records] == [
        ("2024-01-01", 0.0),
        ("2024-02-01", 10.0),
    ]


def test_set_separator_reparses_and_reseeds(company_org):
    session = ImportSession(company_org)
    session.load_file("a.csv", "SKU|Desc|31/01/2024\nA|x|1\n")
    session.set_separator(",")
    assert session.sheet.width == 1
    session.set_separator("|")
    assert session.roles[2] is FixedRole.DATE


def test_invalid_setting_values_are_rejected(company_org):
    session = ImportSession(company_org)
    with pytest.raises(ValueError):
        session.set_separator(":")
    with pytest.raises(ValueError):
        session.set_date_format("dd.mm.yyyy")
    with pytest.raises(ValueError):
        session.set_number_format("1'234.56")


def test_new_file_resets_state_and_bumps_token(company_org, wide_csv_text):
    session = ImportSession(company_org)
    first = session.load_file("a.csv", wide_csv_text)
    session.assign_role(1, "Ignore")
    second = session.load_file("b.csv", wide_csv_text)
    assert second == first + 1
    assert session.roles[1] is FixedRole.DESCRIPTION


def test_large_file_is_deferred(company_org, wide_csv_text):
    session = ImportSession(company_org, large_file_threshold=10)
    with pytest.raises(LargeFileDeferred) as exc_info:
        session.load_file("big.csv", wide_csv_text)
    assert exc_info.value.file_name == "big.csv"
    assert session.has_file is False
    with pytest.raises(NoActiveFileError):
        session.preview()


def test_assign_role_records_reinterpretation(company_org, wide_csv_text):
    issues = IssueLogBuffer()
    session = ImportSession(company_org, issue_log=issues)
    session.load_file("a.csv", wide_csv_text)
    result = session.assign_role(1, FixedRole.DIVISION)
    assert result.applied == Dimension("Description")
    assert issues.records[0].issue_type == "ROLE_RESTRICTED"
    assert issues.records[0].column == "Description"


def test_assign_exclusive_role_already_held(company_org, wide_csv_text):
    issues = IssueLogBuffer()
    session = ImportSession(company_org, issue_log=issues)
    session.load_file("a.csv", wide_csv_text)
    result = session.assign_role(1, "Material Code")
    assert result.outcome == "conflict"
    assert result.applied == Dimension("Description")
    # 期間ヘッダ列は項目名にせず Ignore
    assert session.assign_role(2, FixedRole.MATERIAL_CODE).applied is FixedRole.IGNORE
    assert session.roles[0] is FixedRole.MATERIAL_CODE
    assert [r.issue_type for r in issues.records] == ["ROLE_CONFLICT", "ROLE_CONFLICT"]


def test_role_and_range_bounds_are_checked(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    before = session.roles
    with pytest.raises(IndexError):
        session.assign_role(5, FixedRole.DATE)
    with pytest.raises(ValueError):
        session.set_date_range(4, 2)
    with pytest.raises(ValueError):
        session.set_date_range(2, 5)
    assert session.roles == before


def test_date_role_error_leaves_roles_unchanged(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    before = session.roles
    with pytest.raises(DateRoleError):
        session.assign_role(1, FixedRole.DATE)
    assert session.roles == before


def test_set_date_range(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    session.set_date_range(3, 4)
    assert session.roles[2] is FixedRole.IGNORE
    assert len(session.preview()) == 4


def test_stale_ai_suggestion_is_discarded(company_org, wide_csv_text):
    session = ImportSession(company_org)
    old_token = session.load_file("a.csv", wide_csv_text)
    session.load_file("b.csv", wide_csv_text)
    applied = session.apply_ai_suggestion(old_token, AiSuggestion(column_roles={"SKU": "Ignore"}))
    assert applied is False
    assert session.roles[0] is FixedRole.MATERIAL_CODE


def test_ai_suggestion_seeds_roles(company_org, wide_csv_text):
    session = ImportSession(company_org)
    token = session.load_file("a.csv", wide_csv_text)
    suggestion = AiSuggestion(column_roles={"SKU": "Material Code", "01/02/2024": "Date"})
    assert session.apply_ai_suggestion(token, suggestion) is True
    assert session.roles == (
        FixedRole.MATERIAL_CODE, FixedRole.IGNORE, FixedRole.IGNORE, FixedRole.DATE, FixedRole.IGNORE,
    )


def test_ai_suggestion_with_transformed_data(company_org):
    session = ImportSession(company_org)
    token = session.load_file("a.csv", "junk;data\n1;2\n")
    suggestion = AiSuggestion(
        column_roles={"SKU": "Material Code", "31/01/2024": "Date"},
        transformed_data=[["SKU", "31/01/2024"], ["A", "4"]],
    )
    session.apply_ai_suggestion(token, suggestion)
    assert [(r.material_code, r.sales) for r in session.preview().records] == [("A", 4.0)]


def test_ai_transformed_data_with_iso_headers_redetects_date_format(company_org):
    session = ImportSession(company_org)
    token = session.load_file("a.csv", "SKU,31/01/2024,29/02/2024\nA,1,2\n")
    assert session.settings.date_format == "dd/mm/yyyy"
    suggestion = AiSuggestion(
        column_roles={"Material Code": "Material Code", "2024-01-31": "Date", "2024-02-29": "Date"},
        transformed_data=[["Material Code", "2024-01-31", "2024-02-29"], ["A", "1", "2"]],
    )
    assert session.apply_ai_suggestion(token, suggestion) is True
    assert session.settings.date_format == "yyyy-mm-dd"
    assert session.roles == (FixedRole.MATERIAL_CODE, FixedRole.DATE, FixedRole.DATE)
    assert [(r.date, r.sales) for r in session.preview().records] == [
        ("2024-01-31", 1.0),
        ("2024-02-29", 2.0),
    ]


def test_ai_transformed_data_keeps_locked_date_format(company_org):
    session = ImportSession(
        company_org,
        settings=FormatSettings(date_format="dd/mm/yyyy"),
        locks=FormatLocks(date_format=True),
    )
    token = session.load_file("a.csv", "SKU,31/01/2024\nA,1\n")
    suggestion = AiSuggestion(
        column_roles={"Material Code": "Material Code", "2024-01-31": "Date"},
        transformed_data=[["Material Code", "2024-01-31"], ["A", "1"]],
    )
    session.apply_ai_suggestion(token, suggestion)
    assert session.settings.date_format == "dd/mm/yyyy"
    # 書式が固定されているので ISO ヘッダは Date として受け付けない
    assert session.roles == (FixedRole.MATERIAL_CODE, FixedRole.IGNORE)


def test_numeric_sku_codes_keep_wide_orientation(company_org):
    session = ImportSession(company_org)
    session.load_file("a.csv", "SKU,Description,01/2024,02/2024\n1001,Widget,5,6\n1002,Gadget,7,8\n")
    assert session.settings.date_format == "mm/yyyy"
    assert session.settings.transposed is False
    assert session.sheet.headers == ("SKU", "Description", "01/2024", "02/2024")
    assert [(r.material_code, r.date, r.sales) for r in session.preview().records] == [
        ("1001", "2024-01-01", 5.0),
        ("1001", "2024-02-01", 6.0),
        ("1002", "2024-01-01", 7.0),
        ("1002", "2024-02-01", 8.0),
    ]


def test_request_ai_suggestion_wraps_failures(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    assistant = Mock()
    assistant.suggest.side_effect = TimeoutError("backend timeout")
    with pytest.raises(CollaboratorError):
        session.request_ai_suggestion(assistant)


def test_commit_hands_records_to_store(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    store = _store()
    outcome = session.commit(store)
    assert outcome.dataset_id == "ds-1"
    args = store.import_records.call_args.args
    assert len(args[0]) == 6
    assert args[2] == "a.csv"
    assert args[3] == session.content_hash
    assert [r.file_name for r in session.imported] == ["a.csv"]


def test_commit_requires_material_code(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    session.assign_role(0, "Ignore")
    store = _store()
    with pytest.raises(StructuralValidationError) as exc_info:
        session.commit(store)
    assert "Missing required column role: Material Code" in exc_info.value.errors
    store.import_records.assert_not_called()


def test_second_company_import_needs_confirmation(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    session.commit(_store("ds-a"))
    session.load_file("b.csv", wide_csv_text)
    store = _store("ds-b")
    assert session.commit(store) is None
    store.import_records.assert_not_called()
    assert [r.file_name for r in session.imported] == ["a.csv"]

    assert session.commit(store, confirm_replace=True).dataset_id == "ds-b"
    assert [r.file_name for r in session.imported] == ["b.csv"]


def test_division_level_imports_accumulate():
    org = OrgCapabilities.from_mapping({
        "has_multiple_divisions": True,
        "import_level": "division",
        "division_csv_type": "withoutDivisionColumn",
    })
    session = ImportSession(org)
    session.load_file("north.csv", "SKU,31/01/2024\nA,1\n", division_name="North")
    session.commit(_store())
    session.load_file("south.csv", "SKU,31/01/2024\nB,1\n", division_name="South")
    assert session.check_duplicates().requires_confirmation is False
    session.commit(_store())
    session.load_file("north-v2.csv", "SKU,31/01/2024\nA,2\n", division_name="North")
    decision = session.check_duplicates()
    assert decision.overlapping_divisions == ("North",)
    session.commit(_store(), confirm_replace=True)
    assert [r.file_name for r in session.imported] == ["south.csv", "north-v2.csv"]
    session.remove_import("south.csv")
    assert [r.file_name for r in session.imported] == ["north-v2.csv"]


def test_collaborator_failure_leaves_bookkeeping(company_org, wide_csv_text):
    session = ImportSession(company_org)
    session.load_file("a.csv", wide_csv_text)
    store = Mock()
    store.import_records.side_effect = RuntimeError("db down")
    with pytest.raises(CollaboratorError):
        session.commit(store)
    assert session.imported == ()


def test_unparsed_headers_are_logged_on_commit(company_org):
    issues = IssueLogBuffer()
    session = ImportSession(company_org, issue_log=issues)
    session.load_file("a.csv", "SKU,31/01/2024,Total 2024\nA,1,2\n")
    session.set_date_range(1, 2)
    session.commit(_store())
    assert [r.issue_type for r in issues.records] == ["UNPARSED_PERIOD_HEADER"]
    assert issues.records[0].column == "Total 2024"
