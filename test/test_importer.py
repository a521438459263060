import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_workbook
from payroll_server.core.exceptions import InvalidFieldError, NoPendingImportError, SeedWorkbookNotFoundError
from payroll_server.core.fields import (
    ADVANCES_FIELD,
    BRANCH_FIELD,
    CODE_FIELD,
    INCENTIVE_FIELD,
    NAME_FIELD,
    NATIONAL_ID_FIELD,
    SALARY_FIELD,
)
from payroll_server.core.importer import ImportReconciler, reconcile, seed_rows


@pytest.mark.asyncio
async def test_preview_reports_field_change(store, importer):
    await store.replace_all([{"id": "e1", CODE_FIELD: "100", SALARY_FIELD: 5000}])

    preview = await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: "5500"}], CODE_FIELD)

    assert preview.new_records == 0
    assert preview.updated_records == 1
    assert preview.total_changes == 1
    change = preview.changes[0]
    assert change.employee_id == "e1"
    assert change.employee_name == "100"
    assert change.field == SALARY_FIELD
    assert change.old_value == 5000
    assert change.new_value == 5500


@pytest.mark.asyncio
async def test_preview_is_pure_and_deterministic(store, importer, employee_record):
    await store.replace_all([employee_record])
    rows = [{CODE_FIELD: "100", SALARY_FIELD: 6000}, {CODE_FIELD: "300", NAME_FIELD: "جديد"}]
    before = await store.list_all()

    first = await importer.preview(rows)
    second = await importer.preview(rows)

    assert first == second
    assert await store.list_all() == before
    assert await store.list_history() == []


@pytest.mark.asyncio
async def test_unchanged_fields_are_not_reported(store, importer, employee_record):
    await store.replace_all([employee_record])
    preview = await importer.preview([{CODE_FIELD: "100", NAME_FIELD: "أحمد علي", SALARY_FIELD: 5000}])
    assert preview.changes == []
    assert preview.updated_records == 1


@pytest.mark.asyncio
async def test_numeric_code_matches_text_code(store, importer, employee_record):
    await store.replace_all([employee_record])
    preview = await importer.preview([{CODE_FIELD: 100, SALARY_FIELD: 5100}])
    assert preview.updated_records == 1
    assert preview.new_records == 0


@pytest.mark.asyncio
async def test_absent_field_counts_as_change(store, importer, employee_record):
    await store.replace_all([employee_record])
    preview = await importer.preview([{CODE_FIELD: "100", INCENTIVE_FIELD: ""}])
    assert len(preview.changes) == 1
    assert preview.changes[0].field == INCENTIVE_FIELD
    assert preview.changes[0].old_value is None
    assert preview.changes[0].new_value is None


@pytest.mark.asyncio
async def test_non_numeric_amount_previews_as_null(store, importer, employee_record):
    await store.replace_all([employee_record])
    preview = await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: "غير متاح"}])
    assert preview.changes[0].old_value == 5000
    assert preview.changes[0].new_value is None


@pytest.mark.asyncio
async def test_rows_without_key_are_skipped(store, importer):
    preview = await importer.preview([{NAME_FIELD: "بدون كود"}, {CODE_FIELD: "", NAME_FIELD: "فارغ"}])
    assert preview.new_records == 0
    assert preview.updated_records == 0


@pytest.mark.asyncio
async def test_match_on_national_id(store, importer):
    await store.replace_all([{"id": "e1", CODE_FIELD: "1", NATIONAL_ID_FIELD: "29801011234567", SALARY_FIELD: 1}])
    preview = await importer.preview([{NATIONAL_ID_FIELD: "29801011234567", SALARY_FIELD: 2}], NATIONAL_ID_FIELD)
    assert preview.updated_records == 1
    assert preview.changes[0].employee_id == "e1"


@pytest.mark.asyncio
async def test_unsupported_key_column(importer):
    with pytest.raises(InvalidFieldError):
        await importer.preview([{BRANCH_FIELD: "x"}], BRANCH_FIELD)
    assert importer.pending is None


@pytest.mark.asyncio
async def test_preview_limit_caps_returned_changes(store):
    await store.replace_all([{"id": "e1", CODE_FIELD: "100", SALARY_FIELD: 1, ADVANCES_FIELD: 1}])
    importer = ImportReconciler(store, preview_limit=1)

    preview = await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: 2, ADVANCES_FIELD: 2}])

    assert len(preview.changes) == 1
    assert preview.total_changes == 2
    assert len(importer.pending.changes) == 2


@pytest.mark.asyncio
async def test_confirm_without_preview(importer):
    with pytest.raises(NoPendingImportError):
        await importer.confirm()


@pytest.mark.asyncio
async def test_confirm_applies_exactly_the_preview(store, importer, employee_record):
    await store.replace_all([employee_record])
    rows = [
        {CODE_FIELD: "100", SALARY_FIELD: "5500", ADVANCES_FIELD: 200},
        {CODE_FIELD: "300", NAME_FIELD: "جديد", SALARY_FIELD: "4000"},
    ]
    preview = await importer.preview(rows)

    result = await importer.confirm()

    assert result.success is True
    assert result.applied == preview.total_changes == 2
    assert result.created == preview.new_records == 1

    employees = await store.list_all()
    assert len(employees) == 2
    updated = await store.get_by_id("e1")
    assert updated[SALARY_FIELD] == 5500
    assert updated[ADVANCES_FIELD] == 200
    created = [e for e in employees if e[CODE_FIELD] == "300"][0]
    assert created[SALARY_FIELD] == 4000
    assert created["id"]

    assert len(await store.list_history()) == 2
    assert importer.pending is None

    with pytest.raises(NoPendingImportError):
        await importer.confirm()


@pytest.mark.asyncio
async def test_new_preview_replaces_pending(store, importer, employee_record):
    await store.replace_all([employee_record])
    await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: 1}])
    await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: 2}])

    await importer.confirm()
    assert (await store.get_by_id("e1"))[SALARY_FIELD] == 2


@pytest.mark.asyncio
async def test_confirm_skips_deleted_employees(store, importer, employee_record):
    await store.replace_all([employee_record])
    await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: 1}])
    await store.delete("e1")

    result = await importer.confirm()
    assert result.applied == 0
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_confirm_failure_leaves_partial_changes(store, importer, employee_record):
    """A failure while creating new records keeps the updates already applied"""
    await store.replace_all([employee_record])
    await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: 7000}, {CODE_FIELD: "300"}])

    with patch.object(store, "create", AsyncMock(side_effect=OSError("disk full"))):
        with pytest.raises(OSError):
            await importer.confirm()

    assert (await store.get_by_id("e1"))[SALARY_FIELD] == 7000
    assert await store.count() == 1
    assert importer.pending is not None


@pytest.mark.asyncio
async def test_imported_id_column_never_reassigns_identifiers(store, importer):
    await store.replace_all([{"id": "e1", CODE_FIELD: "100"}, {"id": "e2", CODE_FIELD: "200"}])

    preview = await importer.preview([{CODE_FIELD: "100", "id": "e2", SALARY_FIELD: 5000}])
    assert [change.field for change in preview.changes] == [SALARY_FIELD]

    await importer.confirm()

    employees = await store.list_all()
    assert sorted(e["id"] for e in employees) == ["e1", "e2"]
    assert (await store.get_by_id("e1"))[SALARY_FIELD] == 5000
    assert all(entry.field != "id" for entry in await store.list_history())


@pytest.mark.asyncio
async def test_concurrent_previews_keep_one_complete_pending_import(store, importer, employee_record):
    await store.replace_all([employee_record])

    def rows(i):
        return [{CODE_FIELD: "100", SALARY_FIELD: 1000 + i}, {CODE_FIELD: f"9{i}", NAME_FIELD: f"موظف {i}"}]

    await asyncio.gather(*(importer.preview(rows(i)) for i in range(10)))

    pending = importer.pending
    assert len(pending.changes) == 1
    assert len(pending.new_employees) == 1
    i = pending.changes[0].new_value - 1000
    assert pending.new_employees[0][NAME_FIELD] == f"موظف {i}"

    result = await importer.confirm()
    assert result.applied == 1
    assert result.created == 1
    assert (await store.get_by_id("e1"))[SALARY_FIELD] == 1000 + i


@pytest.mark.asyncio
async def test_reset_store_discards_pending_import(store, importer, employee_record):
    await store.replace_all([employee_record])
    await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: 1}, {CODE_FIELD: "300"}])

    await importer.reset_store()

    assert importer.pending is None
    assert await store.count() == 0
    with pytest.raises(NoPendingImportError):
        await importer.confirm()


@pytest.mark.asyncio
async def test_reset_waits_for_running_confirm(store, importer, employee_record):
    await store.replace_all([employee_record])
    await importer.preview([{CODE_FIELD: "100", SALARY_FIELD: 1}, {CODE_FIELD: "300"}, {CODE_FIELD: "400"}])

    await asyncio.gather(importer.confirm(), importer.reset_store())

    assert await store.count() == 0
    assert await store.list_history() == []
    assert importer.pending is None


def test_reconcile_last_record_wins_for_duplicate_keys():
    records = [{"id": "a", CODE_FIELD: "1", SALARY_FIELD: 1}, {"id": "b", CODE_FIELD: "1", SALARY_FIELD: 1}]
    pending = reconcile([{CODE_FIELD: "1", SALARY_FIELD: 2}], records, CODE_FIELD)
    assert [c.employee_id for c in pending.changes] == ["b"]


def test_seed_rows_maps_columns_and_drops_non_numeric_codes():
    rows = [
        {"__EMPTY": "الكود", "__EMPTY_1": "الاسم"},
        {"__EMPTY": 101, "__EMPTY_1": "علي", "__EMPTY_10": "3000", "سلف": 250},
        {"__EMPTY": None, "__EMPTY_1": "إجمالي"},
    ]
    assert seed_rows(rows) == [{CODE_FIELD: 101, NAME_FIELD: "علي", SALARY_FIELD: 3000, ADVANCES_FIELD: 250}]


@pytest.mark.asyncio
async def test_seed_from_workbook(store, importer, tmp_path):
    path = tmp_path / "payroll.xlsx"
    path.write_bytes(make_workbook([
        [None, None, "سلف"],
        ["الكود", "الاسم", "سلف"],
        [101, "علي", 250],
        [102, "منى", None],
    ]))

    result = await importer.seed_from_workbook(path)
    assert result.message == "Data imported successfully"
    assert result.count == 2

    employees = await store.list_all()
    assert [e[NAME_FIELD] for e in employees] == ["علي", "منى"]
    assert employees[0][ADVANCES_FIELD] == 250

    again = await importer.seed_from_workbook(path)
    assert again.message == "Data already exists"
    assert again.count == 2


@pytest.mark.asyncio
async def test_seed_without_workbook(importer, tmp_path):
    with pytest.raises(SeedWorkbookNotFoundError):
        await importer.seed_from_workbook(tmp_path / "missing.xlsx")
    with pytest.raises(SeedWorkbookNotFoundError):
        await importer.seed_from_workbook(None)
