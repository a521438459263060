import asyncio
import json
import math
from unittest.mock import patch

import pytest

from payroll_server.core.exceptions import InvalidFieldError
from payroll_server.core.fields import (
    BRANCH_FIELD,
    CODE_FIELD,
    DELETION_FIELD,
    NAME_FIELD,
    SALARY_FIELD,
    SECTOR_FIELD,
)
from payroll_server.core.storage import PayrollStore
from payroll_server.schemas.schema import EmployeeQuery


@pytest.mark.asyncio
async def test_update_field_records_history(store):
    """Update is visible through get and adds exactly one history entry"""
    await store.replace_all([{"id": "e1", CODE_FIELD: "100", SALARY_FIELD: 5000}])

    updated = await store.update_field("e1", SALARY_FIELD, 5500)
    assert updated[SALARY_FIELD] == 5500

    employee = await store.get_by_id("e1")
    assert employee[SALARY_FIELD] == 5500

    history = await store.list_history()
    assert len(history) == 1
    entry = history[0]
    assert entry.employee_id == "e1"
    assert entry.employee_name == "100"
    assert entry.field == SALARY_FIELD
    assert entry.old_value == 5000
    assert entry.new_value == 5500
    assert entry.user == "guest"


@pytest.mark.asyncio
async def test_update_missing_employee(store):
    assert await store.update_field("missing", SALARY_FIELD, 1) is None
    assert await store.list_history() == []


@pytest.mark.asyncio
async def test_update_refuses_identifier(store, employee_record):
    await store.replace_all([employee_record])

    with pytest.raises(InvalidFieldError):
        await store.update_field("e1", "id", "e2")

    assert await store.get_by_id("e1") is not None
    assert await store.list_history() == []


@pytest.mark.asyncio
async def test_concurrent_updates_are_all_recorded(store, employee_record, tmp_path):
    await store.replace_all([employee_record])
    amounts = list(range(1, 21))

    await asyncio.gather(*(store.update_field("e1", SALARY_FIELD, amount) for amount in amounts))

    history = await store.list_history()
    assert len(history) == len(amounts)
    assert sorted(entry.new_value for entry in history) == amounts
    assert (await store.get_by_id("e1"))[SALARY_FIELD] in amounts

    on_disk = json.loads((tmp_path / "data" / "history.json").read_text(encoding="utf-8"))
    assert len(on_disk) == len(amounts)


@pytest.mark.asyncio
async def test_update_can_clear_a_value(store, employee_record):
    await store.replace_all([employee_record])
    updated = await store.update_field("e1", SALARY_FIELD, None)
    assert updated[SALARY_FIELD] is None
    history = await store.list_history()
    assert history[0].old_value == 5000
    assert history[0].new_value is None


@pytest.mark.asyncio
async def test_delete_removes_record_and_logs_name(store, employee_record):
    await store.replace_all([employee_record])

    assert await store.delete("e1") is True
    assert await store.get_by_id("e1") is None
    assert await store.list_all() == []

    history = await store.list_history()
    assert len(history) == 1
    assert history[0].field == DELETION_FIELD
    assert history[0].old_value == "أحمد علي"
    assert history[0].new_value is None


@pytest.mark.asyncio
async def test_delete_missing_employee(store):
    assert await store.delete("missing") is False


@pytest.mark.asyncio
async def test_create_assigns_new_id_and_cleans_values(store):
    created = await store.create({"id": "chosen", CODE_FIELD: "9", SALARY_FIELD: math.nan})

    assert created["id"] != "chosen"
    assert created[SALARY_FIELD] is None
    assert await store.get_by_id(created["id"]) == created


@pytest.mark.asyncio
async def test_get_returns_a_copy(store, employee_record):
    await store.replace_all([employee_record])
    employee = await store.get_by_id("e1")
    employee[SALARY_FIELD] = 1
    assert (await store.get_by_id("e1"))[SALARY_FIELD] == 5000


@pytest.mark.asyncio
async def test_data_survives_reopen(store, employee_record, tmp_path):
    await store.replace_all([employee_record])
    await store.add_note("e1", "ملاحظة")
    await store.update_field("e1", SALARY_FIELD, 6000)

    reopened = PayrollStore(tmp_path / "data")
    assert (await reopened.get_by_id("e1"))[SALARY_FIELD] == 6000
    assert len(await reopened.list_history()) == 1
    assert len(await reopened.list_notes("e1")) == 1


@pytest.mark.asyncio
async def test_files_keep_arabic_text(store, employee_record, tmp_path):
    await store.replace_all([employee_record])
    raw = (tmp_path / "data" / "employees.json").read_text(encoding="utf-8")
    assert "أحمد علي" in raw
    assert json.loads(raw)[0]["id"] == "e1"


@pytest.mark.asyncio
async def test_unreadable_files_start_empty(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "employees.json").write_text("not json", encoding="utf-8")
    (data_dir / "history.json").write_text('{"not": "a list"}', encoding="utf-8")

    store = PayrollStore(data_dir)
    assert await store.count() == 0
    assert await store.list_history() == []


@pytest.mark.asyncio
async def test_open_is_idempotent(store, employee_record, tmp_path):
    await store.replace_all([employee_record])
    (tmp_path / "data" / "employees.json").write_text("[]", encoding="utf-8")

    await store.open()
    assert await store.count() == 1

    await store.close()
    assert not store.is_open
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_list_uses_query(store):
    await store.replace_all([{"id": str(i), CODE_FIELD: str(i), SALARY_FIELD: i} for i in range(5)])
    page = await store.list(EmployeeQuery(page=2, limit=2, sort_field=SALARY_FIELD, sort_direction="desc"))
    assert [r["id"] for r in page.data] == ["2", "1"]
    assert page.total_pages == 3


@pytest.mark.asyncio
async def test_distinct_values_keep_first_seen_order(store):
    await store.replace_all([
        {BRANCH_FIELD: "الجيزة", SECTOR_FIELD: "مبيعات"},
        {BRANCH_FIELD: "القاهرة", SECTOR_FIELD: ""},
        {BRANCH_FIELD: "الجيزة"},
    ])
    options = await store.distinct_values()
    assert options.branches == ["الجيزة", "القاهرة"]
    assert options.departments == []
    assert options.sectors == ["مبيعات"]


@pytest.mark.asyncio
async def test_notes_newest_first_and_delete(store):
    timestamps = ["2024-01-01T00:00:00.000Z", "2024-01-02T00:00:00.000Z", "2024-01-03T00:00:00.000Z"]
    with patch("payroll_server.core.storage.utc_timestamp", side_effect=timestamps):
        first = await store.add_note("e1", "first")
        second = await store.add_note("e1", "second")
        await store.add_note("e2", "other")

    notes = await store.list_notes("e1")
    assert [n.text for n in notes] == ["second", "first"]
    assert notes[0].user == "guest"

    assert await store.delete_note(first.id) is True
    assert await store.delete_note(first.id) is False
    assert [n.id for n in await store.list_notes("e1")] == [second.id]


@pytest.mark.asyncio
async def test_history_newest_first(store, employee_record):
    await store.replace_all([employee_record])
    timestamps = ["2024-01-01T00:00:00.000Z", "2024-01-02T00:00:00.000Z"]
    with patch("payroll_server.core.audit.utc_timestamp", side_effect=timestamps):
        await store.update_field("e1", SALARY_FIELD, 1)
        await store.update_field("e1", SALARY_FIELD, 2)

    history = await store.list_history()
    assert [h.new_value for h in history] == [2, 1]


@pytest.mark.asyncio
async def test_reset_clears_everything(store, employee_record, tmp_path):
    await store.replace_all([employee_record])
    await store.update_field("e1", SALARY_FIELD, 1)
    await store.add_note("e1", "x")

    await store.reset()

    assert await store.count() == 0
    assert await store.list_history() == []
    assert await store.list_notes("e1") == []
    for name in ("employees.json", "history.json", "notes.json"):
        assert json.loads((tmp_path / "data" / name).read_text(encoding="utf-8")) == []


@pytest.mark.asyncio
async def test_dashboard_stats_from_store(store):
    await store.replace_all([{NAME_FIELD: "a", SALARY_FIELD: 1000}, {NAME_FIELD: "b", SALARY_FIELD: 3000}])
    stats = await store.dashboard_stats()
    assert stats.total_employees == 2
    assert stats.average_salary == 2000
