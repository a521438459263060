import pytest

from payroll_server.core.fields import BRANCH_FIELD, CODE_FIELD, NAME_FIELD, NATIONAL_ID_FIELD, SALARY_FIELD
from payroll_server.core.query import filter_records, paginate, run_query, sort_records
from payroll_server.schemas.schema import EmployeeQuery


@pytest.fixture
def records():
    return [
        {"id": "1", CODE_FIELD: "100", NAME_FIELD: "Ahmed Ali", BRANCH_FIELD: "القاهرة", SALARY_FIELD: 3000},
        {"id": "2", CODE_FIELD: "101", NAME_FIELD: "Mona", BRANCH_FIELD: "الجيزة", SALARY_FIELD: None},
        {"id": "3", CODE_FIELD: "102", NAME_FIELD: "karim", BRANCH_FIELD: "القاهرة", SALARY_FIELD: 1000},
        {"id": "4", CODE_FIELD: "203", NAME_FIELD: "Salma", NATIONAL_ID_FIELD: "29801011234567"},
        {"id": "5", CODE_FIELD: "204", NAME_FIELD: "Omar", BRANCH_FIELD: "الجيزة", SALARY_FIELD: 2000},
    ]


def ids(records):
    return [r["id"] for r in records]


def test_nulls_sort_last_ascending(records):
    result = sort_records(records, SALARY_FIELD)
    assert ids(result) == ["3", "5", "1", "2", "4"]


def test_nulls_sort_last_descending(records):
    result = sort_records(records, SALARY_FIELD, descending=True)
    assert ids(result) == ["1", "5", "3", "2", "4"]


def test_text_sort_ignores_case(records):
    result = sort_records(records, NAME_FIELD)
    assert [r[NAME_FIELD] for r in result] == ["Ahmed Ali", "karim", "Mona", "Omar", "Salma"]


def test_arabic_text_sort():
    rows = [{"id": "a", NAME_FIELD: "تامر"}, {"id": "b", NAME_FIELD: "أحمد"}, {"id": "c", NAME_FIELD: "بسمة"}]
    assert ids(sort_records(rows, NAME_FIELD)) == ["b", "c", "a"]


def test_sort_is_stable_for_equal_values():
    rows = [{"id": "a", SALARY_FIELD: 1}, {"id": "b", SALARY_FIELD: 1}, {"id": "c", SALARY_FIELD: 0}]
    assert ids(sort_records(rows, SALARY_FIELD)) == ["c", "a", "b"]
    assert ids(sort_records(rows, SALARY_FIELD, descending=True)) == ["a", "b", "c"]


def test_search_is_case_insensitive(records):
    query = EmployeeQuery(search="AHMED")
    assert ids(filter_records(records, query)) == ["1"]

    query = EmployeeQuery(search="KARIM")
    assert ids(filter_records(records, query)) == ["3"]


def test_search_matches_code_national_id_and_branch(records):
    assert ids(filter_records(records, EmployeeQuery(search="20"))) == ["4", "5"]
    assert ids(filter_records(records, EmployeeQuery(search="29801"))) == ["4"]
    assert ids(filter_records(records, EmployeeQuery(search="الجيزة"))) == ["2", "5"]


def test_branch_filter_and_all(records):
    assert ids(filter_records(records, EmployeeQuery(branch="القاهرة"))) == ["1", "3"]
    assert ids(filter_records(records, EmployeeQuery(branch="all"))) == ids(records)


def test_pagination_total_pages(records):
    page = paginate(records, 1, 2)
    assert page.total == 5
    assert page.total_pages == 3
    assert ids(page.data) == ["1", "2"]


def test_pagination_of_empty_set_has_one_page():
    page = paginate([], 1, 10)
    assert page.total == 0
    assert page.total_pages == 1
    assert page.data == []


def test_pages_concatenate_to_the_filtered_sorted_set(records):
    expected = ids(filter_records(records, EmployeeQuery(sort_field=SALARY_FIELD, sort_direction="desc")))
    collected = []
    for number in range(1, 4):
        query = EmployeeQuery(page=number, limit=2, sort_field=SALARY_FIELD, sort_direction="desc")
        collected.extend(ids(run_query(records, query).data))
    assert collected == expected


def test_page_data_is_a_copy(records):
    page = paginate(records, 1, 1)
    page.data[0][SALARY_FIELD] = 1
    assert records[0][SALARY_FIELD] == 3000
