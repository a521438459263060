import math
from datetime import date, datetime

from payroll_server.core.fields import (
    CODE_FIELD,
    NAME_FIELD,
    SALARY_FIELD,
    cell_to_value,
    clean_record,
    coerce_field,
    coerce_number,
    display_name,
    is_editable,
    key_text,
)


def test_coerce_number_empty_values():
    assert coerce_number(None) is None
    assert coerce_number("") is None


def test_coerce_number_numbers_pass_through():
    assert coerce_number(5000) == 5000
    assert coerce_number(12.5) == 12.5


def test_coerce_number_parses_leading_prefix():
    assert coerce_number("5500") == 5500
    assert isinstance(coerce_number("5500"), int)
    assert coerce_number("12.75") == 12.75
    assert coerce_number(" 1500 EGP") == 1500
    assert coerce_number("-20") == -20


def test_coerce_number_text_becomes_nan():
    assert math.isnan(coerce_number("abc"))


def test_coerce_field_only_touches_editable_fields():
    assert coerce_field(SALARY_FIELD, "100") == 100
    assert coerce_field(CODE_FIELD, "100") == "100"


def test_is_editable():
    assert is_editable(SALARY_FIELD)
    assert not is_editable(NAME_FIELD)
    assert not is_editable("id")


def test_clean_record_drops_nan():
    record = clean_record({SALARY_FIELD: math.nan, CODE_FIELD: "1"})
    assert record == {SALARY_FIELD: None, CODE_FIELD: "1"}


def test_key_text():
    assert key_text("100") == "100"
    assert key_text(100) == "100"
    assert key_text(100.0) == "100"
    assert key_text(0) == ""
    assert key_text(None) == ""


def test_display_name_falls_back_to_code():
    assert display_name({NAME_FIELD: "سارة", CODE_FIELD: "7"}) == "سارة"
    assert display_name({CODE_FIELD: 7}) == "7"
    assert display_name({}) is None


def test_cell_to_value_dates():
    assert cell_to_value(datetime(2024, 1, 15)) == "2024-01-15"
    assert cell_to_value(datetime(2024, 1, 15, 9, 30)) == "2024-01-15T09:30:00"
    assert cell_to_value(date(2024, 2, 1)) == "2024-02-01"
    assert cell_to_value("x") == "x"
