# payroll_server/core/fields.py
import math
import re
from datetime import date, datetime, time
from typing import Any, Dict, Optional, Union

FieldValue = Union[str, int, float, None]
EmployeeRecord = Dict[str, Any]

ID_FIELD = "id"

# Identity / categorical columns
CODE_FIELD = "الكود"
NAME_FIELD = "الاسم"
NATIONAL_ID_FIELD = "الرقم القومي"
BRANCH_FIELD = "الفرع"
DEPARTMENT_FIELD = "الإدارة"
SECTOR_FIELD = "القطاع"
JOB_FIELD = "الوظيفة"
HIRE_DATE_FIELD = "تاريخ التعيين"
CONTRACT_TYPE_FIELD = "نوع التعاقد"
STATUS_FIELD = "الحالة"

SALARY_FIELD = "الراتب الشهري"
ADVANCES_FIELD = "السلف"
ALLOWANCES_FIELD = "بدلات"
BONUSES_FIELD = "مكافات"
INCENTIVE_FIELD = "حافز"
OVERTIME_FIELD = "اوفر تايم"

# Field name recorded in history when a whole record is removed
DELETION_FIELD = "حذف"

UNKNOWN_NAME = "غير معروف"

EDITABLE_FIELDS = (
    SALARY_FIELD,
    "عدد",
    "عدد2",
    "عدد4",
    "عدد6",
    ADVANCES_FIELD,
    ALLOWANCES_FIELD,
    BONUSES_FIELD,
    INCENTIVE_FIELD,
    OVERTIME_FIELD,
    "تسويات",
    "كونتست",
    "عمولات رايا",
    "عمولات شركه حالا",
    "عمولات سفن",
    "عمولات الاسكندريه",
    "عمولات كريدي",
    "عمولات ماني",
    "عمولات رايه قانوني",
    "عمولات فاليو قانونى",
    "بلتون قانونى",
    "عمولات تنمية قانونى",
    "عمولات وسيلة قانونى",
    "وسيلة 10",
    "وسيلة 9",
    "تنمية",
    "عمولات ميد قانوني",
    "ميد بنك",
    "ارادة",
    "عمولة سهولة قانوني",
)
EDITABLE_FIELD_SET = frozenset(EDITABLE_FIELDS)

COMMISSION_FIELDS = (
    "عمولات رايا",
    "عمولات شركه حالا",
    "عمولات سفن",
    "عمولات الاسكندريه",
    "عمولات كريدي",
    "عمولات ماني",
    "عمولات رايه قانوني",
    "عمولات فاليو قانونى",
    "بلتون قانونى",
    "عمولات تنمية قانونى",
    "عمولات وسيلة قانونى",
    "عمولات ميد قانوني",
    "عمولة سهولة قانوني",
)

ALLOWANCE_FIELDS = (ALLOWANCES_FIELD, BONUSES_FIELD, INCENTIVE_FIELD)

# Fields an import may join on
KEY_FIELDS = (CODE_FIELD, NATIONAL_ID_FIELD)

SEARCH_FIELDS = (NAME_FIELD, CODE_FIELD, NATIONAL_ID_FIELD, BRANCH_FIELD, DEPARTMENT_FIELD)

# Header names of the monthly payroll workbook used to seed an empty store.
# Blank header cells are read as __EMPTY, __EMPTY_1, ... (see spreadsheet.read_rows).
SEED_COLUMN_MAP = {
    "__EMPTY": CODE_FIELD,
    "__EMPTY_1": NAME_FIELD,
    "__EMPTY_2": BRANCH_FIELD,
    "__EMPTY_3": DEPARTMENT_FIELD,
    "__EMPTY_4": SECTOR_FIELD,
    "__EMPTY_5": JOB_FIELD,
    "__EMPTY_6": HIRE_DATE_FIELD,
    "__EMPTY_7": "تاريخ انتهاء العقد",
    "__EMPTY_8": NATIONAL_ID_FIELD,
    "__EMPTY_9": "معامل الراتب",
    "__EMPTY_10": SALARY_FIELD,
    "__EMPTY_11": "زيادة",
    "__EMPTY_12": "اخرى",
    "__EMPTY_13": "إجمالي الراتب",
    "__EMPTY_14": "الراتب التأميني",
    "__EMPTY_15": "حصة التأمينات",
    "__EMPTY_16": "ضريبة كسب العمل",
    "__EMPTY_17": "بدل انتقال",
    "__EMPTY_18": ALLOWANCES_FIELD,
    "__EMPTY_19": "إجمالي السنوي",
    "__EMPTY_20": "مكافأة سنوية",
    "__EMPTY_21": "شهري",
    "__EMPTY_22": "صافي الراتب",
    "__EMPTY_23": "اليومي",
    "جزاءات": "جزاءات",
    "__EMPTY_24": "قيمة الجزاءات",
    "غياب ": "غياب",
    "__EMPTY_25": "قيمة الغياب",
    "إجازة بالخصم": "إجازة بالخصم",
    "__EMPTY_26": "قيمة إجازة بالخصم",
    "انصراف مبكر": "انصراف مبكر",
    "__EMPTY_27": "قيمة انصراف مبكر",
    "تأخير ": "تأخير",
    "__EMPTY_28": "قيمة التأخير",
    "سلف": ADVANCES_FIELD,
    "__EMPTY_29": "إجمالي الخصومات",
    "__EMPTY_30": "صافي المستحق",
    "__EMPTY_31": "أوفر تايم ساعات",
    "__EMPTY_32": "مكافآت",
    "__EMPTY_33": "حوافز",
    "__EMPTY_34": "بدل حضور",
    "__EMPTY_35": "بدل ورادي",
    "__EMPTY_36": "بدل اضافي",
    **{f"__EMPTY_{37 + i}": f"عمولة {i + 1}" for i in range(18)},
    "__EMPTY_55": "إجمالي العمولات",
    "__EMPTY_56": "إجمالي الإضافات",
    "__EMPTY_57": "تأمينات تراكمية",
    "__EMPTY_58": "تأمين سنوي",
    "__EMPTY_59": "ضريبة تراكمية",
    "__EMPTY_60": "بدل انتقال تراكمي",
    "__EMPTY_61": "بدلات تراكمية",
    "__EMPTY_62": "إجمالي سنوي تراكمي",
    "__EMPTY_63": "مكافأة سنوية تراكمية",
    "__EMPTY_64": "شهري تراكمي",
    "__EMPTY_65": "زيادة شهري",
    "__EMPTY_66": "صافي المستحق النهائي",
    "__EMPTY_67": "ملاحظات",
    "__EMPTY_68": "ملاحظات 2",
    "__EMPTY_69": "المبلغ المستحق",
    "__EMPTY_70": "طريقة الصرف",
}

_NUMERIC_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def is_editable(field: str) -> bool:
    return field in EDITABLE_FIELD_SET


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def coerce_number(raw: Any) -> Optional[float]:
    """Coerce a raw spreadsheet cell into a payroll amount.

    Empty or missing cells become None. Numbers pass through. Text is read
    the way a spreadsheet reads it: the longest leading numeric prefix wins,
    so "1500 EGP" is 1500. Text without a numeric prefix becomes NaN, which
    never compares equal to anything and is stored as null.
    """
    if raw is None or raw == "":
        return None
    if is_number(raw):
        return raw
    match = _NUMERIC_PREFIX.match(str(raw))
    if not match:
        return math.nan
    value = float(match.group(0))
    return int(value) if value.is_integer() else value


def coerce_field(field: str, raw: Any) -> Any:
    if is_editable(field):
        return coerce_number(raw)
    return raw


def clean_value(value: Any) -> Any:
    """Replace non-finite floats with None so records stay JSON-safe."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def clean_record(record: EmployeeRecord) -> EmployeeRecord:
    return {key: clean_value(value) for key, value in record.items()}


def format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def key_text(value: Any) -> str:
    """String form of a join-key value; falsy values yield an empty key."""
    if not value:
        return ""
    return format_value(value)


def display_name(record: EmployeeRecord) -> Optional[str]:
    value = record.get(NAME_FIELD) or record.get(CODE_FIELD)
    if not value:
        return None
    return format_value(value)


def cell_to_value(value: Any) -> Any:
    """Normalize a spreadsheet cell to a JSON-friendly scalar."""
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value
