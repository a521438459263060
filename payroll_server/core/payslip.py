# payroll_server/core/payslip.py
from datetime import date
from html import escape
from typing import Optional

from payroll_server.core.dashboard import amount
from payroll_server.core.fields import (
    ADVANCES_FIELD,
    ALLOWANCES_FIELD,
    BONUSES_FIELD,
    BRANCH_FIELD,
    CODE_FIELD,
    DEPARTMENT_FIELD,
    INCENTIVE_FIELD,
    JOB_FIELD,
    NAME_FIELD,
    OVERTIME_FIELD,
    SALARY_FIELD,
    SECTOR_FIELD,
    EmployeeRecord,
    format_value,
)

ARABIC_MONTHS = (
    "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
    "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
)

CURRENCY = "ج.م"

EARNINGS = (
    ("الراتب الشهري", SALARY_FIELD),
    ("البدلات", ALLOWANCES_FIELD),
    ("المكافآت", BONUSES_FIELD),
    ("الحافز", INCENTIVE_FIELD),
    ("أوفر تايم", OVERTIME_FIELD),
)

DEDUCTIONS = (
    ("السلف", ADVANCES_FIELD),
)

INFO_FIELDS = (CODE_FIELD, NAME_FIELD, BRANCH_FIELD, DEPARTMENT_FIELD, JOB_FIELD, SECTOR_FIELD)

STYLE = """
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: 'Cairo', sans-serif; padding: 40px; background: #f5f5f5; }
    .payslip { max-width: 800px; margin: 0 auto; background: white; padding: 40px; border-radius: 8px; }
    .header { text-align: center; margin-bottom: 30px; border-bottom: 2px solid #333; padding-bottom: 20px; }
    .info-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; margin-bottom: 30px; }
    .info-item { padding: 12px; background: #f9f9f9; border-radius: 6px; }
    .info-item label { font-size: 12px; color: #666; display: block; margin-bottom: 4px; }
    .section { margin-bottom: 24px; }
    .table { width: 100%; border-collapse: collapse; }
    .table th, .table td { padding: 10px 12px; text-align: right; border-bottom: 1px solid #eee; }
    .table td:last-child { text-align: left; font-family: monospace; }
    .total { font-size: 18px; font-weight: 700; margin-top: 20px; padding: 16px; background: #f0f7ff;
             display: flex; justify-content: space-between; }
    @media print { body { background: white; padding: 0; } }
"""


def money(value: float) -> str:
    text = f"{value:,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    return f"{text} {CURRENCY}"


def month_label(day: date) -> str:
    return f"{ARABIC_MONTHS[day.month - 1]} {day.year}"


def net_pay(record: EmployeeRecord) -> float:
    earnings = sum(amount(record, field) for _, field in EARNINGS)
    deductions = sum(amount(record, field) for _, field in DEDUCTIONS)
    return earnings - deductions


def _info_item(record: EmployeeRecord, field: str) -> str:
    value = record.get(field)
    text = format_value(value) if value else "-"
    return f'<div class="info-item"><label>{escape(field)}</label><span>{escape(text)}</span></div>'


def _rows(record: EmployeeRecord, lines) -> str:
    return "".join(
        f"<tr><td>{escape(label)}</td><td>{money(amount(record, field))}</td></tr>" for label, field in lines
    )


def render_payslip(record: EmployeeRecord, on: Optional[date] = None) -> str:
    """Printable right-to-left HTML payslip for one employee."""
    on = on or date.today()
    name = record.get(NAME_FIELD)
    title = escape(format_value(name)) if name else ""
    info = "".join(_info_item(record, field) for field in INFO_FIELDS)

    return f"""<!DOCTYPE html>
<html lang="ar" dir="rtl">
<head>
  <meta charset="UTF-8">
  <title>قسيمة راتب - {title}</title>
  <link href="https://fonts.googleapis.com/css2?family=Cairo:wght@400;600;700&display=swap" rel="stylesheet">
  <style>{STYLE}</style>
</head>
<body>
  <div class="payslip">
    <div class="header">
      <h1>قسيمة راتب</h1>
      <p>شهر {month_label(on)}</p>
    </div>
    <div class="info-grid">{info}</div>
    <div class="section">
      <h3>تفاصيل الراتب</h3>
      <table class="table"><tr><th>البند</th><th>القيمة</th></tr>{_rows(record, EARNINGS)}</table>
    </div>
    <div class="section">
      <h3>الخصومات</h3>
      <table class="table"><tr><th>البند</th><th>القيمة</th></tr>{_rows(record, DEDUCTIONS)}</table>
    </div>
    <div class="total"><span>إجمالي المستحق</span><span>{money(net_pay(record))}</span></div>
  </div>
  <script>window.print();</script>
</body>
</html>
"""
