from datetime import date, datetime, timedelta
from decimal import Decimal

from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord
from src.attendance_payroll.attendance_payroll.core.settings import PayrollRules
from src.attendance_payroll.attendance_payroll.payroll.calculator.overtime_calculator import OvertimePayrollCalculator


def records(hours_per_day, start=date(2025, 3, 3)):
    out = []
    for i, hours in enumerate(hours_per_day):
        day = start + timedelta(days=i)
        clock_in = datetime(day.year, day.month, day.day, 8, 0)
        out.append(
            AttendanceRecord(
                record_id=f"r{i}",
                employee_id="E1",
                work_date=day,
                clock_in=clock_in,
                clock_out=clock_in + timedelta(hours=hours),
                total_hours=hours,
                transaction_id=f"tx{i}",
            )
        )
    return out


def test_nine_hour_day_splits_into_eight_plus_one():
    calc = OvertimePayrollCalculator(PayrollRules())

    day = calc.split_day(date(2025, 3, 3), Decimal("9"))

    assert day.regular_hours == Decimal("8.00")
    assert day.overtime_hours == Decimal("1.00")


def test_gross_pay_uses_overtime_multiplier():
    calc = OvertimePayrollCalculator(PayrollRules())

    standard_pay, overtime_pay, gross = calc.gross_pay(Decimal("80"), Decimal("5"), Decimal("10.00"))

    assert (standard_pay, overtime_pay) == (Decimal("800.00"), Decimal("75.00"))
    assert gross == Decimal("875.00")


def test_period_calculation_without_weekly_cap():
    calc = OvertimePayrollCalculator(PayrollRules(weekly_threshold=Decimal("1000")))

    result = calc.calculate("E1", records([8.5] * 10), Decimal("10.00"))

    assert result.standard_hours == Decimal("80.00")
    assert result.overtime_hours == Decimal("5.00")
    assert result.overtime_rate == Decimal("15.00")
    assert result.gross_pay == Decimal("875.00")
    assert len(result.daily_hours) == 10


def test_weekly_cap_moves_excess_regular_hours_to_overtime():
    calc = OvertimePayrollCalculator(PayrollRules())

    # 6 days x 8h: no daily overtime, 48h total -> 8h above the weekly threshold.
    result = calc.calculate("E1", records([8] * 6), Decimal("10.00"))

    assert result.standard_hours == Decimal("40.00")
    assert result.overtime_hours == Decimal("8.00")
    assert result.reallocated_hours == Decimal("8.00")
    assert result.gross_pay == Decimal("520.00")


def test_incomplete_records_contribute_no_hours():
    calc = OvertimePayrollCalculator(PayrollRules())
    rows = records([8])
    rows.append(
        AttendanceRecord(
            record_id="open",
            employee_id="E1",
            work_date=date(2025, 3, 4),
            clock_in=datetime(2025, 3, 4, 8, 0),
            clock_out=None,
            total_hours=None,
            transaction_id="tx-open",
        )
    )

    result = calc.calculate("E1", rows, Decimal("12.50"))

    assert result.standard_hours == Decimal("8.00")
    assert result.gross_pay == Decimal("100.00")


def test_money_rounds_half_up():
    calc = OvertimePayrollCalculator(PayrollRules())

    # 8.12h x 12.35 = 100.282; 10.01 x 1.5 = 15.015
    assert calc.gross_pay(Decimal("8.12"), Decimal("0"), Decimal("12.35"))[2] == Decimal("100.28")
    assert calc.overtime_rate(Decimal("10.01")) == Decimal("15.02")


def test_overtime_pay_uses_unrounded_overtime_rate():
    calc = OvertimePayrollCalculator(PayrollRules())

    # 10h day at 10.33: 8 x 10.33 + 2 x 15.495 = 82.64 + 30.99
    result = calc.calculate("E1", records([10]), Decimal("10.33"))

    assert result.overtime_rate == Decimal("15.50")
    assert result.standard_pay == Decimal("82.64")
    assert result.overtime_pay == Decimal("30.99")
    assert result.gross_pay == Decimal("113.63")
