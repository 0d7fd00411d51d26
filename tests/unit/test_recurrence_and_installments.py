from datetime import date

import pytest

from clinic.services.installments import build_schedule, split_amount
from clinic.services.recurrence import generate_dates


def test_daily_with_interval():
    dates = generate_dates(frequency="DAILY", start_date=date(2025, 1, 1), interval=3, occurrences=3)
    assert dates == [date(2025, 1, 1), date(2025, 1, 4), date(2025, 1, 7)]


def test_weekly_on_selected_days():
    # 2025-01-06 is a Monday; 1 = Monday, 3 = Wednesday
    dates = generate_dates(
        frequency="WEEKLY", start_date=date(2025, 1, 6), days_of_week=[1, 3], occurrences=4
    )
    assert dates == [date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 13), date(2025, 1, 15)]


def test_weekly_interval_skips_weeks():
    dates = generate_dates(
        frequency="WEEKLY", start_date=date(2025, 1, 6), interval=2, days_of_week=[1, 3], occurrences=4
    )
    assert dates == [date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 20), date(2025, 1, 22)]


def test_biweekly_defaults_to_start_weekday():
    dates = generate_dates(frequency="BIWEEKLY", start_date=date(2025, 1, 8), occurrences=3)
    assert dates == [date(2025, 1, 8), date(2025, 1, 22), date(2025, 2, 5)]


def test_biweekly_counts_weeks_from_the_start_date():
    # 2026-10-24 is a Saturday; the following Sunday is still in week zero
    dates = generate_dates(frequency="BIWEEKLY", start_date=date(2026, 10, 24), days_of_week=[0], occurrences=3)
    assert dates == [date(2026, 10, 25), date(2026, 11, 8), date(2026, 11, 22)]


def test_weekly_interval_counts_weeks_from_the_start_date():
    dates = generate_dates(
        frequency="WEEKLY", start_date=date(2026, 10, 24), interval=2, days_of_week=[0, 6], occurrences=4
    )
    assert dates == [date(2026, 10, 24), date(2026, 10, 25), date(2026, 11, 7), date(2026, 11, 8)]


def test_monthly_skips_months_without_the_day():
    dates = generate_dates(frequency="MONTHLY", start_date=date(2025, 1, 31), occurrences=3)
    assert dates == [date(2025, 1, 31), date(2025, 3, 31), date(2025, 5, 31)]


def test_end_date_is_inclusive():
    dates = generate_dates(frequency="DAILY", start_date=date(2025, 1, 1), end_date=date(2025, 1, 3))
    assert dates == [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]


def test_generation_is_capped():
    dates = generate_dates(frequency="DAILY", start_date=date(2025, 1, 1), occurrences=500)
    assert len(dates) == 52
    weekly = generate_dates(
        frequency="WEEKLY", start_date=date(2025, 1, 1), days_of_week=[3], end_date=date(2030, 1, 1)
    )
    assert len(weekly) == 52
    assert (weekly[-1] - weekly[0]).days <= 365


def test_unknown_frequency():
    with pytest.raises(ValueError):
        generate_dates(frequency="YEARLY", start_date=date(2025, 1, 1), occurrences=2)


def test_split_amount_puts_remainder_last():
    assert split_amount(100, 3) == [33.33, 33.33, 33.34]
    assert split_amount(90, 3) == [30.0, 30.0, 30.0]
    assert split_amount(50, 1) == [50]
    assert round(sum(split_amount(1234.56, 7)), 2) == 1234.56


def test_split_amount_requires_one_part():
    with pytest.raises(ValueError):
        split_amount(100, 0)


def test_build_schedule_monthly_steps_thirty_days():
    schedule = build_schedule(300, 3, date(2025, 1, 10), "MONTHLY")
    assert [i["number"] for i in schedule] == [1, 2, 3]
    assert [i["due_date"] for i in schedule] == [date(2025, 1, 10), date(2025, 2, 9), date(2025, 3, 11)]
    assert all(i["status"] == "PENDING" for i in schedule)
    assert sum(i["amount"] for i in schedule) == 300


def test_build_schedule_weekly():
    schedule = build_schedule(100, 2, date(2025, 1, 1), "WEEKLY")
    assert [i["due_date"] for i in schedule] == [date(2025, 1, 1), date(2025, 1, 8)]
    assert [i["amount"] for i in schedule] == [50.0, 50.0]
