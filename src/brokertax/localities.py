from __future__ import annotations

import datetime as dt


def get_russian_stock_exchange_min_last_working_day(today: dt.date) -> dt.date:
    """The earliest date that may still be the last working day before ``today``."""
    # New Year holidays
    if today.month == 1 and today.day < 12:
        return max(today - dt.timedelta(days=10), dt.date(today.year - 1, 12, 30))
    # 8 March holidays
    if today.month == 3 and today.day == 12:
        return today - dt.timedelta(days=4)
    # May holidays
    if today.month == 5 and 3 <= today.day <= 13:
        return today - dt.timedelta(days=5)
    # COVID-19 non-working days
    if today.year == 2020 and today.month == 4 and today.day <= 6:
        return dt.date(2020, 3, 28)
    return today - dt.timedelta(days=3)


def is_valid_execution_date(conclusion: dt.date, execution: dt.date) -> bool:
    """Check that execution happens within the T+2 settlement window."""
    expected_execution = conclusion + dt.timedelta(days=2)
    return (
        conclusion <= execution
        and get_russian_stock_exchange_min_last_working_day(execution)
        <= expected_execution
    )


def nearest_possible_account_close_date(today: dt.date | None = None) -> dt.date:
    execution_date = (today or dt.date.today()) + dt.timedelta(days=2)

    close_date = execution_date
    while get_russian_stock_exchange_min_last_working_day(close_date) < execution_date:
        close_date += dt.timedelta(days=1)
    return close_date
