import pytest

from budget_ledger.periods import (
    add_months,
    clamp_day_of_month,
    compare_period_keys,
    current_period_key,
    days_in_month,
    format_date,
    is_period_key,
    parse_period_key,
    period_of_date,
    period_range,
)
from datetime import date


def test_clamp_day_handles_february():
    assert clamp_day_of_month(31, 2025, 2) == 28
    assert clamp_day_of_month(31, 2024, 2) == 29
    assert clamp_day_of_month(30, 2025, 4) == 30
    assert clamp_day_of_month(15, 2025, 2) == 15


def test_days_in_month_century_rules():
    assert days_in_month(1900, 2) == 28
    assert days_in_month(2000, 2) == 29


def test_add_months_crosses_year_boundaries():
    assert add_months('2025-11', 2) == '2026-01'
    assert add_months('2025-01', -1) == '2024-12'
    assert add_months('2025-01', 12) == '2026-01'


def test_period_range_is_inclusive():
    assert period_range('2024-11', '2025-02') == ['2024-11', '2024-12', '2025-01', '2025-02']
    assert period_range('2025-03', '2025-01') == []


def test_parse_rejects_malformed_keys():
    assert parse_period_key('2025-02') == (2025, 2)
    for bad in ['2025-2', '2025-13', '25-01', '', '2025/01']:
        assert not is_period_key(bad)
        with pytest.raises(ValueError):
            parse_period_key(bad)


def test_format_date_and_period_of_date():
    assert format_date('2025-03', 5) == '2025-03-05'
    assert period_of_date('2025-03-05') == '2025-03'
    assert period_of_date(date(2024, 12, 31)) == '2024-12'
    assert current_period_key(date(2025, 7, 4)) == '2025-07'


def test_compare_period_keys_orders_chronologically():
    assert compare_period_keys('2024-12', '2025-01') == -1
    assert compare_period_keys('2025-01', '2025-01') == 0
    assert compare_period_keys('2025-10', '2025-09') == 1
