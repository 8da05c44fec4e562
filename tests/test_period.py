from datetime import date

import pytest

from pos_recap.backend.aggregator import Granularity, PeriodFilter, filter_transactions


def _ids(records):
    return [record.id for record in records]


def test_daily_uses_business_day_of_reference(at, make_record):
    records = [
        make_record(at(2024, 5, 9, 10, 0), record_id="day-before-morning"),
        make_record(at(2024, 5, 10, 3, 0), record_id="after-midnight"),
        make_record(at(2024, 5, 10, 5, 0), record_id="next-business-day"),
        make_record(at(2024, 5, 9, 3, 0), record_id="two-days-back"),
    ]

    filtered = filter_transactions(records, "daily", at(2024, 5, 10, 2, 30))

    assert _ids(filtered) == ["day-before-morning", "after-midnight"]


def test_monthly_uses_calendar_month_without_offset(at, make_record):
    records = [
        make_record(at(2024, 5, 1, 1, 0), record_id="may-first-night"),
        make_record(at(2024, 5, 31, 23, 0), record_id="may-last"),
        make_record(at(2024, 6, 1, 2, 0), record_id="june-first-night"),
        make_record(at(2023, 5, 15), record_id="last-year"),
    ]

    filtered = filter_transactions(records, Granularity.MONTHLY, at(2024, 5, 20))

    assert _ids(filtered) == ["may-first-night", "may-last"]


def test_yearly_uses_calendar_year(at, make_record):
    records = [
        make_record(at(2024, 1, 1, 1, 0), record_id="new-year-night"),
        make_record(at(2023, 12, 31, 23, 0), record_id="old-year"),
        make_record(at(2024, 12, 31, 23, 59), record_id="year-end"),
    ]

    filtered = filter_transactions(records, "yearly", at(2024, 7, 1))

    assert _ids(filtered) == ["new-year-night", "year-end"]


@pytest.mark.parametrize("granularity", ["daily", "monthly", "yearly"])
def test_records_without_timestamp_are_excluded(at, make_record, granularity):
    records = [
        make_record(None, record_id="missing"),
        make_record(at(2024, 5, 10, 12, 0), record_id="ok"),
    ]

    filtered = filter_transactions(records, granularity, at(2024, 5, 10, 13, 0))

    assert _ids(filtered) == ["ok"]


def test_relative_order_is_preserved(at, make_record):
    records = [
        make_record(at(2024, 5, 10, 20, 0), record_id="c"),
        make_record(at(2024, 5, 10, 8, 0), record_id="a"),
        make_record(at(2024, 5, 10, 14, 0), record_id="b"),
    ]

    filtered = filter_transactions(records, "daily", at(2024, 5, 10, 12, 0))

    assert _ids(filtered) == ["c", "a", "b"]


def test_empty_input_gives_empty_result(at):
    assert filter_transactions([], "monthly", at(2024, 5, 10)) == []


def test_unknown_granularity_fails_fast(at):
    with pytest.raises(ValueError):
        PeriodFilter("weekly", at(2024, 5, 10))


def test_reference_must_be_datetime():
    with pytest.raises(TypeError):
        PeriodFilter("daily", date(2024, 5, 10))


def test_filter_is_reusable(at, make_record):
    period_filter = PeriodFilter("daily", at(2024, 5, 10, 12, 0))
    records = [make_record(at(2024, 5, 10, 9, 0))]

    assert period_filter.apply(records) == period_filter.apply(records)
