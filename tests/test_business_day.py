from datetime import datetime, timedelta, timezone

from pos_recap.backend.aggregator.business_day import (
    business_day_key,
    business_day_start,
    business_day_window,
)


def test_sale_after_midnight_counts_for_previous_day(at):
    assert business_day_key(at(2024, 5, 10, 2, 30)).isoformat() == "2024-05-09"


def test_one_minute_before_cutoff_is_previous_day(at):
    assert business_day_key(at(2024, 5, 10, 3, 59)).isoformat() == "2024-05-09"


def test_cutoff_starts_new_business_day(at):
    assert business_day_key(at(2024, 5, 10, 4, 0)).isoformat() == "2024-05-10"


def test_late_evening_stays_on_same_day(at):
    assert business_day_key(at(2024, 5, 10, 23, 59)).isoformat() == "2024-05-10"


def test_utc_instant_is_converted_to_local_time():
    # 20:30 UTC is 03:30 the next morning in Jakarta (UTC+7)
    instant = datetime(2024, 5, 9, 20, 30, tzinfo=timezone.utc)
    assert business_day_key(instant).isoformat() == "2024-05-09"

    instant = datetime(2024, 5, 9, 21, 30, tzinfo=timezone.utc)
    assert business_day_key(instant).isoformat() == "2024-05-10"


def test_naive_datetime_is_treated_as_local():
    assert business_day_key(datetime(2024, 5, 10, 1, 0)).isoformat() == "2024-05-09"


def test_custom_offset(at):
    assert business_day_key(at(2024, 5, 10, 5, 0), offset=timedelta(hours=6)).isoformat() == "2024-05-09"
    assert business_day_key(at(2024, 5, 10, 1, 0), offset=timedelta(0)).isoformat() == "2024-05-10"


def test_same_key_for_instants_in_one_window(at):
    assert business_day_key(at(2024, 5, 9, 4, 0)) == business_day_key(at(2024, 5, 10, 3, 59))
    assert business_day_key(at(2024, 5, 9, 3, 59)) != business_day_key(at(2024, 5, 9, 4, 0))


def test_business_day_window(at):
    start, end = business_day_window(at(2024, 5, 10, 2, 30))
    assert start == at(2024, 5, 9, 4, 0)
    assert end == at(2024, 5, 10, 4, 0)


def test_business_day_start(at):
    day = business_day_key(at(2024, 5, 10, 12, 0))
    assert business_day_start(day) == at(2024, 5, 10, 4, 0)
