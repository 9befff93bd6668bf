from datetime import datetime, timedelta, timezone

from txtrace.core.timestamps import bound_to_nanos, format_bound, parse_bound


def test_bounds_are_formatted_in_utc_whole_seconds() -> None:
    moment = datetime(2023, 1, 1, 3, 30, 15, 999_999, tzinfo=timezone(timedelta(hours=3)))

    assert format_bound(moment) == "2023-01-01T00:30:15Z"


def test_bound_to_nanos_truncates_to_seconds() -> None:
    moment = datetime(2023, 1, 1, 0, 0, 0, 500_000, tzinfo=timezone.utc)

    assert bound_to_nanos(moment) == 1672531200 * 10**9


def test_parse_bound_accepts_zulu_suffix() -> None:
    assert parse_bound("2023-01-02T00:00:00Z") == datetime(2023, 1, 2, tzinfo=timezone.utc)
    assert parse_bound("2023-01-02T03:00:00+03:00") == datetime(2023, 1, 2, tzinfo=timezone.utc)
