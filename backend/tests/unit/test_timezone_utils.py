from datetime import date, datetime, time, timezone

from classbook.core.timezone_utils import class_start_datetime, hours_until


def test_class_start_is_converted_from_school_time():
    # Riga is UTC+3 in summer and UTC+2 in winter
    assert class_start_datetime(date(2030, 7, 1), time(18, 0)) == datetime(
        2030, 7, 1, 15, 0, tzinfo=timezone.utc
    )
    assert class_start_datetime(date(2030, 1, 15), time(18, 0)) == datetime(
        2030, 1, 15, 16, 0, tzinfo=timezone.utc
    )


def test_hours_until():
    start = datetime(2030, 1, 2, 12, 0, tzinfo=timezone.utc)
    now = datetime(2030, 1, 1, 12, 30, tzinfo=timezone.utc)
    assert hours_until(start, now) == 23.5
