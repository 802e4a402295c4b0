from datetime import date, time

import pytest

from helpers import DAY
from pointbook.errors import ValidationException
from pointbook.services.slots import BookingConfig, get_window, parse_date
from pointbook.services.slots.config import minutes_to_time_str, time_str_to_minutes
from pointbook.services.slots.schedule import delete_override, list_overrides, set_override


def test_default_window_without_override(db):
    window = get_window(db, DAY, BookingConfig())

    assert window.open_time == time(10, 0)
    assert window.close_time == time(18, 0)
    assert window.is_closed is False
    assert window.is_default is True


def test_window_accepts_iso_string(db):
    assert get_window(db, "2031-03-10", BookingConfig()).date == DAY


def test_stored_override_wins(db, seed):
    seed.override(DAY, time(9, 0), time(13, 30))

    window = get_window(db, DAY, BookingConfig())

    assert (window.open_time, window.close_time) == (time(9, 0), time(13, 30))
    assert window.open_minutes == 540
    assert window.close_minutes == 810
    assert window.is_default is False


def test_closed_override(db, seed):
    seed.override(DAY, time(10, 0), time(18, 0), is_closed=True)

    assert get_window(db, DAY, BookingConfig()).is_closed is True


@pytest.mark.parametrize("value", ["2031-13-01", "tomorrow", "", "10/03/2031"])
def test_malformed_date_is_rejected(db, value):
    with pytest.raises(ValidationException):
        get_window(db, value)


def test_set_override_upserts(db):
    set_override(db, DAY, time(11, 0), time(16, 0), is_closed=False, config=BookingConfig())
    db.commit()
    set_override(db, DAY, time(12, 0), time(14, 0), is_closed=False, config=BookingConfig())
    db.commit()

    overrides = list_overrides(db, DAY, DAY)
    assert len(overrides) == 1
    assert overrides[0].open_time == time(12, 0)


def test_closed_override_keeps_default_hours(db):
    obj = set_override(db, DAY, None, None, is_closed=True, config=BookingConfig())

    assert obj.open_time == time(10, 0)
    assert obj.close_time == time(18, 0)


def test_inverted_hours_are_rejected(db):
    with pytest.raises(ValidationException):
        set_override(db, DAY, time(15, 0), time(12, 0), is_closed=False, config=BookingConfig())


def test_delete_override_reverts_to_default(db, seed):
    seed.override(DAY, time(12, 0), time(14, 0))

    assert delete_override(db, DAY) is True
    db.commit()

    assert get_window(db, DAY, BookingConfig()).is_default is True
    assert delete_override(db, DAY) is False


def test_list_overrides_range(db, seed):
    seed.override(date(2031, 3, 9), time(10, 0), time(12, 0))
    seed.override(DAY, time(10, 0), time(12, 0))
    seed.override(date(2031, 3, 20), time(10, 0), time(12, 0))

    dates = [o.date for o in list_overrides(db, date(2031, 3, 16), DAY)]

    assert dates == [DAY]


def test_parse_date_passthrough():
    assert parse_date(DAY) == DAY


def test_time_helpers():
    assert time_str_to_minutes("17:30") == 1050
    assert minutes_to_time_str(1050) == "17:30"
    with pytest.raises(ValidationException):
        time_str_to_minutes("25:00")


def test_booking_config_validation():
    with pytest.raises(ValueError):
        BookingConfig(slot_step_minutes=20)
    with pytest.raises(ValueError):
        BookingConfig(default_open_minutes=1080, default_close_minutes=600)
