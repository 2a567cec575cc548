from datetime import date, datetime, time

import pytest

from dentalcare.errors import NotFoundError, ValidationError
from dentalcare.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_SUGGESTED
from dentalcare.models.blocked_date import BlockedDate
from dentalcare.scheduling.intervals import Interval, merge_intervals
from dentalcare.services.availability import (
    compute_availability,
    is_interval_free,
    resolve_duration,
    weekday_index,
)

NOW = datetime(2030, 1, 1, 8, 0)
MONDAY = date(2030, 1, 7)


def _at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def test_weekday_index_counts_from_sunday() -> None:
    assert weekday_index(date(2030, 1, 6)) == 0
    assert weekday_index(MONDAY) == 1
    assert weekday_index(date(2030, 1, 12)) == 6


def test_day_without_working_hours_has_no_availability(db, dentist, monday_hours) -> None:
    result = compute_availability(db, dentist.id, date(2030, 1, 6), 30, now=NOW)

    assert result.open_intervals == []
    assert result.free_intervals == []
    assert result.slot_starts == []


def test_booked_appointment_is_removed_from_free_time(
    db, dentist, patient, service, monday_hours, add_appointment
) -> None:
    add_appointment(patient, dentist, service, _at(10), 30)

    result = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert result.free_intervals == [
        Interval(_at(9), _at(10)),
        Interval(_at(10, 30), _at(12)),
    ]
    assert result.slot_starts == [_at(9), _at(9, 30), _at(10, 30), _at(11), _at(11, 30)]
    assert result.occupied_intervals == [Interval(_at(10), _at(10, 30))]


def test_free_and_occupied_time_partition_the_open_hours(
    db, dentist, patient, service, monday_hours, add_appointment
) -> None:
    add_appointment(patient, dentist, service, _at(9, 30), 45)
    add_appointment(patient, dentist, service, _at(11), 15)

    result = compute_availability(db, dentist.id, MONDAY, 15, now=NOW)

    assert merge_intervals(result.free_intervals + result.occupied_intervals) == result.open_intervals
    for free in result.free_intervals:
        assert not any(free.overlaps(occupied) for occupied in result.occupied_intervals)


def test_free_appointments_and_partial_block_partition_the_working_day(
    db, dentist, patient, service, monday_hours, add_appointment
) -> None:
    db.add(BlockedDate(
        dentist_id=dentist.id,
        blocked_date=MONDAY,
        start_time=time(10, 0),
        end_time=time(10, 30),
    ))
    db.commit()
    add_appointment(patient, dentist, service, _at(9, 30), 30)
    add_appointment(patient, dentist, service, _at(11), 15)

    result = compute_availability(db, dentist.id, MONDAY, 15, now=NOW)
    blocked = [Interval(_at(10), _at(10, 30))]

    pieces = result.free_intervals + result.occupied_intervals + blocked
    assert merge_intervals(pieces) == [Interval(_at(9), _at(12))]
    for index, piece in enumerate(pieces):
        assert not any(piece.overlaps(other) for other in pieces[index + 1:])
    assert result.free_intervals == [
        Interval(_at(9), _at(9, 30)),
        Interval(_at(10, 30), _at(11)),
        Interval(_at(11, 15), _at(12)),
    ]


def test_compute_availability_is_repeatable(db, dentist, patient, service, monday_hours, add_appointment) -> None:
    add_appointment(patient, dentist, service, _at(10), 45)
    db.add(BlockedDate(dentist_id=dentist.id, blocked_date=MONDAY, start_time=time(11, 30), end_time=time(12, 0)))
    db.commit()

    first = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)
    second = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert first == second
    assert first.slot_starts


def test_cancelled_appointments_do_not_occupy_time(
    db, dentist, patient, service, monday_hours, add_appointment
) -> None:
    add_appointment(patient, dentist, service, _at(10), 30, status=STATUS_CANCELLED)

    result = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert result.free_intervals == [Interval(_at(9), _at(12))]


def test_suggested_and_confirmed_appointments_occupy_time(
    db, dentist, patient, service, monday_hours, add_appointment
) -> None:
    add_appointment(patient, dentist, service, _at(9), 30, status=STATUS_SUGGESTED)
    add_appointment(patient, dentist, service, _at(9, 30), 30, status=STATUS_CONFIRMED)

    result = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert result.free_intervals == [Interval(_at(10), _at(12))]
    assert result.occupied_intervals == [Interval(_at(9), _at(10))]


def test_full_day_block_closes_the_day(db, dentist, monday_hours) -> None:
    db.add(BlockedDate(dentist_id=dentist.id, blocked_date=MONDAY, reason='Conference'))
    db.commit()

    result = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert result.open_intervals == []
    assert result.slot_starts == []


def test_partial_block_removes_only_its_window(db, dentist, monday_hours) -> None:
    db.add(BlockedDate(
        dentist_id=dentist.id,
        blocked_date=MONDAY,
        start_time=time(10, 0),
        end_time=time(11, 0),
    ))
    db.commit()

    result = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert result.free_intervals == [Interval(_at(9), _at(10)), Interval(_at(11), _at(12))]


def test_overlapping_working_hours_are_unioned(db, dentist, add_working_hours) -> None:
    add_working_hours(dentist.id, 1, time(9, 0), time(11, 0))
    add_working_hours(dentist.id, 1, time(10, 0), time(12, 0))
    add_working_hours(dentist.id, 1, time(14, 0), time(15, 0), is_active=False)

    result = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert result.open_intervals == [Interval(_at(9), _at(12))]


def test_free_intervals_shorter_than_duration_are_dropped(
    db, dentist, patient, service, monday_hours, add_appointment
) -> None:
    add_appointment(patient, dentist, service, _at(9, 15), 165)

    result = compute_availability(db, dentist.id, MONDAY, 30, now=NOW)

    assert result.free_intervals == []
    assert result.slot_starts == []


def test_today_is_clipped_to_the_current_time(db, dentist, monday_hours) -> None:
    result = compute_availability(db, dentist.id, MONDAY, 30, now=_at(10, 10))

    assert result.free_intervals == [Interval(_at(10, 10), _at(12))]
    assert result.slot_starts == [_at(10, 30), _at(11), _at(11, 30)]


def test_past_dates_are_rejected(db, dentist, monday_hours) -> None:
    with pytest.raises(ValidationError) as exception_info:
        compute_availability(db, dentist.id, MONDAY, 30, now=datetime(2030, 1, 8, 9, 0))

    assert exception_info.value.field == 'date'


@pytest.mark.parametrize('duration', [0, -15])
def test_non_positive_duration_is_rejected(db, dentist, duration: int) -> None:
    with pytest.raises(ValidationError):
        compute_availability(db, dentist.id, MONDAY, duration, now=NOW)


def test_unknown_dentist_is_not_found(db, patient) -> None:
    with pytest.raises(NotFoundError):
        compute_availability(db, 9999, MONDAY, 30, now=NOW)

    with pytest.raises(NotFoundError):
        compute_availability(db, patient.id, MONDAY, 30, now=NOW)


def test_is_interval_free(db, dentist, patient, service, monday_hours, add_appointment) -> None:
    add_appointment(patient, dentist, service, _at(10), 30)

    assert is_interval_free(db, dentist.id, _at(9), 60, now=NOW)
    assert is_interval_free(db, dentist.id, _at(10, 30), 30, now=NOW)
    assert not is_interval_free(db, dentist.id, _at(9, 45), 30, now=NOW)
    assert not is_interval_free(db, dentist.id, _at(11, 45), 30, now=NOW)


def test_resolve_duration_prefers_explicit_minutes(db, service) -> None:
    assert resolve_duration(db, 45, service.id) == 45
    assert resolve_duration(db, None, service.id) == 30

    with pytest.raises(ValidationError):
        resolve_duration(db, None, None)

    with pytest.raises(NotFoundError):
        resolve_duration(db, None, 9999)
