from datetime import datetime

import pytest

from dentalcare.scheduling.intervals import (
    Interval,
    clip_intervals,
    merge_intervals,
    slot_starts,
    subtract_interval,
    subtract_intervals,
)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, 7, hour, minute)


def test_intervals_touching_at_a_boundary_do_not_overlap() -> None:
    morning = Interval(_at(9), _at(10))
    late_morning = Interval(_at(10), _at(11))

    assert not morning.overlaps(late_morning)
    assert morning.overlaps(Interval(_at(9, 59), _at(10, 30)))


def test_merge_intervals_joins_overlapping_and_touching_pieces() -> None:
    merged = merge_intervals([
        Interval(_at(13), _at(15)),
        Interval(_at(9), _at(11)),
        Interval(_at(10), _at(12)),
        Interval(_at(12), _at(12, 30)),
    ])

    assert merged == [Interval(_at(9), _at(12, 30)), Interval(_at(13), _at(15))]


def test_merge_intervals_drops_empty_intervals() -> None:
    assert merge_intervals([Interval(_at(9), _at(9)), Interval(_at(11), _at(10))]) == []


@pytest.mark.parametrize(
    ('block', 'expected'),
    [
        (Interval(_at(8), _at(9)), [Interval(_at(9), _at(12))]),
        (Interval(_at(10), _at(11)), [Interval(_at(9), _at(10)), Interval(_at(11), _at(12))]),
        (Interval(_at(8), _at(10)), [Interval(_at(10), _at(12))]),
        (Interval(_at(11), _at(13)), [Interval(_at(9), _at(11))]),
        (Interval(_at(8), _at(13)), []),
    ],
)
def test_subtract_interval(block: Interval, expected: list[Interval]) -> None:
    assert subtract_interval(Interval(_at(9), _at(12)), block) == expected


def test_subtract_intervals_removes_every_block() -> None:
    remaining = subtract_intervals(
        [Interval(_at(9), _at(12)), Interval(_at(13), _at(17))],
        [Interval(_at(10), _at(10, 30)), Interval(_at(11, 30), _at(14))],
    )

    assert remaining == [
        Interval(_at(9), _at(10)),
        Interval(_at(10, 30), _at(11, 30)),
        Interval(_at(14), _at(17)),
    ]


def test_clip_intervals_keeps_only_the_part_inside_bounds() -> None:
    clipped = clip_intervals(
        [Interval(_at(8), _at(10)), Interval(_at(11), _at(12)), Interval(_at(15), _at(16))],
        _at(9),
        _at(14),
    )

    assert clipped == [Interval(_at(9), _at(10)), Interval(_at(11), _at(12))]


def test_slot_starts_snap_to_the_increment_grid() -> None:
    starts = slot_starts([Interval(_at(9, 10), _at(11))], duration_minutes=30, increment_minutes=30)

    assert starts == [_at(9, 30), _at(10), _at(10, 30)]


def test_slot_starts_require_the_whole_duration_to_fit() -> None:
    starts = slot_starts([Interval(_at(9), _at(10, 15))], duration_minutes=60, increment_minutes=30)

    assert starts == [_at(9)]


def test_interval_minutes() -> None:
    assert Interval(_at(9), _at(10, 45)).minutes == 105
