import pytest

from planboard.datamodel import Interval, Task
from planboard.errors import InvalidFormat
from planboard.scheduling.busy import add_busy, build_busy, drop_task, restore


def _task(task_id, date, start, end):
    return Task(task_id=task_id, user_id=1, name=f"t{task_id}", date=date, start_time=start, end_time=end)


def test_build_busy_groups_by_date_without_sorting():
    busy = build_busy([
        _task(1, "2025-06-02", "20:00", "21:00"),
        _task(2, "2025-06-03", "18:00", "18:30"),
        _task(3, "2025-06-02", "18:00", "19:00"),
    ])
    assert busy == {
        "2025-06-02": [Interval(1200, 1260, 1), Interval(1080, 1140, 3)],
        "2025-06-03": [Interval(1080, 1110, 2)],
    }


def test_build_busy_spills_midnight_crossing_task_into_next_day():
    busy = build_busy([_task(1, "2025-06-02", "23:00", "01:00")])
    assert busy == {
        "2025-06-02": [Interval(1380, 60, 1)],
        "2025-06-03": [Interval(0, 60, 1)],
    }


def test_build_busy_spill_respects_minimum_duration():
    busy = build_busy([_task(1, "2025-06-30", "23:58", "23:58")], min_duration=5)
    assert busy["2025-07-01"] == [Interval(0, 3, 1)]
    assert "2025-07-01" not in build_busy([_task(2, "2025-06-30", "23:50", "23:50")], min_duration=5)


def test_drop_task_removes_both_halves():
    busy = build_busy([_task(1, "2025-06-02", "23:00", "01:00"), _task(2, "2025-06-03", "02:00", "03:00")])
    removed = drop_task(busy, 1)
    assert removed == [("2025-06-02", Interval(1380, 60, 1)), ("2025-06-03", Interval(0, 60, 1))]
    assert busy == {"2025-06-02": [], "2025-06-03": [Interval(120, 180, 2)]}


def test_build_busy_propagates_malformed_times():
    with pytest.raises(InvalidFormat):
        build_busy([_task(1, "2025-06-02", "18h00", "19:00")])


def test_drop_and_restore_task_intervals():
    busy = build_busy([_task(1, "2025-06-02", "18:00", "19:00"), _task(2, "2025-06-02", "19:00", "20:00")])
    removed = drop_task(busy, 1)
    assert removed == [("2025-06-02", Interval(1080, 1140, 1))]
    assert busy["2025-06-02"] == [Interval(1140, 1200, 2)]

    restore(busy, removed)
    assert Interval(1080, 1140, 1) in busy["2025-06-02"]


def test_add_busy_creates_missing_date():
    busy = {}
    add_busy(busy, "2025-06-05", Interval(1080, 1110))
    assert busy == {"2025-06-05": [Interval(1080, 1110)]}
