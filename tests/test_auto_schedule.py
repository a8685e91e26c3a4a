from datetime import date, datetime

import planboard.storage.reminder as reminder_storage
import planboard.storage.task as task_storage
from planboard.errors import PersistenceFailure
from planboard.metrics import runtime_metrics
from planboard.scheduling.auto_schedule import auto_schedule
from planboard.scheduling.policy import SchedulePolicy
from planboard.scheduling.timecalc import effective_end, to_minutes

from conftest import make_user

TODAY = date(2025, 6, 2)
POLICY = SchedulePolicy()


def _assert_no_overlap(tasks):
    by_date = {}
    for task in tasks:
        start = to_minutes(task.start_time)
        by_date.setdefault(task.date, []).append((start, effective_end(start, to_minutes(task.end_time))))
    for spans in by_date.values():
        spans.sort()
        for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
            assert prev_end <= next_start, spans


def test_single_reminder_lands_at_window_open(run_db):
    async def scenario():
        user = await make_user()
        reminder = await reminder_storage.create_reminder(user.user_id, "Essay", due_date="2025-06-10",
                                                          estimate_minutes=30)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        assert [o.status for o in report.outcomes] == ["scheduled"]
        tasks = await task_storage.list_tasks(user.user_id)
        assert len(tasks) == 1
        task = tasks[0]
        assert (task.date, task.start_time, task.end_time) == ("2025-06-02", "18:00", "18:30")
        assert task.name == "Essay"
        assert task.category.value == "work"

        linked = await reminder_storage.get_reminder(reminder.reminder_id)
        assert linked.event_link == task.task_id
        assert "2025-06-02" <= task.date <= linked.due_date

    run_db(scenario)


def test_trailing_gap_gives_midnight_end(run_db):
    async def scenario():
        user = await make_user()
        await task_storage.create_task(user.user_id, "Shift", "2025-06-02", "18:00", "23:30")
        await reminder_storage.create_reminder(user.user_id, "Read", due_date="2025-06-02", estimate_minutes=30)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        outcome = report.scheduled[0]
        assert (outcome.date, outcome.start_time, outcome.end_time) == ("2025-06-02", "23:30", "00:00")

    run_db(scenario)


def test_same_due_date_reminders_fill_in_source_order(run_db):
    async def scenario():
        user = await make_user()
        await reminder_storage.create_reminder(user.user_id, "One hour", due_date="2025-06-04", estimate_minutes=60)
        await reminder_storage.create_reminder(user.user_id, "Ninety", due_date="2025-06-04", estimate_minutes=90)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        first, second = report.scheduled
        assert (first.title, first.start_time, first.end_time) == ("One hour", "18:00", "19:00")
        assert (second.title, second.start_time, second.end_time) == ("Ninety", "19:00", "20:30")
        assert first.date == second.date == "2025-06-02"

    run_db(scenario)


def test_no_double_booking_within_a_run(run_db):
    async def scenario():
        user = await make_user()
        await task_storage.create_task(user.user_id, "Gym", "2025-06-02", "19:00", "20:00")
        await task_storage.create_task(user.user_id, "Late call", "2025-06-03", "23:00", "01:00")
        for i, (due, minutes) in enumerate([
            ("2025-06-03", 120), ("2025-06-02", 45), ("2025-06-04", 200), ("2025-06-03", 90),
            ("2025-06-02", 60), ("2025-06-05", 360), ("2025-06-04", 15), ("2025-06-03", 75),
        ]):
            await reminder_storage.create_reminder(user.user_id, f"r{i}", due_date=due, estimate_minutes=minutes)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        assert not report.failed
        tasks = await task_storage.list_tasks(user.user_id)
        _assert_no_overlap(tasks)
        for outcome in report.scheduled:
            assert outcome.date >= "2025-06-02"

    run_db(scenario)


def test_earlier_due_reminder_gets_the_scarce_slot(run_db):
    async def scenario():
        user = await make_user()
        await task_storage.create_task(user.user_id, "Busy", "2025-06-02", "18:00", "23:00")
        late = await reminder_storage.create_reminder(user.user_id, "Later", due_date="2025-06-03",
                                                      estimate_minutes=60)
        early = await reminder_storage.create_reminder(user.user_id, "Sooner", due_date="2025-06-02",
                                                       estimate_minutes=60)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        placed = {o.reminder_id: o for o in report.scheduled}
        assert placed[early.reminder_id].date == "2025-06-02"
        assert placed[early.reminder_id].start_time == "23:00"
        assert placed[late.reminder_id].date == "2025-06-03"
        assert placed[early.reminder_id].date <= placed[late.reminder_id].date

    run_db(scenario)


def test_full_days_push_to_later_date_within_due(run_db):
    async def scenario():
        user = await make_user()
        await task_storage.create_task(user.user_id, "Busy", "2025-06-02", "18:00", "00:00")
        await reminder_storage.create_reminder(user.user_id, "Plan", due_date="2025-06-03", estimate_minutes=30)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)
        assert report.scheduled[0].date == "2025-06-03"

    run_db(scenario)


def test_unplaceable_reminder_is_reported_not_fatal(run_db):
    async def scenario():
        user = await make_user()
        await task_storage.create_task(user.user_id, "Busy", "2025-06-02", "18:00", "00:00")
        stuck = await reminder_storage.create_reminder(user.user_id, "Stuck", due_date="2025-06-02",
                                                       estimate_minutes=30)
        fine = await reminder_storage.create_reminder(user.user_id, "Fine", due_date="2025-06-05",
                                                      estimate_minutes=30)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        assert [o.reminder_id for o in report.unscheduled] == [stuck.reminder_id]
        assert [o.reminder_id for o in report.scheduled] == [fine.reminder_id]
        assert (await reminder_storage.get_reminder(stuck.reminder_id)).event_link is None
        assert runtime_metrics.snapshot()["reminders_unscheduled"] == 1

    run_db(scenario)


def test_rerun_updates_linked_task_in_place(run_db):
    async def scenario():
        user = await make_user()
        await reminder_storage.create_reminder(user.user_id, "A", due_date="2025-06-03", estimate_minutes=30)
        await reminder_storage.create_reminder(user.user_id, "B", due_date="2025-06-04", estimate_minutes=45)
        first = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)
        tasks_before = await task_storage.list_tasks(user.user_id)

        second = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)
        tasks_after = await task_storage.list_tasks(user.user_id)

        assert len(tasks_after) == len(tasks_before) == 2
        assert [(t.task_id, t.date, t.start_time, t.end_time) for t in tasks_after] == \
            [(t.task_id, t.date, t.start_time, t.end_time) for t in tasks_before]
        assert all(o.created for o in first.scheduled)
        assert not any(o.created for o in second.scheduled)
        assert [o.task_id for o in second.scheduled] == [o.task_id for o in first.scheduled]

    run_db(scenario)


def test_rerun_moves_linked_task_when_its_day_filled_up(run_db):
    async def scenario():
        user = await make_user()
        reminder = await reminder_storage.create_reminder(user.user_id, "A", due_date="2025-06-05",
                                                          estimate_minutes=30)
        await auto_schedule(user.user_id, today=TODAY, policy=POLICY)
        task_id = (await reminder_storage.get_reminder(reminder.reminder_id)).event_link

        # next day, the first slot is taken by a manual entry
        tomorrow = date(2025, 6, 3)
        await task_storage.create_task(user.user_id, "Dinner", "2025-06-03", "18:00", "19:00")
        report = await auto_schedule(user.user_id, today=tomorrow, policy=POLICY)

        moved = await task_storage.get_task(task_id)
        assert (moved.date, moved.start_time, moved.end_time) == ("2025-06-03", "19:00", "19:30")
        assert report.scheduled[0].task_id == task_id
        assert len(await task_storage.list_tasks(user.user_id)) == 2

    run_db(scenario)


def test_dangling_link_gets_a_new_task(run_db):
    async def scenario():
        user = await make_user()
        reminder = await reminder_storage.create_reminder(user.user_id, "A", due_date="2025-06-03",
                                                          estimate_minutes=30, event_link=999)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        outcome = report.scheduled[0]
        assert outcome.created
        assert (await reminder_storage.get_reminder(reminder.reminder_id)).event_link == outcome.task_id
        assert outcome.task_id != 999

    run_db(scenario)


def test_overdue_reminder_is_placed_from_today(run_db):
    async def scenario():
        user = await make_user()
        await reminder_storage.create_reminder(user.user_id, "Late", due_date="2025-05-28", estimate_minutes=30)
        await reminder_storage.create_reminder(user.user_id, "On time", due_date="2025-06-02",
                                               estimate_minutes=30)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        late, on_time = report.scheduled
        assert late.title == "Late"
        assert (late.date, late.start_time) == ("2025-06-02", "18:00")
        assert (on_time.date, on_time.start_time) == ("2025-06-02", "18:30")

    run_db(scenario)


def test_overdue_search_days_bound(run_db):
    async def scenario():
        user = await make_user()
        await task_storage.create_task(user.user_id, "Busy", "2025-06-02", "18:00", "00:00")
        await reminder_storage.create_reminder(user.user_id, "Late", due_date="2025-05-28", estimate_minutes=30)

        strict = await auto_schedule(user.user_id, today=TODAY, policy=SchedulePolicy(overdue_search_days=0))
        assert [o.status for o in strict.outcomes] == ["unscheduled"]

        relaxed = await auto_schedule(user.user_id, today=TODAY, policy=SchedulePolicy(overdue_search_days=1))
        assert relaxed.scheduled[0].date == "2025-06-03"

    run_db(scenario)


def test_only_open_dated_estimated_reminders_are_considered(run_db):
    async def scenario():
        user = await make_user()
        other = await make_user("bo")
        await reminder_storage.create_reminder(user.user_id, "No due", estimate_minutes=30)
        await reminder_storage.create_reminder(user.user_id, "No estimate", due_date="2025-06-03")
        done = await reminder_storage.create_reminder(user.user_id, "Done", due_date="2025-06-03",
                                                      estimate_minutes=30)
        await reminder_storage.set_reminder_completed(done.reminder_id, True)
        await reminder_storage.create_reminder(other.user_id, "Not mine", due_date="2025-06-03",
                                               estimate_minutes=30)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        assert report.outcomes == []
        assert await task_storage.list_tasks(user.user_id) == []

    run_db(scenario)


def test_persistence_failure_skips_one_reminder_only(run_db, monkeypatch):
    async def scenario():
        user = await make_user()
        broken = await reminder_storage.create_reminder(user.user_id, "Broken", due_date="2025-06-02",
                                                        estimate_minutes=30)
        ok = await reminder_storage.create_reminder(user.user_id, "Ok", due_date="2025-06-03",
                                                    estimate_minutes=30)

        real_create = task_storage.create_task
        calls = []

        async def flaky_create(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise PersistenceFailure("store unavailable")
            return await real_create(*args, **kwargs)

        monkeypatch.setattr(task_storage, "create_task", flaky_create)
        report = await auto_schedule(user.user_id, today=TODAY, policy=POLICY)

        assert [o.reminder_id for o in report.failed] == [broken.reminder_id]
        assert "store unavailable" in report.failed[0].error
        assert [o.reminder_id for o in report.scheduled] == [ok.reminder_id]
        # the failed slot stays blocked for the rest of the run
        assert report.scheduled[0].start_time == "18:30"
        assert (await reminder_storage.get_reminder(broken.reminder_id)).event_link is None
        assert runtime_metrics.snapshot()["reminders_failed"] == 1

    run_db(scenario)


def test_group_copy_is_scheduled_with_personal_reminders(run_db):
    import planboard.storage.group as group_storage

    async def scenario():
        owner = await make_user("owner")
        member = await make_user("member")
        group = await group_storage.create_group("Study club", owner.user_id)
        await group_storage.add_member(group.group_id, member.user_id)
        _, copies = await group_storage.create_group_reminder(group.group_id, owner.user_id, "Group project",
                                                              due_date="2025-06-02", estimate_minutes=60)
        await reminder_storage.create_reminder(member.user_id, "Own", due_date="2025-06-03", estimate_minutes=30)

        report = await auto_schedule(member.user_id, today=TODAY, policy=POLICY)
        member_copy = next(c for c in copies if c.user_id == member.user_id)
        owner_copy = next(c for c in copies if c.user_id == owner.user_id)

        assert [o.title for o in report.scheduled] == ["Group project", "Own"]
        assert (await reminder_storage.get_reminder(member_copy.reminder_id)).event_link == \
            report.scheduled[0].task_id
        assert (await reminder_storage.get_reminder(owner_copy.reminder_id)).event_link is None
        assert await task_storage.list_tasks(owner.user_id) == []

    run_db(scenario)


def test_night_shift_blocks_next_morning_in_widened_window(run_db):
    async def scenario():
        user = await make_user()
        await task_storage.create_task(user.user_id, "Night shift", "2025-06-02", "22:00", "03:00")
        await task_storage.create_task(user.user_id, "Day", "2025-06-02", "00:00", "22:00")
        await reminder_storage.create_reminder(user.user_id, "Report", due_date="2025-06-03", estimate_minutes=60)
        report = await auto_schedule(user.user_id, today=TODAY, policy=SchedulePolicy(window_start=0))

        outcome = report.scheduled[0]
        assert (outcome.date, outcome.start_time, outcome.end_time) == ("2025-06-03", "03:00", "04:00")

    run_db(scenario)


def test_rerun_releases_both_halves_of_own_night_task(run_db):
    async def scenario():
        user = await make_user()
        reminder = await reminder_storage.create_reminder(user.user_id, "Late", due_date="2025-06-03",
                                                          estimate_minutes=60)
        task = await task_storage.create_task(user.user_id, "Late", "2025-06-02", "23:30", "00:30")
        await reminder_storage.update_reminder_link(reminder.reminder_id, task.task_id)
        await task_storage.create_task(user.user_id, "Day", "2025-06-02", "00:00", "23:30")

        report = await auto_schedule(user.user_id, today=TODAY, policy=SchedulePolicy(window_start=0))

        outcome = report.scheduled[0]
        assert outcome.task_id == task.task_id and not outcome.created
        assert (outcome.date, outcome.start_time, outcome.end_time) == ("2025-06-03", "00:00", "01:00")

    run_db(scenario)


def test_today_starts_from_current_minute(run_db):
    async def scenario():
        user = await make_user()
        await reminder_storage.create_reminder(user.user_id, "Tonight", due_date="2025-06-02", estimate_minutes=30)
        report = await auto_schedule(user.user_id, policy=POLICY, now=datetime(2025, 6, 2, 22, 9, 30))

        assert report.today == "2025-06-02"
        outcome = report.scheduled[0]
        assert (outcome.date, outcome.start_time, outcome.end_time) == ("2025-06-02", "22:10", "22:40")

    run_db(scenario)


def test_passed_evening_moves_to_tomorrow_or_goes_unscheduled(run_db):
    async def scenario():
        user = await make_user()
        await reminder_storage.create_reminder(user.user_id, "Due today", due_date="2025-06-02",
                                               estimate_minutes=90)
        await reminder_storage.create_reminder(user.user_id, "Due tomorrow", due_date="2025-06-03",
                                               estimate_minutes=90)
        report = await auto_schedule(user.user_id, policy=POLICY, now=datetime(2025, 6, 2, 23, 0))

        assert [o.title for o in report.unscheduled] == ["Due today"]
        outcome = report.scheduled[0]
        assert (outcome.title, outcome.date, outcome.start_time) == ("Due tomorrow", "2025-06-03", "18:00")

    run_db(scenario)
