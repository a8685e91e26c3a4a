from datetime import date

import planboard.actions as actions
import planboard.storage.group as group_storage
import planboard.storage.reminder as reminder_storage
import planboard.storage.task as task_storage
from planboard.scheduling.links import link_reminder_to_task, unlink_on_task_deletion

from conftest import make_user


def test_link_sets_event_link_and_bumps_update_time(run_db):
    async def scenario():
        user = await make_user()
        reminder = await reminder_storage.create_reminder(user.user_id, "Essay", due_date="2025-06-10",
                                                          estimate_minutes=30)
        task = await task_storage.create_task(user.user_id, "Essay", "2025-06-02", "18:00", "18:30")
        await link_reminder_to_task(reminder, task.task_id)

        assert reminder.event_link == task.task_id
        stored = await reminder_storage.get_reminder(reminder.reminder_id)
        assert stored.event_link == task.task_id
        assert stored.updated_at_utc >= reminder.created_at_utc

    run_db(scenario)


def test_task_deletion_clears_personal_and_group_links(run_db):
    async def scenario():
        owner = await make_user("owner")
        member = await make_user("member")
        group = await group_storage.create_group("Club", owner.user_id)
        await group_storage.add_member(group.group_id, member.user_id)
        _, copies = await group_storage.create_group_reminder(group.group_id, owner.user_id, "Shared",
                                                              due_date="2025-06-04", estimate_minutes=30)
        personal = await reminder_storage.create_reminder(owner.user_id, "Mine", due_date="2025-06-04",
                                                          estimate_minutes=30)
        task = await task_storage.create_task(owner.user_id, "Block", "2025-06-02", "18:00", "19:00")
        other_task = await task_storage.create_task(owner.user_id, "Other", "2025-06-02", "19:00", "20:00")

        owner_copy = next(c for c in copies if c.user_id == owner.user_id)
        member_copy = next(c for c in copies if c.user_id == member.user_id)
        await link_reminder_to_task(owner_copy, task.task_id)
        await link_reminder_to_task(personal, task.task_id)
        await link_reminder_to_task(member_copy, other_task.task_id)

        await task_storage.delete_task(task.task_id)
        cleared = await unlink_on_task_deletion(task.task_id)

        assert sorted(r.reminder_id for r in cleared) == sorted([owner_copy.reminder_id, personal.reminder_id])
        assert (await reminder_storage.get_reminder(owner_copy.reminder_id)).event_link is None
        assert (await reminder_storage.get_reminder(personal.reminder_id)).event_link is None
        assert (await reminder_storage.get_reminder(member_copy.reminder_id)).event_link == other_task.task_id

    run_db(scenario)


def test_unlink_without_links_is_a_no_op(run_db):
    async def scenario():
        await make_user()
        assert await unlink_on_task_deletion(12345) == []

    run_db(scenario)


def test_deleting_reminder_keeps_its_task(run_db):
    async def scenario():
        user = await make_user()
        await actions.add_reminder(user.user_id, "Essay", due_date="2025-06-10", estimate_minutes=30)
        report = await actions.auto_schedule(user.user_id, today=date(2025, 6, 2))
        outcome = report.scheduled[0]

        await actions.delete_reminder(user.user_id, outcome.reminder_id)

        assert await reminder_storage.get_reminder(outcome.reminder_id) is None
        assert await task_storage.get_task(outcome.task_id) is not None

    run_db(scenario)


def test_delete_task_action_unlinks(run_db):
    async def scenario():
        user = await make_user()
        reminder = await actions.add_reminder(user.user_id, "Essay", due_date="2099-01-01", estimate_minutes=30)
        report = await actions.auto_schedule(user.user_id, today=date(2025, 6, 2))
        task_id = report.scheduled[0].task_id

        cleared = await actions.delete_task(user.user_id, task_id)

        assert [r.reminder_id for r in cleared] == [reminder.reminder_id]
        assert (await reminder_storage.get_reminder(reminder.reminder_id)).event_link is None
        assert await task_storage.get_task(task_id) is None

    run_db(scenario)
