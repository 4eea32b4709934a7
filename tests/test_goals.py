import unittest
from datetime import date, datetime, timedelta

from pydantic import ValidationError

from fincoach import goals
from fincoach.finance_utils import add_months
from fincoach.models import Goal
from fincoach.results import Found, NotFound
from fincoach.schemas import GoalCreate, GoalUpdate
from tests.helpers import make_session_factory


def goal_data(target=1200.0, months=12, **kwargs):
    return GoalCreate(
        name=kwargs.pop("name", "Emergency fund"),
        target_amount=target,
        deadline=add_months(date.today(), months),
        priority=kwargs.pop("priority", "high"),
        category=kwargs.pop("category", "Emergency Fund"),
        **kwargs,
    )


def detached_goal(**overrides):
    fields = dict(
        id="g1",
        name="Trip",
        target_amount=1000.0,
        current_amount=0.0,
        deadline=date(2025, 12, 31),
        priority="medium",
        category="Vacation",
        status="active",
        motivations=[],
        created_at=datetime(2025, 1, 1),
        updated_at=datetime(2025, 1, 1),
    )
    fields.update(overrides)
    return Goal(**fields)


class TestGoalValidation(unittest.TestCase):
    def test_deadline_must_be_in_future(self):
        with self.assertRaises(ValidationError):
            GoalCreate(name="x", target_amount=10, deadline=date.today(), priority="low", category="Other")

    def test_target_must_be_positive(self):
        with self.assertRaises(ValidationError):
            goal_data(target=0)

    def test_update_rejects_null_for_required_fields(self):
        with self.assertRaises(ValidationError):
            GoalUpdate(current_amount=None)
        self.assertEqual(GoalUpdate(description=None).model_fields_set, {"description"})


class TestGoals(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()

    def tearDown(self):
        self.db.close()

    def test_create_starts_active(self):
        goal = goals.create_goal(self.db, goal_data())
        self.assertEqual(goal.status, "active")
        self.assertEqual(goal.current_amount, 0)
        self.assertEqual(goals.get_goals_by_status(self.db, "active")[0].id, goal.id)

    def test_reaching_target_completes_goal(self):
        goal = goals.create_goal(self.db, goal_data(target=500))
        result = goals.update_goal(self.db, goal.id, GoalUpdate(current_amount=500))
        self.assertEqual(result.value.status, "completed")

    def test_completed_goal_does_not_revert(self):
        goal = goals.create_goal(self.db, goal_data(target=500))
        goals.contribute_to_goal(self.db, goal.id, 600)
        result = goals.update_goal(self.db, goal.id, GoalUpdate(current_amount=100))

        self.assertEqual(result.value.current_amount, 100)
        self.assertEqual(result.value.status, "completed")

    def test_paused_goal_is_not_auto_completed(self):
        goal = goals.create_goal(self.db, goal_data(target=500))
        goals.update_goal(self.db, goal.id, GoalUpdate(status="paused"))
        result = goals.contribute_to_goal(self.db, goal.id, 500)
        self.assertEqual(result.value.status, "paused")

    def test_contributions_accumulate(self):
        a = goals.create_goal(self.db, goal_data(name="a"))
        b = goals.create_goal(self.db, goal_data(name="b"))

        goals.contribute_to_goal(self.db, a.id, 30)
        goals.contribute_to_goal(self.db, a.id, 45)
        goals.contribute_to_goal(self.db, b.id, 75)

        self.assertEqual(goals.get_goal(self.db, a.id).current_amount, goals.get_goal(self.db, b.id).current_amount)

    def test_contribute_missing_goal(self):
        self.assertEqual(goals.contribute_to_goal(self.db, "missing", 10), NotFound("missing"))

    def test_delete(self):
        goal = goals.create_goal(self.db, goal_data())
        goals.delete_goal(self.db, goal.id)
        self.assertIsNone(goals.get_goal(self.db, goal.id))

    def test_progress_for_new_goal(self):
        goal = goals.create_goal(self.db, goal_data(target=1200, months=12))
        progress = goals.get_goal_progress(goal, date.today())

        self.assertAlmostEqual(progress.monthly_required, 100, delta=10)
        self.assertEqual(progress.percentage, 0)
        self.assertTrue(progress.on_track)

        result = goals.contribute_to_goal(self.db, goal.id, 100)
        self.assertIsInstance(result, Found)
        progress = goals.get_goal_progress(result.value, date.today())
        self.assertAlmostEqual(progress.percentage, 100 / 12, places=2)
        self.assertEqual(progress.amount_remaining, 1100)

    def test_summary(self):
        a = goals.create_goal(self.db, goal_data(target=1000))
        goals.create_goal(self.db, goal_data(target=1000))
        goals.contribute_to_goal(self.db, a.id, 1000)

        summary = goals.get_goals_summary(self.db)
        self.assertEqual(summary.active_goals, 1)
        self.assertEqual(summary.completed_goals, 1)
        self.assertEqual(summary.total_saved, 1000)
        self.assertEqual(summary.overall_percentage, 50)

        self.assertEqual(len(goals.get_all_goal_progress(self.db)), 1)


class TestGoalProgress(unittest.TestCase):
    def test_behind_schedule(self):
        progress = goals.get_goal_progress(detached_goal(current_amount=100), today=date(2025, 7, 1))

        self.assertEqual(progress.months_remaining, 5)
        self.assertAlmostEqual(progress.monthly_required, 180)
        self.assertFalse(progress.on_track)

    def test_ahead_of_schedule(self):
        progress = goals.get_goal_progress(detached_goal(current_amount=600), today=date(2025, 7, 1))
        self.assertTrue(progress.on_track)

    def test_past_deadline_requires_full_remainder(self):
        progress = goals.get_goal_progress(detached_goal(current_amount=400), today=date(2026, 2, 1))

        self.assertLess(progress.days_remaining, 0)
        self.assertEqual(progress.monthly_required, 600)
        self.assertEqual(progress.weekly_required, 600)

    def test_percentage_is_clamped(self):
        goal = detached_goal(current_amount=1500, status="completed")
        progress = goals.get_goal_progress(goal, today=date(2025, 7, 1))
        self.assertEqual(progress.percentage, 100)
        self.assertEqual(progress.amount_remaining, 0)

    def test_deadline_tomorrow_counts_one_day(self):
        goal = detached_goal(deadline=date(2025, 7, 2))
        self.assertEqual(goals.get_goal_progress(goal, today=date(2025, 7, 1)).days_remaining, 1)

    def test_completed_goal_is_on_track(self):
        goal = detached_goal(status="completed", deadline=date(2025, 7, 1) + timedelta(days=1))
        self.assertTrue(goals.get_goal_progress(goal, today=date(2025, 7, 1)).on_track)


if __name__ == "__main__":
    unittest.main()
