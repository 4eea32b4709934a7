import unittest
from datetime import date

from fincoach import budgets
from fincoach.errors import DuplicateBudgetError
from fincoach.results import Found, NotFound
from fincoach.schemas import BudgetUpdate
from tests.helpers import add_tx, budget_data, make_session_factory

TODAY = date(2025, 3, 15)


class TestBudgetStatus(unittest.TestCase):
    def test_thresholds(self):
        self.assertEqual(budgets.budget_status(50, 75), "under")
        self.assertEqual(budgets.budget_status(75, 75), "warning")
        self.assertEqual(budgets.budget_status(99.9, 75), "warning")
        self.assertEqual(budgets.budget_status(100, 75), "over")
        self.assertEqual(budgets.budget_status(140, 75), "over")


class TestBudgets(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()

    def tearDown(self):
        self.db.close()

    def test_duplicate_category_rejected(self):
        budgets.create_budget(self.db, budget_data("food_dining"))
        with self.assertRaises(DuplicateBudgetError) as ctx:
            budgets.create_budget(self.db, budget_data("food_dining", monthly_limit=300))

        self.assertIn("food_dining", str(ctx.exception))
        self.assertEqual(len(budgets.get_budgets(self.db)), 1)

    def test_update_into_existing_category_rejected(self):
        budgets.create_budget(self.db, budget_data("food_dining"))
        other = budgets.create_budget(self.db, budget_data("shopping"))

        with self.assertRaises(DuplicateBudgetError):
            budgets.update_budget(self.db, other.id, BudgetUpdate(category="food_dining"))
        self.assertEqual(budgets.get_budget(self.db, other.id).category, "shopping")

    def test_update_and_delete(self):
        b = budgets.create_budget(self.db, budget_data())
        result = budgets.update_budget(self.db, b.id, BudgetUpdate(monthly_limit=250))
        self.assertIsInstance(result, Found)
        self.assertEqual(result.value.monthly_limit, 250)

        budgets.delete_budget(self.db, b.id)
        self.assertIsNone(budgets.get_budget_by_category(self.db, "food_dining"))
        self.assertIsInstance(budgets.delete_budget(self.db, b.id), NotFound)

    def test_progress_exactly_at_limit(self):
        b = budgets.create_budget(self.db, budget_data("food_dining", monthly_limit=100))
        for amount, day in ((20, 2), (30, 5), (50, 9)):
            add_tx(self.db, amount, category="food_dining", on=date(2025, 3, day))

        progress = budgets.get_budget_progress(self.db, b, TODAY)

        self.assertEqual(progress.spent, 100)
        self.assertEqual(progress.percentage, 100)
        self.assertEqual(progress.status, "over")
        self.assertEqual(progress.remaining, 0)

    def test_progress_ignores_other_months_and_income(self):
        b = budgets.create_budget(self.db, budget_data("food_dining", monthly_limit=200))
        add_tx(self.db, 50, category="food_dining", on=date(2025, 3, 1))
        add_tx(self.db, 80, category="food_dining", on=date(2025, 2, 28))
        add_tx(self.db, 80, category="food_dining", type="income", on=date(2025, 3, 3))

        progress = budgets.get_budget_progress(self.db, b, TODAY)

        self.assertEqual(progress.spent, 50)
        self.assertEqual(progress.status, "under")
        self.assertEqual(progress.days_remaining, 17)
        self.assertAlmostEqual(progress.projected_total, 50 / 15 * 31)

    def test_percentage_is_not_clamped(self):
        b = budgets.create_budget(self.db, budget_data("food_dining", monthly_limit=100))
        add_tx(self.db, 150, category="food_dining", on=date(2025, 3, 4))

        progress = budgets.get_budget_progress(self.db, b, TODAY)
        self.assertEqual(progress.percentage, 150)
        self.assertEqual(progress.remaining, 0)

    def test_summary_and_alerts(self):
        budgets.create_budget(self.db, budget_data("food_dining", monthly_limit=100))
        budgets.create_budget(self.db, budget_data("shopping", monthly_limit=100))
        budgets.create_budget(self.db, budget_data("travel", monthly_limit=200))
        add_tx(self.db, 80, category="food_dining", on=date(2025, 3, 4))
        add_tx(self.db, 120, category="shopping", on=date(2025, 3, 4))

        summary = budgets.get_budget_summary(self.db, TODAY)
        self.assertEqual(summary.total_budgeted, 400)
        self.assertEqual(summary.total_spent, 200)
        self.assertEqual(summary.total_remaining, 200)
        self.assertEqual(summary.overall_percentage, 50)
        self.assertEqual(
            (summary.budgets_on_track, summary.budgets_at_risk, summary.budgets_over_budget), (1, 1, 1)
        )

        alerts = budgets.check_budget_alerts(self.db, TODAY)
        self.assertEqual(sorted(a.budget.category for a in alerts), ["food_dining", "shopping"])

    def test_empty_summary(self):
        summary = budgets.get_budget_summary(self.db, TODAY)
        self.assertEqual(summary.overall_percentage, 0)

    def test_daily_recommendation(self):
        b = budgets.create_budget(self.db, budget_data("food_dining", monthly_limit=117))
        add_tx(self.db, 32, category="food_dining", on=date(2025, 3, 4))

        # 85 left over the 17 days from the 15th through the 31st
        self.assertAlmostEqual(budgets.get_daily_spending_recommendation(self.db, b, TODAY), 5.0)


if __name__ == "__main__":
    unittest.main()
