import unittest
from datetime import date

from pydantic import ValidationError

from fincoach import transactions
from fincoach.results import Deleted, Found, NotFound
from fincoach.schemas import TransactionCreate, TransactionFilters, TransactionUpdate
from tests.helpers import add_tx, make_session_factory


class TestTransactionCrud(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()

    def tearDown(self):
        self.db.close()

    def test_create_assigns_id_and_defaults(self):
        tx = add_tx(self.db, 12.5)
        self.assertTrue(tx.id)
        self.assertEqual(tx.description, "")
        self.assertEqual(tx.tags, [])
        self.assertIsNotNone(tx.created_at)
        self.assertEqual(transactions.get_transaction(self.db, tx.id).amount, 12.5)

    def test_amount_must_be_positive(self):
        with self.assertRaises(ValidationError):
            TransactionCreate(amount=0, type="expense", category="other", merchant="X", date=date(2025, 1, 1))

    def test_update_changes_only_given_fields(self):
        tx = add_tx(self.db, 10, merchant="Old")
        result = transactions.update_transaction(self.db, tx.id, TransactionUpdate(merchant="New"))

        self.assertIsInstance(result, Found)
        self.assertEqual(result.value.merchant, "New")
        self.assertEqual(result.value.amount, 10)

    def test_update_date(self):
        tx = add_tx(self.db, 10)
        result = transactions.update_transaction(self.db, tx.id, TransactionUpdate(date=date(2025, 4, 1)))
        self.assertEqual(result.value.date, date(2025, 4, 1))

    def test_update_rejects_null_for_required_fields(self):
        with self.assertRaises(ValidationError):
            TransactionUpdate(merchant=None)
        self.assertIsNone(TransactionUpdate(notes=None).notes)

    def test_update_missing_returns_not_found(self):
        result = transactions.update_transaction(self.db, "nope", TransactionUpdate(amount=5))
        self.assertEqual(result, NotFound("nope"))

    def test_delete(self):
        tx = add_tx(self.db, 10)
        self.assertEqual(transactions.delete_transaction(self.db, tx.id), Deleted(tx.id))
        self.assertIsNone(transactions.get_transaction(self.db, tx.id))
        self.assertIsInstance(transactions.delete_transaction(self.db, tx.id), NotFound)


class TestTransactionQueries(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        add_tx(self.db, 40, category="food_dining", merchant="Whole Foods", on=date(2025, 3, 3))
        add_tx(self.db, 15, category="transportation", merchant="Uber", on=date(2025, 3, 12), notes="airport")
        add_tx(self.db, 2000, category="salary", type="income", merchant="Acme Corp", on=date(2025, 3, 1))
        add_tx(self.db, 60, category="food_dining", merchant="Trader Joe's", on=date(2025, 2, 27))

    def tearDown(self):
        self.db.close()

    def test_unfiltered_is_newest_first(self):
        rows = transactions.get_transactions(self.db)
        self.assertEqual([t.date for t in rows], sorted((t.date for t in rows), reverse=True))
        self.assertEqual(rows[0].merchant, "Uber")

    def test_filters_are_combined(self):
        rows = transactions.get_transactions(
            self.db,
            TransactionFilters(start_date=date(2025, 3, 1), categories=["food_dining"], types=["expense"]),
        )
        self.assertEqual([t.merchant for t in rows], ["Whole Foods"])

    def test_merchant_filter_is_case_insensitive_substring(self):
        rows = transactions.get_transactions(self.db, TransactionFilters(merchants=["whole"]))
        self.assertEqual([t.merchant for t in rows], ["Whole Foods"])

    def test_amount_bounds_are_inclusive(self):
        rows = transactions.get_transactions(self.db, TransactionFilters(min_amount=15, max_amount=60))
        self.assertEqual(sorted(t.amount for t in rows), [15, 40, 60])

    def test_search_looks_at_notes(self):
        rows = transactions.get_transactions(self.db, TransactionFilters(search_query="AIRPORT"))
        self.assertEqual([t.merchant for t in rows], ["Uber"])

    def test_stats(self):
        stats = transactions.get_transaction_stats(self.db, date(2025, 3, 1), date(2025, 3, 31))

        self.assertEqual(stats.total_income, 2000)
        self.assertEqual(stats.total_expenses, 55)
        self.assertEqual(stats.net_amount, 1945)
        self.assertEqual(stats.transaction_count, 3)
        self.assertAlmostEqual(stats.average_expense, 27.5)
        self.assertEqual(stats.largest_expense.merchant, "Whole Foods")

    def test_stats_with_no_expenses(self):
        stats = transactions.get_transaction_stats(self.db, date(2024, 1, 1), date(2024, 1, 31))
        self.assertEqual(stats.average_expense, 0)
        self.assertIsNone(stats.largest_expense)

    def test_stats_tie_keeps_first_in_date_order(self):
        add_tx(self.db, 40, category="shopping", merchant="Target", on=date(2025, 3, 20))

        stats = transactions.get_transaction_stats(self.db, date(2025, 3, 1), date(2025, 3, 31))

        self.assertEqual(stats.largest_expense.merchant, "Target")

    def test_ranged_spending_by_category_matches_total_expenses(self):
        start, end = date(2025, 3, 1), date(2025, 3, 31)

        rows = transactions.get_spending_by_category(self.db, start, end)
        stats = transactions.get_transaction_stats(self.db, start, end)

        self.assertEqual({r.category: r.amount for r in rows}, {"food_dining": 40, "transportation": 15})
        self.assertEqual(sum(r.amount for r in rows), stats.total_expenses)

    def test_spending_by_category_sorted_desc(self):
        rows = transactions.get_spending_by_category(self.db)

        self.assertEqual([r.category for r in rows], ["food_dining", "transportation"])
        self.assertEqual(rows[0].amount, 100)
        self.assertEqual(rows[0].count, 2)

    def test_merchants_distinct_sorted(self):
        add_tx(self.db, 5, merchant="Uber", on=date(2025, 3, 13))
        self.assertEqual(
            transactions.get_merchants(self.db), ["Acme Corp", "Trader Joe's", "Uber", "Whole Foods"]
        )

    def test_category_spending_for_current_month(self):
        spent = transactions.get_category_spending(self.db, "food_dining", today=date(2025, 3, 20))
        self.assertEqual(spent, 40)

    def test_recent_transactions_limit(self):
        self.assertEqual(len(transactions.get_recent_transactions(self.db, 2)), 2)

    def test_lookup_by_plaid_id(self):
        add_tx(self.db, 9, plaid_transaction_id="plaid-1")
        self.assertEqual(transactions.get_transaction_by_plaid_id(self.db, "plaid-1").amount, 9)
        self.assertIsNone(transactions.get_transaction_by_plaid_id(self.db, "plaid-2"))


if __name__ == "__main__":
    unittest.main()
