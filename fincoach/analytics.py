from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from fincoach.categories import get_category_color
from fincoach.budgets import get_all_budget_progress, get_budget_summary
from fincoach.finance_utils import DAY_NAMES, add_months, day_name, each_day, format_month_label, month_range
from fincoach.schemas import (
    CategoryShare, CategorySpending, DailySpending, DashboardData, DayOfWeekSpending, MerchantSpending,
    MonthlyComparison, PeriodStats, TransactionFilters, TransactionOut
)
from fincoach.transactions import (
    get_recent_transactions, get_spending_by_category, get_transaction_stats, get_transactions
)

DASHBOARD_WINDOW_DAYS = 30


def category_shares(spending: List[CategorySpending]) -> List[CategoryShare]:
    total = sum(c.amount for c in spending)
    return [
        CategoryShare(
            category=c.category,
            amount=c.amount,
            percentage=c.amount / total * 100 if total > 0 else 0.0,
            color=get_category_color(c.category),
        )
        for c in spending
    ]


def get_daily_spending(db: Session, start_date: date, end_date: date) -> List[DailySpending]:
    """One bucket per calendar day in [start_date, end_date], zero-filled."""
    transactions = get_transactions(
        db, TransactionFilters(start_date=start_date, end_date=end_date, types=["expense"])
    )

    buckets: Dict[str, Dict] = {d.isoformat(): {"amount": 0.0, "count": 0} for d in each_day(start_date, end_date)}
    for t in transactions:
        entry = buckets.setdefault(t.date.isoformat(), {"amount": 0.0, "count": 0})
        entry["amount"] += t.amount
        entry["count"] += 1

    return [DailySpending(date=key, **buckets[key]) for key in sorted(buckets)]


def get_current_month_daily_spending(db: Session, today: Optional[date] = None) -> List[DailySpending]:
    today = today or date.today()
    return get_daily_spending(db, today.replace(day=1), today)


def get_monthly_comparison(db: Session, months: int = 6, today: Optional[date] = None) -> List[MonthlyComparison]:
    today = today or date.today()
    results = []

    for i in range(months):
        month_date = add_months(today, -i)
        start, end = month_range(month_date)
        stats = get_transaction_stats(db, start, end)
        results.append(
            MonthlyComparison(
                month=format_month_label(month_date),
                total_spent=stats.total_expenses,
                total_income=stats.total_income,
                net_amount=stats.net_amount,
                transaction_count=stats.transaction_count,
            )
        )

    results.reverse()  # oldest first
    return results


def get_spending_by_day_of_week(db: Session) -> List[DayOfWeekSpending]:
    transactions = get_transactions(db, TransactionFilters(types=["expense"]))

    buckets = {name: {"total": 0.0, "count": 0} for name in DAY_NAMES}
    for t in transactions:
        entry = buckets[day_name(t.date)]
        entry["total"] += t.amount
        entry["count"] += 1

    return [
        DayOfWeekSpending(
            day=name,
            total=buckets[name]["total"],
            count=buckets[name]["count"],
            average=buckets[name]["total"] / buckets[name]["count"] if buckets[name]["count"] else 0.0,
        )
        for name in DAY_NAMES
    ]


def get_dashboard_data(db: Session, today: Optional[date] = None) -> DashboardData:
    """Everything the landing page needs, computed over the trailing 30 days."""
    today = today or date.today()
    window_start = today - timedelta(days=DASHBOARD_WINDOW_DAYS)

    stats = get_transaction_stats(db, window_start, today)
    budget_summary = get_budget_summary(db, today)
    category_spending = get_spending_by_category(db, window_start, today)
    recent = get_recent_transactions(db, 10)
    daily = get_daily_spending(db, window_start, today)
    budget_progress = get_all_budget_progress(db, today)

    return DashboardData(
        current_month=PeriodStats(
            total_spent=stats.total_expenses,
            total_income=stats.total_income,
            net_amount=stats.net_amount,
            transaction_count=stats.transaction_count,
            average_expense=stats.average_expense,
        ),
        budget_summary=budget_summary,
        category_breakdown=category_shares(category_spending),
        recent_transactions=[TransactionOut.model_validate(t) for t in recent],
        daily_spending=daily,
        budget_progress=budget_progress,
    )


def get_top_merchants(
    db: Session, limit: int = 5, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> List[MerchantSpending]:
    transactions = get_transactions(
        db, TransactionFilters(start_date=start_date, end_date=end_date, types=["expense"])
    )

    totals: Dict[str, Dict] = {}
    for t in transactions:
        entry = totals.setdefault(t.merchant, {"amount": 0.0, "count": 0})
        entry["amount"] += t.amount
        entry["count"] += 1

    rows = [MerchantSpending(merchant=m, **data) for m, data in totals.items()]
    rows.sort(key=lambda r: r.amount, reverse=True)
    return rows[:limit]
