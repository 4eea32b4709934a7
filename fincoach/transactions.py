import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from fincoach.finance_utils import month_range
from fincoach.models import Transaction
from fincoach.results import Deleted, DeleteResult, Found, NotFound, UpdateResult
from fincoach.schemas import (
    CategorySpending, TransactionCreate, TransactionFilters, TransactionOut, TransactionStats, TransactionUpdate
)

logger = logging.getLogger(__name__)


# ---------- CRUD ----------

def create_transaction(db: Session, data: TransactionCreate) -> Transaction:
    now = datetime.utcnow()
    payload = data.model_dump()
    payload["tags"] = payload.get("tags") or []
    payload["description"] = payload.get("description") or ""
    tx = Transaction(**payload, created_at=now, updated_at=now)
    db.add(tx)
    db.commit()
    db.refresh(tx)
    return tx


def get_transaction(db: Session, tx_id: str) -> Optional[Transaction]:
    return db.get(Transaction, tx_id)


def update_transaction(db: Session, tx_id: str, data: TransactionUpdate) -> UpdateResult[Transaction]:
    tx = db.get(Transaction, tx_id)
    if not tx:
        return NotFound(tx_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(tx, field, value)
    tx.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(tx)
    return Found(tx)


def delete_transaction(db: Session, tx_id: str) -> DeleteResult:
    tx = db.get(Transaction, tx_id)
    if not tx:
        return NotFound(tx_id)

    db.delete(tx)
    db.commit()
    return Deleted(tx_id)


# ---------- QUERIES ----------

def _matches_search(tx: Transaction, query: str) -> bool:
    return (
        query in (tx.merchant or "").lower()
        or query in (tx.description or "").lower()
        or query in (tx.category or "").lower()
        or query in (tx.notes or "").lower()
    )


def get_transactions(db: Session, filters: Optional[TransactionFilters] = None) -> List[Transaction]:
    """
    Load every transaction and narrow it down in memory.

    Criteria are applied one after another, so a row survives only if it
    passes all of them. The result is always newest first.
    """
    transactions = db.query(Transaction).all()

    if filters:
        if filters.start_date:
            transactions = [t for t in transactions if t.date >= filters.start_date]
        if filters.end_date:
            transactions = [t for t in transactions if t.date <= filters.end_date]

        if filters.categories:
            transactions = [t for t in transactions if t.category in filters.categories]

        if filters.types:
            transactions = [t for t in transactions if t.type in filters.types]

        if filters.merchants:
            needles = [m.lower() for m in filters.merchants]
            transactions = [
                t for t in transactions
                if any(m in (t.merchant or "").lower() for m in needles)
            ]

        if filters.min_amount is not None:
            transactions = [t for t in transactions if t.amount >= filters.min_amount]
        if filters.max_amount is not None:
            transactions = [t for t in transactions if t.amount <= filters.max_amount]

        if filters.search_query:
            query = filters.search_query.lower()
            transactions = [t for t in transactions if _matches_search(t, query)]

    return sorted(transactions, key=lambda t: t.date, reverse=True)


def get_current_month_transactions(db: Session, today: Optional[date] = None) -> List[Transaction]:
    start, end = month_range(today or date.today())
    return get_transactions(db, TransactionFilters(start_date=start, end_date=end))


def get_recent_transactions(db: Session, limit: int = 10) -> List[Transaction]:
    return get_transactions(db)[:limit]


def get_transaction_stats(
    db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> TransactionStats:
    transactions = get_transactions(db, TransactionFilters(start_date=start_date, end_date=end_date))

    expenses = [t for t in transactions if t.type == "expense"]
    income = [t for t in transactions if t.type == "income"]

    total_expenses = sum(t.amount for t in expenses)
    total_income = sum(t.amount for t in income)

    largest = None
    for t in expenses:
        if largest is None or t.amount > largest.amount:
            largest = t

    return TransactionStats(
        total_income=total_income,
        total_expenses=total_expenses,
        net_amount=total_income - total_expenses,
        transaction_count=len(transactions),
        average_expense=total_expenses / len(expenses) if expenses else 0.0,
        largest_expense=TransactionOut.model_validate(largest) if largest else None,
    )


def get_spending_by_category(
    db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> List[CategorySpending]:
    transactions = get_transactions(
        db, TransactionFilters(start_date=start_date, end_date=end_date, types=["expense"])
    )

    totals = {}
    for t in transactions:
        entry = totals.setdefault(t.category, {"amount": 0.0, "count": 0})
        entry["amount"] += t.amount
        entry["count"] += 1

    rows = [CategorySpending(category=cat, **data) for cat, data in totals.items()]
    return sorted(rows, key=lambda r: r.amount, reverse=True)


def get_merchants(db: Session) -> List[str]:
    rows = db.query(Transaction.merchant).distinct().all()
    return sorted({r[0] for r in rows if r[0]})


def get_category_spending(db: Session, category: str, today: Optional[date] = None) -> float:
    """Expense total for `category` in the current calendar month."""
    return sum(
        t.amount
        for t in get_current_month_transactions(db, today)
        if t.type == "expense" and t.category == category
    )


def get_transaction_by_plaid_id(db: Session, plaid_transaction_id: str) -> Optional[Transaction]:
    return (
        db.query(Transaction)
        .filter(Transaction.plaid_transaction_id == plaid_transaction_id)
        .first()
    )
