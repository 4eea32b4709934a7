from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fincoach.db import init_db
from fincoach.schemas import BudgetCreate, TransactionCreate
from fincoach.transactions import create_transaction


def make_session_factory():
    """Fresh in-memory database shared by every session the factory opens."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def add_tx(db, amount, category="food_dining", type="expense", merchant="Cafe", on=date(2025, 3, 10), **kwargs):
    return create_transaction(
        db,
        TransactionCreate(amount=amount, type=type, category=category, merchant=merchant, date=on, **kwargs),
    )


def budget_data(category="food_dining", monthly_limit=100.0, alert_threshold=75):
    return BudgetCreate(category=category, monthly_limit=monthly_limit, alert_threshold=alert_threshold)
