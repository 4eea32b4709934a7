import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fincoach.errors import DuplicateBudgetError
from fincoach.finance_utils import days_in_month, difference_in_days, end_of_month, start_of_month
from fincoach.models import Budget
from fincoach.results import Deleted, DeleteResult, Found, NotFound, UpdateResult
from fincoach.schemas import BudgetCreate, BudgetOut, BudgetProgress, BudgetSummary, BudgetUpdate
from fincoach.transactions import get_category_spending

logger = logging.getLogger(__name__)


# ---------- CRUD ----------

def create_budget(db: Session, data: BudgetCreate) -> Budget:
    """
    Insert a budget. The unique index on `category` decides whether a budget
    for that category already exists, so two concurrent creations cannot both
    succeed.
    """
    now = datetime.utcnow()
    budget = Budget(
        category=data.category,
        monthly_limit=data.monthly_limit,
        alert_threshold=data.alert_threshold,
        rollover=data.rollover,
        created_at=now,
        updated_at=now,
    )
    db.add(budget)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Rejected duplicate budget for category %s", data.category)
        raise DuplicateBudgetError(data.category)
    db.refresh(budget)
    return budget


def get_budget(db: Session, budget_id: str) -> Optional[Budget]:
    return db.get(Budget, budget_id)


def get_budget_by_category(db: Session, category: str) -> Optional[Budget]:
    return db.query(Budget).filter(Budget.category == category).first()


def get_budgets(db: Session) -> List[Budget]:
    return db.query(Budget).all()


def update_budget(db: Session, budget_id: str, data: BudgetUpdate) -> UpdateResult[Budget]:
    budget = db.get(Budget, budget_id)
    if not budget:
        return NotFound(budget_id)

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(budget, field, value)
    budget.updated_at = datetime.utcnow()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateBudgetError(changes.get("category", budget.category))
    db.refresh(budget)
    return Found(budget)


def delete_budget(db: Session, budget_id: str) -> DeleteResult:
    budget = db.get(Budget, budget_id)
    if not budget:
        return NotFound(budget_id)

    db.delete(budget)
    db.commit()
    return Deleted(budget_id)


# ---------- PROGRESS ----------

def budget_status(percentage: float, alert_threshold: float) -> str:
    if percentage >= 100:
        return "over"
    if percentage >= alert_threshold:
        return "warning"
    return "under"


def get_budget_progress(db: Session, budget: Budget, today: Optional[date] = None) -> BudgetProgress:
    today = today or date.today()

    spent = get_category_spending(db, budget.category, today)
    remaining = max(0.0, budget.monthly_limit - spent)
    percentage = spent / budget.monthly_limit * 100  # not clamped, can exceed 100

    days_remaining = difference_in_days(end_of_month(today), today) + 1

    # Run-rate projection; today counts as elapsed so this is never zero
    days_passed = difference_in_days(today, start_of_month(today)) + 1
    projected_total = spent / days_passed * days_in_month(today)

    return BudgetProgress(
        budget=BudgetOut.model_validate(budget),
        spent=spent,
        remaining=remaining,
        percentage=percentage,
        status=budget_status(percentage, budget.alert_threshold),
        days_remaining=days_remaining,
        projected_total=projected_total,
    )


def get_all_budget_progress(db: Session, today: Optional[date] = None) -> List[BudgetProgress]:
    return [get_budget_progress(db, b, today) for b in get_budgets(db)]


def get_budget_summary(db: Session, today: Optional[date] = None) -> BudgetSummary:
    progress = get_all_budget_progress(db, today)

    total_budgeted = sum(p.budget.monthly_limit for p in progress)
    total_spent = sum(p.spent for p in progress)

    return BudgetSummary(
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        total_remaining=total_budgeted - total_spent,
        overall_percentage=total_spent / total_budgeted * 100 if total_budgeted > 0 else 0.0,
        budgets_on_track=sum(1 for p in progress if p.status == "under"),
        budgets_at_risk=sum(1 for p in progress if p.status == "warning"),
        budgets_over_budget=sum(1 for p in progress if p.status == "over"),
    )


def check_budget_alerts(db: Session, today: Optional[date] = None) -> List[BudgetProgress]:
    return [p for p in get_all_budget_progress(db, today) if p.status in ("warning", "over")]


def get_daily_spending_recommendation(db: Session, budget: Budget, today: Optional[date] = None) -> float:
    """How much can still be spent per day for the rest of the month."""
    progress = get_budget_progress(db, budget, today)
    if progress.days_remaining <= 0:
        return 0.0
    return progress.remaining / progress.days_remaining
