from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from fincoach.finance_utils import difference_in_days, difference_in_months, difference_in_weeks
from fincoach.models import Goal
from fincoach.results import Deleted, DeleteResult, Found, NotFound, UpdateResult
from fincoach.schemas import GoalCreate, GoalOut, GoalProgress, GoalsSummary, GoalUpdate

ON_TRACK_TOLERANCE = 0.85


# ---------- CRUD ----------

def create_goal(db: Session, data: GoalCreate) -> Goal:
    now = datetime.utcnow()
    goal = Goal(
        name=data.name,
        description=data.description,
        target_amount=data.target_amount,
        current_amount=data.current_amount or 0.0,
        deadline=data.deadline,
        priority=data.priority,
        category=data.category,
        motivations=list(data.motivations or []),
        status="active",
        created_at=now,
        updated_at=now,
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def get_goal(db: Session, goal_id: str) -> Optional[Goal]:
    return db.get(Goal, goal_id)


def get_goals(db: Session) -> List[Goal]:
    return db.query(Goal).all()


def get_goals_by_status(db: Session, status: str) -> List[Goal]:
    return db.query(Goal).filter(Goal.status == status).all()


def update_goal(db: Session, goal_id: str, data: GoalUpdate) -> UpdateResult[Goal]:
    goal = db.get(Goal, goal_id)
    if not goal:
        return NotFound(goal_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(goal, field, value)
    goal.updated_at = datetime.utcnow()

    # Reaching the target completes an active goal; nothing moves it back.
    if goal.status == "active" and goal.current_amount >= goal.target_amount:
        goal.status = "completed"

    db.commit()
    db.refresh(goal)
    return Found(goal)


def delete_goal(db: Session, goal_id: str) -> DeleteResult:
    goal = db.get(Goal, goal_id)
    if not goal:
        return NotFound(goal_id)

    db.delete(goal)
    db.commit()
    return Deleted(goal_id)


def contribute_to_goal(db: Session, goal_id: str, amount: float) -> UpdateResult[Goal]:
    goal = db.get(Goal, goal_id)
    if not goal:
        return NotFound(goal_id)
    return update_goal(db, goal_id, GoalUpdate(current_amount=goal.current_amount + amount))


# ---------- PROGRESS ----------

def get_goal_progress(goal: Goal, today: Optional[date] = None) -> GoalProgress:
    """
    Compute pacing for a goal from its own fields.

    Required rates fall back to the whole remaining amount when no full
    period is left (deadline this week/month, or already passed).
    """
    today = today or date.today()
    deadline = goal.deadline

    amount_remaining = max(0.0, goal.target_amount - goal.current_amount)
    if goal.target_amount > 0:
        percentage = min(goal.current_amount / goal.target_amount * 100, 100.0)
        percentage = max(percentage, 0.0)
    else:
        percentage = 0.0

    days_remaining = difference_in_days(deadline, today)
    weeks_remaining = difference_in_weeks(deadline, today)
    months_remaining = difference_in_months(deadline, today)

    monthly_required = amount_remaining / months_remaining if months_remaining > 0 else amount_remaining
    weekly_required = amount_remaining / weeks_remaining if weeks_remaining > 0 else amount_remaining

    total_days = difference_in_days(deadline, goal.created_at)
    days_elapsed = total_days - days_remaining
    expected_progress = days_elapsed / total_days * 100 if total_days > 0 else 100.0
    on_track = goal.status == "completed" or percentage >= expected_progress * ON_TRACK_TOLERANCE

    return GoalProgress(
        goal=GoalOut.model_validate(goal),
        amount_remaining=amount_remaining,
        percentage=percentage,
        days_remaining=days_remaining,
        weeks_remaining=weeks_remaining,
        months_remaining=months_remaining,
        monthly_required=monthly_required,
        weekly_required=weekly_required,
        on_track=on_track,
    )


def get_all_goal_progress(db: Session, today: Optional[date] = None) -> List[GoalProgress]:
    return [get_goal_progress(g, today) for g in get_goals(db) if g.status == "active"]


def get_goals_summary(db: Session) -> GoalsSummary:
    goals = get_goals(db)

    total_saved = sum(g.current_amount for g in goals)
    total_target = sum(g.target_amount for g in goals)

    return GoalsSummary(
        active_goals=sum(1 for g in goals if g.status == "active"),
        completed_goals=sum(1 for g in goals if g.status == "completed"),
        total_saved=total_saved,
        total_target=total_target,
        overall_percentage=total_saved / total_target * 100 if total_target > 0 else 0.0,
    )
