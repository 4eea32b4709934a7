# ---------- IMPORTS ----------
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.orm import Session

from fincoach import ai, analytics, backup, bank, budgets, config, conversations, goals, transactions
from fincoach.categories import EXPENSE_CATEGORIES, GOAL_CATEGORIES, INCOME_CATEGORIES
from fincoach.db import get_db, init_db
from fincoach.errors import (
    AIConfigurationError, AIError, BankServiceError, DuplicateBudgetError, InvalidAPIKeyError, RateLimitedError
)
from fincoach.finance_utils import month_range
from fincoach.results import NotFound
from fincoach.routes_plaid import router as plaid_router
from fincoach.schemas import (
    BankSyncResult, BudgetCreate, BudgetOut, BudgetProgress, BudgetSummary, BudgetUpdate, CategorySpending,
    ChatExchange, ChatRequest, ContributionIn, ConversationCreate, ConversationOut, ConversationTitleIn,
    DailySpending, DashboardData, DayOfWeekSpending, ExportDocument, GoalCreate, GoalOut, GoalProgress,
    GoalsSummary, GoalUpdate, MerchantSpending, MessageCreate, MessageOut, MonthlyComparison, SendMessageIn,
    TransactionCreate, TransactionFilters, TransactionOut, TransactionStats, TransactionType, TransactionUpdate
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("fincoach")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("FinCoach API starting up...")
    logger.info("Database tables created successfully")
    logger.info("Plaid environment: %s", config.PLAID_ENV)
    if not ai.is_api_key_configured():
        logger.warning("OPENAI_API_KEY not set; AI coach is disabled")
    yield


# ---------- APP SETUP ----------
app = FastAPI(title="FinCoach", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(plaid_router)


# ---------- HELPERS ----------
def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


def _ai_http_error(e: AIError) -> HTTPException:
    if isinstance(e, AIConfigurationError):
        return HTTPException(status_code=503, detail="AI coach is not configured")
    if isinstance(e, InvalidAPIKeyError):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, RateLimitedError):
        return HTTPException(status_code=429, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))


def get_bank_client() -> bank.BankClient:
    return bank.BankClient(config.PLAID_PROXY_URL)


# ---------- ROUTES ----------
@app.get("/", summary="Health Check")
def root():
    return {"message": "FinCoach API", "status": "healthy"}


@app.get("/api/categories")
def list_categories():
    return {"expense": EXPENSE_CATEGORIES, "income": INCOME_CATEGORIES, "goal": GOAL_CATEGORIES}


# ---------- TRANSACTIONS ----------
@app.get("/api/transactions", response_model=List[TransactionOut])
def list_transactions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: List[str] = Query(default=[]),
    type: List[TransactionType] = Query(default=[]),
    merchant: List[str] = Query(default=[]),
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    q: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    filters = TransactionFilters(
        start_date=start_date,
        end_date=end_date,
        categories=category,
        types=type,
        merchants=merchant,
        min_amount=min_amount,
        max_amount=max_amount,
        search_query=q,
    )
    rows = transactions.get_transactions(db, filters)
    return rows[:limit] if limit else rows


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(body: TransactionCreate, db: Session = Depends(get_db)):
    return transactions.create_transaction(db, body)


@app.get("/api/transactions/stats", response_model=TransactionStats)
def transaction_stats(start_date: Optional[date] = None, end_date: Optional[date] = None,
                      db: Session = Depends(get_db)):
    return transactions.get_transaction_stats(db, start_date, end_date)


@app.get("/api/transactions/by-category", response_model=List[CategorySpending])
def spending_by_category(start_date: Optional[date] = None, end_date: Optional[date] = None,
                         db: Session = Depends(get_db)):
    return transactions.get_spending_by_category(db, start_date, end_date)


@app.get("/api/transactions/merchants", response_model=List[str])
def list_merchants(db: Session = Depends(get_db)):
    return transactions.get_merchants(db)


@app.get("/api/transactions/{tx_id}", response_model=TransactionOut)
def get_transaction(tx_id: str, db: Session = Depends(get_db)):
    tx = transactions.get_transaction(db, tx_id)
    if not tx:
        raise _not_found("Transaction")
    return tx


@app.patch("/api/transactions/{tx_id}", response_model=TransactionOut)
def update_transaction(tx_id: str, body: TransactionUpdate, db: Session = Depends(get_db)):
    result = transactions.update_transaction(db, tx_id, body)
    if isinstance(result, NotFound):
        raise _not_found("Transaction")
    return result.value


@app.delete("/api/transactions/{tx_id}")
def delete_transaction(tx_id: str, db: Session = Depends(get_db)):
    if isinstance(transactions.delete_transaction(db, tx_id), NotFound):
        raise _not_found("Transaction")
    return {"success": True}


# ---------- BUDGETS ----------
@app.get("/api/budgets", response_model=List[BudgetOut])
def list_budgets(db: Session = Depends(get_db)):
    return budgets.get_budgets(db)


@app.post("/api/budgets", response_model=BudgetOut, status_code=201)
def create_budget(body: BudgetCreate, db: Session = Depends(get_db)):
    try:
        return budgets.create_budget(db, body)
    except DuplicateBudgetError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/api/budgets/progress", response_model=List[BudgetProgress])
def all_budget_progress(db: Session = Depends(get_db)):
    return budgets.get_all_budget_progress(db)


@app.get("/api/budgets/summary", response_model=BudgetSummary)
def budget_summary(db: Session = Depends(get_db)):
    return budgets.get_budget_summary(db)


@app.get("/api/budgets/alerts", response_model=List[BudgetProgress])
def budget_alerts(db: Session = Depends(get_db)):
    return budgets.check_budget_alerts(db)


@app.get("/api/budgets/{budget_id}", response_model=BudgetOut)
def get_budget(budget_id: str, db: Session = Depends(get_db)):
    budget = budgets.get_budget(db, budget_id)
    if not budget:
        raise _not_found("Budget")
    return budget


@app.get("/api/budgets/{budget_id}/progress")
def budget_progress(budget_id: str, db: Session = Depends(get_db)):
    budget = budgets.get_budget(db, budget_id)
    if not budget:
        raise _not_found("Budget")
    progress = budgets.get_budget_progress(db, budget)
    daily = budgets.get_daily_spending_recommendation(db, budget)
    return {**progress.model_dump(mode="json"), "daily_recommendation": daily}


@app.patch("/api/budgets/{budget_id}", response_model=BudgetOut)
def update_budget(budget_id: str, body: BudgetUpdate, db: Session = Depends(get_db)):
    try:
        result = budgets.update_budget(db, budget_id, body)
    except DuplicateBudgetError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(result, NotFound):
        raise _not_found("Budget")
    return result.value


@app.delete("/api/budgets/{budget_id}")
def delete_budget(budget_id: str, db: Session = Depends(get_db)):
    if isinstance(budgets.delete_budget(db, budget_id), NotFound):
        raise _not_found("Budget")
    return {"success": True}


# ---------- GOALS ----------
@app.get("/api/goals", response_model=List[GoalOut])
def list_goals(status: Optional[str] = None, db: Session = Depends(get_db)):
    if status:
        return goals.get_goals_by_status(db, status)
    return goals.get_goals(db)


@app.post("/api/goals", response_model=GoalOut, status_code=201)
def create_goal(body: GoalCreate, db: Session = Depends(get_db)):
    return goals.create_goal(db, body)


@app.get("/api/goals/progress", response_model=List[GoalProgress])
def all_goal_progress(db: Session = Depends(get_db)):
    return goals.get_all_goal_progress(db)


@app.get("/api/goals/summary", response_model=GoalsSummary)
def goals_summary(db: Session = Depends(get_db)):
    return goals.get_goals_summary(db)


@app.get("/api/goals/{goal_id}", response_model=GoalOut)
def get_goal(goal_id: str, db: Session = Depends(get_db)):
    goal = goals.get_goal(db, goal_id)
    if not goal:
        raise _not_found("Goal")
    return goal


@app.get("/api/goals/{goal_id}/progress", response_model=GoalProgress)
def goal_progress(goal_id: str, db: Session = Depends(get_db)):
    goal = goals.get_goal(db, goal_id)
    if not goal:
        raise _not_found("Goal")
    return goals.get_goal_progress(goal)


@app.patch("/api/goals/{goal_id}", response_model=GoalOut)
def update_goal(goal_id: str, body: GoalUpdate, db: Session = Depends(get_db)):
    result = goals.update_goal(db, goal_id, body)
    if isinstance(result, NotFound):
        raise _not_found("Goal")
    return result.value


@app.post("/api/goals/{goal_id}/contribute", response_model=GoalOut)
def contribute_to_goal(goal_id: str, body: ContributionIn, db: Session = Depends(get_db)):
    result = goals.contribute_to_goal(db, goal_id, body.amount)
    if isinstance(result, NotFound):
        raise _not_found("Goal")
    return result.value


@app.delete("/api/goals/{goal_id}")
def delete_goal(goal_id: str, db: Session = Depends(get_db)):
    if isinstance(goals.delete_goal(db, goal_id), NotFound):
        raise _not_found("Goal")
    return {"success": True}


# ---------- ANALYTICS ----------
@app.get("/api/analytics/dashboard", response_model=DashboardData)
def dashboard(db: Session = Depends(get_db)):
    return analytics.get_dashboard_data(db)


@app.get("/api/analytics/daily", response_model=List[DailySpending])
def daily_spending(start_date: Optional[date] = None, end_date: Optional[date] = None,
                   db: Session = Depends(get_db)):
    if not start_date and not end_date:
        return analytics.get_current_month_daily_spending(db)
    month_start, _ = month_range(date.today())
    return analytics.get_daily_spending(db, start_date or month_start, end_date or date.today())


@app.get("/api/analytics/monthly", response_model=List[MonthlyComparison])
def monthly_comparison(months: int = Query(6, ge=1, le=60), db: Session = Depends(get_db)):
    return analytics.get_monthly_comparison(db, months)


@app.get("/api/analytics/day-of-week", response_model=List[DayOfWeekSpending])
def day_of_week(db: Session = Depends(get_db)):
    return analytics.get_spending_by_day_of_week(db)


@app.get("/api/analytics/top-merchants", response_model=List[MerchantSpending])
def top_merchants(limit: int = Query(5, ge=1), start_date: Optional[date] = None,
                  end_date: Optional[date] = None, db: Session = Depends(get_db)):
    return analytics.get_top_merchants(db, limit, start_date, end_date)


# ---------- CONVERSATIONS & CHAT ----------
@app.get("/api/conversations", response_model=List[ConversationOut])
def list_conversations(db: Session = Depends(get_db)):
    return conversations.get_conversations(db)


@app.post("/api/conversations", response_model=ConversationOut, status_code=201)
def create_conversation(body: Optional[ConversationCreate] = None, db: Session = Depends(get_db)):
    return conversations.create_conversation(db, body.title if body else None)


@app.get("/api/conversations/current", response_model=ConversationOut)
def current_conversation(db: Session = Depends(get_db)):
    return conversations.get_or_create_current_conversation(db)


@app.get("/api/conversations/{conversation_id}", response_model=ConversationOut)
def get_conversation(conversation_id: str, db: Session = Depends(get_db)):
    conversation = conversations.get_conversation(db, conversation_id)
    if not conversation:
        raise _not_found("Conversation")
    return conversation


@app.patch("/api/conversations/{conversation_id}", response_model=ConversationOut)
def rename_conversation(conversation_id: str, body: ConversationTitleIn, db: Session = Depends(get_db)):
    conversation = conversations.update_conversation_title(db, conversation_id, body.title)
    if not conversation:
        raise _not_found("Conversation")
    return conversation


@app.post("/api/conversations/{conversation_id}/clear", response_model=ConversationOut)
def clear_conversation(conversation_id: str, db: Session = Depends(get_db)):
    conversation = conversations.clear_conversation(db, conversation_id)
    if not conversation:
        raise _not_found("Conversation")
    return conversation


@app.delete("/api/conversations/{conversation_id}")
def delete_conversation(conversation_id: str, db: Session = Depends(get_db)):
    if isinstance(conversations.delete_conversation(db, conversation_id), NotFound):
        raise _not_found("Conversation")
    return {"success": True}


@app.post("/api/conversations/{conversation_id}/messages", response_model=ChatExchange)
def send_conversation_message(conversation_id: str, body: SendMessageIn, db: Session = Depends(get_db)):
    """
    Ask the coach with the conversation so far as history, then append both
    the question and the reply to the transcript.
    """
    conversation = conversations.get_conversation(db, conversation_id)
    if not conversation:
        raise _not_found("Conversation")

    history = list(conversation.messages)
    try:
        reply = ai.send_message(db, body.content, history)
    except AIError as e:
        raise _ai_http_error(e)

    user_msg = conversations.add_message(db, conversation_id, MessageCreate(role="user", content=body.content))
    assistant_msg = conversations.add_message(db, conversation_id, MessageCreate(role="assistant", content=reply))
    return ChatExchange(
        user_message=MessageOut.model_validate(user_msg),
        assistant_message=MessageOut.model_validate(assistant_msg),
    )


@app.get("/api/chat/status")
def chat_status():
    return {"configured": ai.is_api_key_configured(), "model": config.OPENAI_MODEL}


@app.post("/api/chat")
def chat(body: ChatRequest, db: Session = Depends(get_db)):
    try:
        reply = ai.send_message(db, body.message, body.history)
    except AIError as e:
        raise _ai_http_error(e)
    return {"reply": reply}


@app.post("/api/chat/stream")
def chat_stream(body: ChatRequest, db: Session = Depends(get_db)):
    try:
        stream = ai.open_message_stream(db, body.message, body.history)
    except AIError as e:
        raise _ai_http_error(e)
    return StreamingResponse(ai.iter_stream_text(stream), media_type="text/plain; charset=utf-8")


# ---------- BANK SYNC ----------
@app.post("/api/bank/sync", response_model=BankSyncResult)
def sync_all_banks(db: Session = Depends(get_db), client: bank.BankClient = Depends(get_bank_client)):
    try:
        saved = bank.sync_all_institutions(db, client)
    except BankServiceError as e:
        logger.error("Failed to sync transactions: %s", e)
        raise HTTPException(status_code=502, detail="Failed to sync transactions")
    return BankSyncResult(imported=len(saved), transactions=[TransactionOut.model_validate(t) for t in saved])


@app.post("/api/bank/sync/{item_id}", response_model=BankSyncResult)
def sync_bank(item_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None,
              db: Session = Depends(get_db), client: bank.BankClient = Depends(get_bank_client)):
    try:
        saved = bank.sync_institution(db, client, item_id, start_date, end_date)
    except BankServiceError as e:
        logger.error("Failed to sync transactions for %s: %s", item_id, e)
        raise HTTPException(status_code=502, detail="Failed to sync transactions")
    return BankSyncResult(
        item_id=item_id, imported=len(saved), transactions=[TransactionOut.model_validate(t) for t in saved]
    )


# ---------- DATA BACKUP ----------
@app.get("/api/data/export")
def export_data(db: Session = Depends(get_db)):
    filename = f"fincoach-backup-{date.today().isoformat()}.json"
    return Response(
        content=backup.export_data(db),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/data/import")
def import_data(doc: ExportDocument, db: Session = Depends(get_db)):
    backup.restore_document(db, doc)
    return {
        "transactions": len(doc.transactions),
        "budgets": len(doc.budgets),
        "goals": len(doc.goals),
        "conversations": len(doc.conversations),
    }


@app.post("/api/data/clear")
def clear_data(db: Session = Depends(get_db)):
    backup.clear_all_data(db)
    return {"success": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
