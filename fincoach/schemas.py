import datetime as dt
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

TransactionType = Literal["expense", "income"]
PaymentMethod = Literal["cash", "credit_card", "debit_card", "bank_transfer", "mobile_payment", "other"]
BudgetStatus = Literal["under", "warning", "over"]
GoalPriority = Literal["high", "medium", "low"]
GoalStatus = Literal["active", "completed", "paused", "cancelled"]
MessageRole = Literal["user", "assistant"]

MAX_AMOUNT = 1_000_000_000


def _reject_nulls(model: BaseModel, fields) -> None:
    """An update may omit a required field but not send it as null."""
    nulled = [f for f in fields if f in model.model_fields_set and getattr(model, f) is None]
    if nulled:
        raise ValueError(f"{', '.join(nulled)} cannot be null")


# ---------- TRANSACTIONS ----------
class TransactionCreate(BaseModel):
    amount: float = Field(..., gt=0, le=MAX_AMOUNT)
    type: TransactionType
    category: str = Field(..., min_length=1)
    subcategory: Optional[str] = None
    merchant: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=500)
    date: date
    payment_method: Optional[PaymentMethod] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=1000)
    plaid_transaction_id: Optional[str] = None


class TransactionUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0, le=MAX_AMOUNT)
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(None, min_length=1)
    subcategory: Optional[str] = None
    merchant: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    date: Optional[dt.date] = None  # bare `date` is shadowed by the default here
    payment_method: Optional[PaymentMethod] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def required_fields_not_null(self):
        _reject_nulls(self, ("amount", "type", "category", "merchant", "description", "date", "tags"))
        return self


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    amount: float
    type: TransactionType
    category: str
    subcategory: Optional[str] = None
    merchant: str
    description: str = ""
    date: date
    payment_method: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    plaid_transaction_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TransactionFilters(BaseModel):
    """
    Filter criteria for listing transactions. Every criterion that is set must
    match (logical AND); unset criteria are ignored.

    - start_date / end_date: inclusive calendar bounds on the transaction date
    - categories: transaction category is one of these
    - types: transaction type is one of these
    - merchants: merchant contains any of these, case-insensitive
    - min_amount / max_amount: inclusive bounds on amount
    - search_query: case-insensitive substring of merchant, description,
      category or notes
    """
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    categories: List[str] = Field(default_factory=list)
    types: List[TransactionType] = Field(default_factory=list)
    merchants: List[str] = Field(default_factory=list)
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    search_query: Optional[str] = None


class TransactionStats(BaseModel):
    total_income: float
    total_expenses: float
    net_amount: float
    transaction_count: int
    average_expense: float
    largest_expense: Optional[TransactionOut] = None


class CategorySpending(BaseModel):
    category: str
    amount: float
    count: int


# ---------- BUDGETS ----------
class BudgetCreate(BaseModel):
    category: str = Field(..., min_length=1)
    monthly_limit: float = Field(..., gt=0, le=MAX_AMOUNT)
    alert_threshold: float = Field(75, ge=0, le=100)
    rollover: bool = False


class BudgetUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1)
    monthly_limit: Optional[float] = Field(None, gt=0, le=MAX_AMOUNT)
    alert_threshold: Optional[float] = Field(None, ge=0, le=100)
    rollover: Optional[bool] = None

    @model_validator(mode="after")
    def required_fields_not_null(self):
        _reject_nulls(self, ("category", "monthly_limit", "alert_threshold", "rollover"))
        return self


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    category: str
    monthly_limit: float
    alert_threshold: float
    rollover: bool
    created_at: datetime
    updated_at: datetime


class BudgetProgress(BaseModel):
    budget: BudgetOut
    spent: float
    remaining: float
    percentage: float
    status: BudgetStatus
    days_remaining: int
    projected_total: float


class BudgetSummary(BaseModel):
    total_budgeted: float
    total_spent: float
    total_remaining: float
    overall_percentage: float
    budgets_on_track: int
    budgets_at_risk: int
    budgets_over_budget: int


# ---------- GOALS ----------
class GoalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    target_amount: float = Field(..., gt=0, le=MAX_AMOUNT)
    current_amount: float = Field(0.0, ge=0)
    deadline: date
    priority: GoalPriority
    category: str = Field(..., min_length=1)
    motivations: List[str] = Field(default_factory=list)

    @field_validator("deadline")
    @classmethod
    def deadline_in_future(cls, v: date) -> date:
        if v <= date.today():
            raise ValueError("Deadline must be in the future")
        return v


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    target_amount: Optional[float] = Field(None, gt=0, le=MAX_AMOUNT)
    current_amount: Optional[float] = Field(None, ge=0)
    deadline: Optional[date] = None
    priority: Optional[GoalPriority] = None
    category: Optional[str] = Field(None, min_length=1)
    motivations: Optional[List[str]] = None
    status: Optional[GoalStatus] = None

    @model_validator(mode="after")
    def required_fields_not_null(self):
        _reject_nulls(
            self,
            ("name", "target_amount", "current_amount", "deadline", "priority", "category", "motivations", "status"),
        )
        return self


class GoalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    name: str
    description: Optional[str] = None
    target_amount: float
    current_amount: float
    deadline: date
    priority: GoalPriority
    category: str
    status: GoalStatus
    motivations: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ContributionIn(BaseModel):
    amount: float = Field(..., gt=0, le=MAX_AMOUNT)


class GoalProgress(BaseModel):
    goal: GoalOut
    amount_remaining: float
    percentage: float
    days_remaining: int
    weeks_remaining: int
    months_remaining: int
    monthly_required: float
    weekly_required: float
    on_track: bool


class GoalsSummary(BaseModel):
    active_goals: int
    completed_goals: int
    total_saved: float
    total_target: float
    overall_percentage: float


# ---------- CONVERSATIONS ----------
class MessageMetadata(BaseModel):
    transaction_ids: Optional[List[str]] = None
    insight_generated: Optional[bool] = None
    action_taken: Optional[str] = None


class MessageCreate(BaseModel):
    role: MessageRole
    content: str
    metadata: Optional[MessageMetadata] = None


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    role: MessageRole
    content: str
    timestamp: datetime
    metadata: Optional[MessageMetadata] = Field(None, validation_alias=AliasChoices("meta", "metadata"))


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    title: Optional[str] = None
    messages: List[MessageOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ConversationCreate(BaseModel):
    title: Optional[str] = None


class ConversationTitleIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


class ChatTurn(BaseModel):
    role: MessageRole
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    history: List[ChatTurn] = Field(default_factory=list)


class SendMessageIn(BaseModel):
    content: str = Field(..., min_length=1)


class ChatExchange(BaseModel):
    user_message: MessageOut
    assistant_message: MessageOut


# ---------- AI CONTEXT ----------
class BudgetStatusEntry(BaseModel):
    spent: float
    limit: float
    percentage: float


class CategoryShare(BaseModel):
    category: str
    amount: float
    percentage: float
    color: Optional[str] = None


class ContextTransaction(BaseModel):
    merchant: str
    amount: float
    category: str
    date: date


class ContextGoal(BaseModel):
    name: str
    target_amount: float
    current_amount: float
    deadline: date


class UserProfile(BaseModel):
    spending_personality: Optional[str] = None
    financial_knowledge: Literal["beginner", "intermediate", "advanced"] = "intermediate"


class MonthContext(BaseModel):
    total_spent: float
    total_income: float
    budget_status: Dict[str, BudgetStatusEntry] = Field(default_factory=dict)
    top_categories: List[CategoryShare] = Field(default_factory=list)


class ConversationContext(BaseModel):
    current_month: MonthContext
    recent_transactions: List[ContextTransaction] = Field(default_factory=list)
    active_goals: List[ContextGoal] = Field(default_factory=list)
    user_profile: UserProfile = Field(default_factory=UserProfile)


# ---------- ANALYTICS ----------
class DailySpending(BaseModel):
    date: str  # "YYYY-MM-DD"
    amount: float
    count: int


class MonthlyComparison(BaseModel):
    month: str  # "Mon YYYY"
    total_spent: float
    total_income: float
    net_amount: float
    transaction_count: int


class DayOfWeekSpending(BaseModel):
    day: str
    average: float
    total: float
    count: int


class MerchantSpending(BaseModel):
    merchant: str
    amount: float
    count: int


class PeriodStats(BaseModel):
    total_spent: float
    total_income: float
    net_amount: float
    transaction_count: int
    average_expense: float


class DashboardData(BaseModel):
    current_month: PeriodStats
    budget_summary: BudgetSummary
    category_breakdown: List[CategoryShare]
    recent_transactions: List[TransactionOut]
    daily_spending: List[DailySpending]
    budget_progress: List[BudgetProgress]


# ---------- PLAID ----------
class PlaidInstitution(BaseModel):
    institution_id: str = ""
    name: str = "Unknown Bank"


class PlaidBalances(BaseModel):
    available: Optional[float] = None
    current: Optional[float] = None
    limit: Optional[float] = None


class PlaidAccount(BaseModel):
    model_config = ConfigDict(extra="allow")
    account_id: str
    name: str
    official_name: Optional[str] = None
    type: str
    subtype: Optional[str] = None
    mask: Optional[str] = None
    balances: PlaidBalances = Field(default_factory=PlaidBalances)


class PlaidTransaction(BaseModel):
    model_config = ConfigDict(extra="allow")
    transaction_id: str
    account_id: str
    amount: float  # positive = money out, negative = money in
    date: date
    name: str
    merchant_name: Optional[str] = None
    category: Optional[List[str]] = None
    pending: bool = False


class ConnectedInstitution(BaseModel):
    item_id: str
    institution: PlaidInstitution
    connected_at: datetime


class ExchangeTokenIn(BaseModel):
    public_token: str
    institution: PlaidInstitution = Field(default_factory=PlaidInstitution)


class TransactionsSyncIn(BaseModel):
    cursor: Optional[str] = None


class BankSyncResult(BaseModel):
    item_id: Optional[str] = None
    imported: int
    transactions: List[TransactionOut]


# ---------- BACKUP ----------
class ExportDocument(BaseModel):
    version: int = 1
    exported_at: datetime
    transactions: List[TransactionOut] = Field(default_factory=list)
    budgets: List[BudgetOut] = Field(default_factory=list)
    goals: List[GoalOut] = Field(default_factory=list)
    conversations: List[ConversationOut] = Field(default_factory=list)
