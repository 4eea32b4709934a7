import logging
from datetime import date
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from openai import OpenAI, AuthenticationError, RateLimitError
from sqlalchemy.orm import Session

from fincoach import config
from fincoach.analytics import category_shares
from fincoach.budgets import get_all_budget_progress
from fincoach.categories import get_category_name
from fincoach.errors import AIConfigurationError, AIError, AIResponseError, InvalidAPIKeyError, RateLimitedError
from fincoach.finance_utils import format_currency, format_long_date, format_short_date, month_range
from fincoach.goals import get_goals_by_status
from fincoach.schemas import (
    BudgetStatusEntry, ContextGoal, ContextTransaction, ConversationContext, MonthContext, UserProfile
)
from fincoach.transactions import get_recent_transactions, get_spending_by_category, get_transaction_stats

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "I apologize, but I was unable to generate a response."

_client: Optional[OpenAI] = None
if config.OPENAI_API_KEY:
    _client = OpenAI(
        api_key=config.OPENAI_API_KEY,
        project=config.OPENAI_PROJECT,
        organization=config.OPENAI_ORG_ID,
    )


def is_api_key_configured() -> bool:
    return _client is not None


def _get_client() -> OpenAI:
    if _client is None:
        raise AIConfigurationError()
    return _client


# ---------- CONTEXT ----------

def build_conversation_context(db: Session, today: Optional[date] = None) -> ConversationContext:
    """Snapshot of this month's numbers, budgets, recent activity and active goals."""
    today = today or date.today()
    month_start, month_end = month_range(today)

    stats = get_transaction_stats(db, month_start, month_end)
    category_spending = get_spending_by_category(db, month_start, month_end)
    recent = get_recent_transactions(db, 10)
    budget_progress = get_all_budget_progress(db, today)
    active_goals = get_goals_by_status(db, "active")

    budget_status: Dict[str, BudgetStatusEntry] = {
        bp.budget.category: BudgetStatusEntry(
            spent=bp.spent, limit=bp.budget.monthly_limit, percentage=bp.percentage
        )
        for bp in budget_progress
    }

    return ConversationContext(
        current_month=MonthContext(
            total_spent=stats.total_expenses,
            total_income=stats.total_income,
            budget_status=budget_status,
            top_categories=category_shares(category_spending),
        ),
        recent_transactions=[
            ContextTransaction(merchant=t.merchant, amount=t.amount, category=t.category, date=t.date)
            for t in recent
        ],
        active_goals=[
            ContextGoal(
                name=g.name,
                target_amount=g.target_amount,
                current_amount=g.current_amount,
                deadline=g.deadline,
            )
            for g in active_goals
        ],
        user_profile=UserProfile(financial_knowledge="intermediate"),
    )


def build_system_prompt(context: ConversationContext, today: Optional[date] = None) -> str:
    today = today or date.today()
    month = context.current_month

    budget_lines = "\n".join(
        f"  - {get_category_name(category)}: {format_currency(s.spent)} of {format_currency(s.limit)} ({s.percentage:.0f}%)"
        for category, s in month.budget_status.items()
    ) or "  No budgets set"

    category_lines = "\n".join(
        f"  - {get_category_name(c.category)}: {format_currency(c.amount)} ({c.percentage:.1f}%)"
        for c in month.top_categories[:5]
    ) or "  No spending data"

    recent_lines = "\n".join(
        f"  - {t.merchant}: {format_currency(t.amount)} ({t.category}) on {format_short_date(t.date)}"
        for t in context.recent_transactions[:5]
    ) or "  No recent transactions"

    goal_lines = "\n".join(
        f"  - {g.name}: {format_currency(g.current_amount)} of {format_currency(g.target_amount)}"
        f" (due {format_long_date(g.deadline)})"
        for g in context.active_goals
    ) or "  No active goals"

    return f"""You are FinCoach, an AI-powered financial wellness coach designed to help users improve their spending habits, achieve financial goals, and build financial literacy.

PERSONALITY & TONE:
- Friendly, encouraging, and non-judgmental
- Enthusiastic about wins, constructive about setbacks
- Educational but not condescending
- Use occasional emojis sparingly for warmth (1-2 per message max)
- Adapt complexity to user's financial knowledge level: {context.user_profile.financial_knowledge}

CORE CAPABILITIES:
1. Spending Analysis: Analyze transactions, identify patterns, spot anomalies
2. Budget Coaching: Help set realistic budgets, track progress, suggest adjustments
3. Goal Support: Break down financial goals, create action plans, celebrate milestones
4. Financial Education: Teach concepts in context, provide explanations
5. Behavioral Insights: Identify spending triggers, suggest habit changes

RESPONSE GUIDELINES:
- Keep responses concise (2-4 paragraphs unless detailed analysis requested)
- Always base insights on the actual user data provided below
- Provide specific, actionable recommendations with numbers when possible
- Ask clarifying questions when needed
- Celebrate progress and achievements
- Offer to dive deeper into any topic

CURRENT USER CONTEXT ({today.strftime('%B %Y')}):

Monthly Summary:
- Total Spent: {format_currency(month.total_spent)}
- Total Income: {format_currency(month.total_income)}
- Net: {format_currency(month.total_income - month.total_spent)}

Budget Status:
{budget_lines}

Top Spending Categories:
{category_lines}

Recent Transactions:
{recent_lines}

Active Goals:
{goal_lines}

IMPORTANT LIMITATIONS:
- You're a coach, not a licensed financial advisor
- Don't provide specific investment advice, tax guidance, or legal counsel
- For complex financial planning, recommend consulting a certified financial planner
- Never make up data - only reference the actual numbers provided above
- If asked about data you don't have, acknowledge the limitation"""


# ---------- CHAT ----------

def build_messages(system_prompt: str, user_message: str, history: Sequence) -> List[Dict[str, str]]:
    """
    History items only need `role` and `content`; blank turns are dropped.
    """
    messages = [{"role": "system", "content": system_prompt}]
    messages += [
        {"role": m.role, "content": m.content}
        for m in history
        if (m.content or "").strip()
    ]
    messages.append({"role": "user", "content": user_message})
    return messages


def _translate_error(e: Exception) -> AIError:
    if isinstance(e, AIError):
        return e
    text = str(e)
    if isinstance(e, AuthenticationError) or "API key" in text:
        return InvalidAPIKeyError()
    if isinstance(e, RateLimitError) or "rate limit" in text.lower():
        return RateLimitedError()
    return AIResponseError()


def _prepare(db: Session, user_message: str, history: Sequence, context: Optional[ConversationContext],
             today: Optional[date]) -> List[Dict[str, str]]:
    ctx = context or build_conversation_context(db, today)
    return build_messages(build_system_prompt(ctx, today), user_message, history)


def send_message(
    db: Session,
    user_message: str,
    history: Sequence = (),
    context: Optional[ConversationContext] = None,
    today: Optional[date] = None,
) -> str:
    client = _get_client()
    messages = _prepare(db, user_message, history, context, today)

    try:
        resp = client.chat.completions.create(
            model=config.OPENAI_MODEL,
            max_tokens=config.AI_MAX_TOKENS,
            messages=messages,
        )
    except Exception as e:
        logger.error("Error calling OpenAI API: %s", e, exc_info=True)
        raise _translate_error(e) from e

    try:
        content = resp.choices[0].message.content
    except (AttributeError, IndexError):
        content = None
    return content.strip() if content and content.strip() else NO_RESPONSE_TEXT


def iter_message_chunks(
    db: Session,
    user_message: str,
    history: Sequence = (),
    context: Optional[ConversationContext] = None,
    today: Optional[date] = None,
) -> Iterator[str]:
    """Yield response text as it arrives."""
    stream = open_message_stream(db, user_message, history, context, today)
    yield from iter_stream_text(stream)


def open_message_stream(
    db: Session,
    user_message: str,
    history: Sequence = (),
    context: Optional[ConversationContext] = None,
    today: Optional[date] = None,
):
    """
    Start a streaming completion. Not a generator: configuration, auth and
    rate-limit failures raise here, before any response text exists.
    """
    client = _get_client()
    messages = _prepare(db, user_message, history, context, today)

    try:
        return client.chat.completions.create(
            model=config.OPENAI_MODEL,
            max_tokens=config.AI_MAX_TOKENS,
            messages=messages,
            stream=True,
        )
    except Exception as e:
        logger.error("Error calling OpenAI API: %s", e, exc_info=True)
        raise _translate_error(e) from e


def iter_stream_text(stream) -> Iterator[str]:
    try:
        for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta
    except Exception as e:
        logger.error("Error streaming from OpenAI API: %s", e, exc_info=True)
        raise _translate_error(e) from e


def stream_message(
    db: Session,
    user_message: str,
    history: Sequence,
    on_chunk: Callable[[str], None],
    context: Optional[ConversationContext] = None,
    today: Optional[date] = None,
) -> str:
    full_response = ""
    for chunk in iter_message_chunks(db, user_message, history, context, today):
        full_response += chunk
        on_chunk(chunk)
    return full_response
