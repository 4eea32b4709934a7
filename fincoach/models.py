import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Float, Boolean, Date, DateTime, Integer, Text, JSON, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def generate_id() -> str:
    return uuid.uuid4().hex


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(32), primary_key=True, default=generate_id)
    amount = Column(Float, nullable=False)  # always positive, direction lives in `type`
    type = Column(String(16), nullable=False)  # "expense" | "income"
    category = Column(String(64), nullable=False, index=True)
    subcategory = Column(String(64), nullable=True)
    merchant = Column(String(200), nullable=False, index=True)
    description = Column(String(500), nullable=False, default="")
    date = Column(Date, nullable=False, index=True)
    payment_method = Column(String(32), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    plaid_transaction_id = Column(String(128), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Budget(Base):
    __tablename__ = "budgets"

    id = Column(String(32), primary_key=True, default=generate_id)
    category = Column(String(64), nullable=False)
    monthly_limit = Column(Float, nullable=False)
    alert_threshold = Column(Float, nullable=False, default=75)
    rollover = Column(Boolean, nullable=False, default=False)  # stored, not applied
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("category", name="unique_budget_category"),)


class Goal(Base):
    __tablename__ = "goals"

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, nullable=False, default=0.0)
    deadline = Column(Date, nullable=False, index=True)
    priority = Column(String(16), nullable=False, index=True)  # "high" | "medium" | "low"
    category = Column(String(64), nullable=False)
    status = Column(String(16), nullable=False, default="active", index=True)
    motivations = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(32), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.position",
        cascade="all, delete-orphan",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(32), primary_key=True, default=generate_id)
    conversation_id = Column(String(32), ForeignKey("conversations.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    role = Column(String(16), nullable=False)  # "user" | "assistant"
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    meta = Column("metadata", JSON, nullable=True)

    conversation = relationship("Conversation", back_populates="messages")


class PlaidItem(Base):
    __tablename__ = "plaid_items"

    item_id = Column(String(128), primary_key=True)
    access_token = Column(String(255), nullable=False)
    institution = Column(JSON, nullable=False)  # {"institution_id": ..., "name": ...}
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
