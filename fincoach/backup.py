import json
from datetime import datetime

from sqlalchemy.orm import Session

from fincoach.models import Budget, Conversation, Goal, Message, Transaction
from fincoach.schemas import BudgetOut, ConversationOut, ExportDocument, GoalOut, TransactionOut

EXPORT_VERSION = 1


def export_data(db: Session) -> str:
    """Serialize the four collections into one JSON document."""
    doc = ExportDocument(
        version=EXPORT_VERSION,
        exported_at=datetime.utcnow(),
        transactions=[TransactionOut.model_validate(t) for t in db.query(Transaction).all()],
        budgets=[BudgetOut.model_validate(b) for b in db.query(Budget).all()],
        goals=[GoalOut.model_validate(g) for g in db.query(Goal).all()],
        conversations=[ConversationOut.model_validate(c) for c in db.query(Conversation).all()],
    )
    return json.dumps(doc.model_dump(mode="json"), indent=2)


def _delete_all(db: Session) -> None:
    db.query(Message).delete()
    db.query(Conversation).delete()
    db.query(Transaction).delete()
    db.query(Budget).delete()
    db.query(Goal).delete()


def clear_all_data(db: Session) -> None:
    try:
        _delete_all(db)
        db.commit()
    except Exception:
        db.rollback()
        raise


def import_data(db: Session, json_string: str) -> ExportDocument:
    """
    Replace everything with the contents of an export document. Either the
    whole document lands or nothing changes.
    """
    doc = ExportDocument.model_validate_json(json_string)
    restore_document(db, doc)
    return doc


def restore_document(db: Session, doc: ExportDocument) -> None:
    try:
        _delete_all(db)
        db.flush()
        db.expunge_all()  # rows come back under the same ids

        db.add_all(Transaction(**t.model_dump()) for t in doc.transactions)
        db.add_all(Budget(**b.model_dump()) for b in doc.budgets)
        db.add_all(Goal(**g.model_dump()) for g in doc.goals)

        for c in doc.conversations:
            conversation = Conversation(id=c.id, title=c.title, created_at=c.created_at, updated_at=c.updated_at)
            for position, m in enumerate(c.messages):
                conversation.messages.append(
                    Message(
                        id=m.id,
                        position=position,
                        role=m.role,
                        content=m.content,
                        timestamp=m.timestamp,
                        meta=m.metadata.model_dump(exclude_none=True) if m.metadata else None,
                    )
                )
            db.add(conversation)

        db.commit()
    except Exception:
        db.rollback()
        raise
