"""
Server-side access to the Plaid API.

`PlaidClient` speaks Plaid's JSON-over-HTTP API with the server-held client id
and secret. Access tokens never leave the server: they live in a `TokenStore`
keyed by item id, which is handed to the routes as a dependency.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import redis
import requests
from sqlalchemy.orm import Session, sessionmaker

from fincoach import config
from fincoach.models import PlaidItem

logger = logging.getLogger(__name__)

PLAID_ENVIRONMENTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}

TRANSACTIONS_PAGE_SIZE = 500


class PlaidClient:
    def __init__(self, client_id: Optional[str], secret: Optional[str], environment: str = "sandbox",
                 timeout: float = 30.0):
        self.client_id = client_id
        self.secret = secret
        self.base_url = PLAID_ENVIRONMENTS.get(environment, PLAID_ENVIRONMENTS["sandbox"])
        self.timeout = timeout

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        payload = {"client_id": self.client_id, "secret": self.secret, **body}
        resp = requests.post(
            f"{self.base_url}{path}",
            headers={"Content-Type": "application/json"},
            data=json.dumps(payload),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def link_token_create(self, client_user_id: str) -> Dict[str, Any]:
        return self._post("/link/token/create", {
            "user": {"client_user_id": client_user_id},
            "client_name": "FinCoach",
            "products": ["transactions"],
            "country_codes": ["US"],
            "language": "en",
        })

    def item_public_token_exchange(self, public_token: str) -> Dict[str, Any]:
        return self._post("/item/public_token/exchange", {"public_token": public_token})

    def accounts_get(self, access_token: str) -> Dict[str, Any]:
        return self._post("/accounts/get", {"access_token": access_token})

    def transactions_get(self, access_token: str, start_date: str, end_date: str) -> Dict[str, Any]:
        return self._post("/transactions/get", {
            "access_token": access_token,
            "start_date": start_date,
            "end_date": end_date,
            "options": {"count": TRANSACTIONS_PAGE_SIZE, "offset": 0},
        })

    def transactions_sync(self, access_token: str, cursor: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"access_token": access_token}
        if cursor:
            body["cursor"] = cursor
        return self._post("/transactions/sync", body)

    def item_remove(self, access_token: str) -> Dict[str, Any]:
        return self._post("/item/remove", {"access_token": access_token})


def describe_plaid_error(e: Exception) -> str:
    """Best-effort text of an upstream failure, for logs."""
    resp = getattr(e, "response", None)
    if resp is not None:
        try:
            return json.dumps(resp.json())
        except ValueError:
            return resp.text
    return str(e)


# ---------- TOKEN STORES ----------

class TokenStore(ABC):
    """item_id -> {"access_token", "institution", "created_at"}"""

    @abstractmethod
    def get(self, item_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def put(self, item_id: str, access_token: str, institution: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, item_id: str) -> bool:
        ...

    @abstractmethod
    def list(self) -> List[Dict[str, Any]]:
        ...


class SqlTokenStore(TokenStore):
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _row(item: PlaidItem) -> Dict[str, Any]:
        return {
            "item_id": item.item_id,
            "access_token": item.access_token,
            "institution": item.institution,
            "created_at": item.created_at,
        }

    def get(self, item_id: str) -> Optional[Dict[str, Any]]:
        session: Session = self.session_factory()
        try:
            item = session.get(PlaidItem, item_id)
            return self._row(item) if item else None
        finally:
            session.close()

    def put(self, item_id: str, access_token: str, institution: Dict[str, Any]) -> None:
        session: Session = self.session_factory()
        try:
            item = session.get(PlaidItem, item_id)
            if not item:
                item = PlaidItem(item_id=item_id, created_at=datetime.utcnow())
                session.add(item)
            item.access_token = access_token
            item.institution = institution
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def delete(self, item_id: str) -> bool:
        session: Session = self.session_factory()
        try:
            item = session.get(PlaidItem, item_id)
            if not item:
                return False
            session.delete(item)
            session.commit()
            return True
        finally:
            session.close()

    def list(self) -> List[Dict[str, Any]]:
        session: Session = self.session_factory()
        try:
            items = session.query(PlaidItem).order_by(PlaidItem.created_at).all()
            return [self._row(i) for i in items]
        finally:
            session.close()


class RedisTokenStore(TokenStore):
    def __init__(self, client: redis.Redis, key: str = "plaid_items_v1"):
        self.client = client
        self.key = key

    @staticmethod
    def _decode(raw) -> Dict[str, Any]:
        data = json.loads(raw)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        return data

    def get(self, item_id: str) -> Optional[Dict[str, Any]]:
        raw = self.client.hget(self.key, item_id)
        return self._decode(raw) if raw else None

    def put(self, item_id: str, access_token: str, institution: Dict[str, Any]) -> None:
        existing = self.get(item_id)
        created_at = existing["created_at"] if existing else datetime.utcnow()
        self.client.hset(self.key, item_id, json.dumps({
            "item_id": item_id,
            "access_token": access_token,
            "institution": institution,
            "created_at": created_at.isoformat(),
        }))

    def delete(self, item_id: str) -> bool:
        return bool(self.client.hdel(self.key, item_id))

    def list(self) -> List[Dict[str, Any]]:
        rows = [self._decode(raw) for raw in self.client.hvals(self.key)]
        return sorted(rows, key=lambda r: r["created_at"])


# ---------- DEPENDENCIES ----------

_plaid_client: Optional[PlaidClient] = None
_token_store: Optional[TokenStore] = None


def get_plaid_client() -> PlaidClient:
    global _plaid_client
    if _plaid_client is None:
        _plaid_client = PlaidClient(config.PLAID_CLIENT_ID, config.PLAID_SECRET, config.PLAID_ENV)
    return _plaid_client


def get_token_store() -> TokenStore:
    global _token_store
    if _token_store is None:
        if config.PLAID_TOKEN_STORE == "redis":
            _token_store = RedisTokenStore(redis.Redis.from_url(config.REDIS_URL))
        else:
            from fincoach.db import SessionLocal

            _token_store = SqlTokenStore(SessionLocal)
    return _token_store
