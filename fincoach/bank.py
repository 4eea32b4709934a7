"""
Bank sync: talks to the Plaid proxy over HTTP and imports transactions locally.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import requests
from sqlalchemy.orm import Session

from fincoach.categories import PLAID_CATEGORY_MAP
from fincoach.errors import BankServiceError
from fincoach.models import Transaction
from fincoach.schemas import (
    ConnectedInstitution, PlaidAccount, PlaidInstitution, PlaidTransaction, TransactionCreate
)
from fincoach.transactions import create_transaction, get_transaction_by_plaid_id

logger = logging.getLogger(__name__)

BANK_IMPORT_TAG = "bank-import"


class BankClient:
    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/plaid{path}"

    def _check(self, resp: requests.Response, failure: str) -> Dict[str, Any]:
        if not resp.ok:
            raise BankServiceError(failure)
        return resp.json()

    def _call(self, method: str, path: str, failure: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = requests.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise BankServiceError(failure) from e
        return self._check(resp, failure)

    def create_link_token(self) -> str:
        data = self._call("POST", "/create-link-token", "Failed to create link token")
        return data["link_token"]

    def exchange_token(self, public_token: str, institution: PlaidInstitution) -> Dict[str, Any]:
        return self._call(
            "POST", "/exchange-token", "Failed to exchange token",
            json={"public_token": public_token, "institution": institution.model_dump()},
        )

    def get_accounts(self, item_id: str) -> List[PlaidAccount]:
        data = self._call("GET", f"/accounts/{item_id}", "Failed to get accounts")
        return [PlaidAccount.model_validate(a) for a in data.get("accounts", [])]

    def get_plaid_transactions(
        self, item_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[PlaidTransaction]:
        params = {}
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            params["endDate"] = end_date.isoformat()
        data = self._call("GET", f"/transactions/{item_id}", "Failed to get transactions", params=params)
        return [PlaidTransaction.model_validate(t) for t in data.get("transactions", [])]

    def sync_transactions_page(self, item_id: str, cursor: Optional[str] = None) -> Dict[str, Any]:
        return self._call(
            "POST", f"/transactions/sync/{item_id}", "Failed to sync transactions", json={"cursor": cursor}
        )

    def get_connected_institutions(self) -> List[ConnectedInstitution]:
        data = self._call("GET", "/institutions", "Failed to get institutions")
        return [ConnectedInstitution.model_validate(i) for i in data.get("institutions", [])]

    def remove_institution(self, item_id: str) -> None:
        self._call("DELETE", f"/item/{item_id}", "Failed to remove institution")


# ---------- CONVERSION ----------

def map_plaid_category(plaid_categories: Optional[List[str]]) -> str:
    if not plaid_categories:
        return "other"
    primary = (plaid_categories[0] or "").lower()
    secondary = (plaid_categories[1] or "").lower() if len(plaid_categories) > 1 else ""

    for keyword, category in PLAID_CATEGORY_MAP:
        if keyword in primary or keyword in secondary:
            return category
    return "other"


def convert_plaid_transactions(plaid_transactions: Iterable[PlaidTransaction]) -> List[TransactionCreate]:
    """
    Plaid reports money out as positive and money in as negative; locally the
    amount is always positive and the direction goes in `type`. Pending and
    zero-amount rows are skipped.
    """
    converted = []
    for t in plaid_transactions:
        if t.pending or t.amount == 0:
            continue
        notes = "Imported from bank"
        if t.category:
            notes += " - " + " > ".join(t.category)
        converted.append(
            TransactionCreate(
                amount=abs(t.amount),
                type="expense" if t.amount > 0 else "income",
                category=map_plaid_category(t.category),
                merchant=t.merchant_name or t.name,
                description=t.name,
                date=t.date,
                notes=notes,
                tags=[BANK_IMPORT_TAG],
                plaid_transaction_id=t.transaction_id,
            )
        )
    return converted


# ---------- SYNC ----------

def import_transactions(db: Session, candidates: Iterable[TransactionCreate]) -> List[Transaction]:
    """Insert candidates whose Plaid id has not been seen before."""
    saved = []
    for data in candidates:
        if data.plaid_transaction_id and get_transaction_by_plaid_id(db, data.plaid_transaction_id):
            continue
        saved.append(create_transaction(db, data))
    return saved


def sync_institution(
    db: Session,
    client: BankClient,
    item_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Transaction]:
    plaid_transactions = client.get_plaid_transactions(item_id, start_date, end_date)
    saved = import_transactions(db, convert_plaid_transactions(plaid_transactions))
    logger.info("Synced item %s: %d fetched, %d new", item_id, len(plaid_transactions), len(saved))
    return saved


def sync_all_institutions(db: Session, client: BankClient) -> List[Transaction]:
    """One institution at a time, in the order the proxy lists them."""
    saved: List[Transaction] = []
    for institution in client.get_connected_institutions():
        saved.extend(sync_institution(db, client, institution.item_id))
    return saved
