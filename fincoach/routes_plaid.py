# Plaid proxy routes: forwards each call to Plaid with the server-held secret
# and keeps item access tokens in the injected TokenStore.

import logging
import time
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from fincoach.plaid_proxy import PlaidClient, TokenStore, describe_plaid_error, get_plaid_client, get_token_store
from fincoach.schemas import ExchangeTokenIn, TransactionsSyncIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["plaid"])

DEFAULT_WINDOW_DAYS = 30


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _item_not_found() -> JSONResponse:
    return _error(404, "Item not found")


@router.post("/create-link-token")
def create_link_token(plaid: PlaidClient = Depends(get_plaid_client)):
    try:
        data = plaid.link_token_create(client_user_id=f"user-{int(time.time() * 1000)}")
        return {"link_token": data["link_token"]}
    except Exception as e:
        logger.error("Error creating link token: %s", describe_plaid_error(e))
        return _error(500, "Failed to create link token")


@router.post("/exchange-token")
def exchange_token(
    body: ExchangeTokenIn,
    plaid: PlaidClient = Depends(get_plaid_client),
    store: TokenStore = Depends(get_token_store),
):
    try:
        data = plaid.item_public_token_exchange(body.public_token)
        institution = body.institution.model_dump()
        store.put(data["item_id"], data["access_token"], institution)
        return {"item_id": data["item_id"], "institution": institution}
    except Exception as e:
        logger.error("Error exchanging token: %s", describe_plaid_error(e))
        return _error(500, "Failed to exchange token")


@router.get("/accounts/{item_id}")
def get_accounts(
    item_id: str,
    plaid: PlaidClient = Depends(get_plaid_client),
    store: TokenStore = Depends(get_token_store),
):
    token = store.get(item_id)
    if not token:
        return _item_not_found()
    try:
        data = plaid.accounts_get(token["access_token"])
        return {"accounts": data.get("accounts", []), "institution": token["institution"]}
    except Exception as e:
        logger.error("Error getting accounts: %s", describe_plaid_error(e))
        return _error(500, "Failed to get accounts")


@router.get("/transactions/{item_id}")
def get_transactions(
    item_id: str,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    plaid: PlaidClient = Depends(get_plaid_client),
    store: TokenStore = Depends(get_token_store),
):
    token = store.get(item_id)
    if not token:
        return _item_not_found()

    end = end_date or date.today()
    start = start_date or (date.today() - timedelta(days=DEFAULT_WINDOW_DAYS))

    try:
        data = plaid.transactions_get(token["access_token"], start.isoformat(), end.isoformat())
        return {
            "transactions": data.get("transactions", []),
            "accounts": data.get("accounts", []),
            "total_transactions": data.get("total_transactions", 0),
        }
    except Exception as e:
        logger.error("Error getting transactions: %s", describe_plaid_error(e))
        return _error(500, "Failed to get transactions")


@router.post("/transactions/sync/{item_id}")
def sync_transactions(
    item_id: str,
    body: Optional[TransactionsSyncIn] = None,
    plaid: PlaidClient = Depends(get_plaid_client),
    store: TokenStore = Depends(get_token_store),
):
    token = store.get(item_id)
    if not token:
        return _item_not_found()
    try:
        data = plaid.transactions_sync(token["access_token"], body.cursor if body else None)
        return {
            "added": data.get("added", []),
            "modified": data.get("modified", []),
            "removed": data.get("removed", []),
            "next_cursor": data.get("next_cursor"),
            "has_more": data.get("has_more", False),
        }
    except Exception as e:
        logger.error("Error syncing transactions: %s", describe_plaid_error(e))
        return _error(500, "Failed to sync transactions")


@router.get("/institutions")
def list_institutions(store: TokenStore = Depends(get_token_store)):
    return {
        "institutions": [
            {
                "item_id": row["item_id"],
                "institution": row["institution"],
                "connected_at": row["created_at"].isoformat(),
            }
            for row in store.list()
        ]
    }


@router.delete("/item/{item_id}")
def remove_item(
    item_id: str,
    plaid: PlaidClient = Depends(get_plaid_client),
    store: TokenStore = Depends(get_token_store),
):
    token = store.get(item_id)
    if not token:
        return _item_not_found()
    try:
        plaid.item_remove(token["access_token"])
        store.delete(item_id)
        return {"success": True}
    except Exception as e:
        logger.error("Error removing item: %s", describe_plaid_error(e))
        return _error(500, "Failed to remove item")
