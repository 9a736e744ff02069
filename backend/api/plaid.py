"""Plaid Link API endpoints.

Provides the server-side endpoints for the Plaid Link browser-based
authentication flow: creating link tokens, exchanging public tokens, and
managing linked institutions (PlaidItems) and their accounts.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import current_request_id
from database import get_db
from integrations.exceptions import ProviderConfigError, ProviderError
from integrations.plaid_client import PlaidClient
from schemas import (
    DeletedCounts,
    ExchangeTokenRequest,
    ExchangeTokenResponse,
    LinkTokenResponse,
    PlaidAccountResponse,
    PlaidItemResponse,
    RemoveItemResponse,
)
from services.connection_service import ConnectionService, ItemNotFoundError, NoAccountsError
from services.sync_service import SyncInProgressError, SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["plaid"])

_plaid_client: Optional[PlaidClient] = None


def _get_plaid_client() -> PlaidClient:
    """Dependency for injecting the Plaid client (overridable in tests).

    One client is shared by all requests.
    """
    global _plaid_client
    if _plaid_client is None:
        _plaid_client = PlaidClient()
    return _plaid_client


def get_sync_service(client: PlaidClient = Depends(_get_plaid_client)) -> SyncService:
    return SyncService(client=client)


def get_connection_service(
    client: PlaidClient = Depends(_get_plaid_client),
    sync_service: SyncService = Depends(get_sync_service),
) -> ConnectionService:
    return ConnectionService(provider=client, sync_service=sync_service)


@router.post("/link-token", response_model=LinkTokenResponse)
def create_link_token(
    client: PlaidClient = Depends(_get_plaid_client),
):
    """Create a Plaid Link token for the frontend."""
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    try:
        link_token = client.create_link_token()
        return LinkTokenResponse(link_token=link_token)
    except ProviderError as e:
        # Surface actionable hint for the most common error
        if isinstance(e, ProviderConfigError):
            hint = (
                "Plaid rejected the credentials. Check that PLAID_ENVIRONMENT "
                "matches your keys (sandbox or production). "
                "Each environment has different secrets."
            )
            logger.error("Plaid rejected the API keys (%s): %s", e.error_code or "no code", hint)
            raise HTTPException(status_code=400, detail=hint)
        logger.error("Failed to create Plaid link token: %s", e)
        raise HTTPException(status_code=502, detail="Failed to create link token")
    except Exception:
        logger.error("Unexpected error creating Plaid link token", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create link token")


@router.post("/exchange-token", response_model=ExchangeTokenResponse)
def exchange_token(
    body: ExchangeTokenRequest,
    db: Session = Depends(get_db),
    client: PlaidClient = Depends(_get_plaid_client),
    service: ConnectionService = Depends(get_connection_service),
    request_id: str = Depends(current_request_id),
):
    """Exchange a Plaid Link public_token, store the Item and its accounts, and sync once.

    The initial transactions sync is best effort; the connection succeeds
    even when the sync does not.
    """
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    try:
        result = service.exchange(
            db,
            body.public_token,
            institution_id=body.institution_id,
            institution_name=body.institution_name,
            context=body.context,
            correlation_id=request_id,
        )
    except NoAccountsError as e:
        logger.warning("%s", e)
        raise HTTPException(
            status_code=502,
            detail="Bank connected but no accounts were returned. Check the account permissions granted in Plaid Link.",
        )
    except ProviderError as e:
        logger.error("Failed to exchange Plaid token: %s", e)
        raise HTTPException(status_code=502, detail="Failed to exchange token")
    except Exception:
        logger.error("Unexpected error exchanging Plaid token", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to exchange token")

    return ExchangeTokenResponse(
        item_id=result.item_id,
        institution_name=result.institution_name,
        is_duplicate=result.is_duplicate,
        accounts_upserted=result.accounts_upserted,
        request_id=request_id,
    )


@router.get("/items", response_model=list[PlaidItemResponse])
def list_items(db: Session = Depends(get_db)):
    """List all linked Plaid Items, newest first."""
    return ConnectionService.list_items(db)


@router.delete("/items/{item_id}", response_model=RemoveItemResponse)
def remove_item(
    item_id: str,
    db: Session = Depends(get_db),
    service: ConnectionService = Depends(get_connection_service),
):
    """Remove a linked Plaid Item (revokes token with Plaid, then deletes locally)."""
    try:
        result = service.remove_item(db, item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    except SyncInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return RemoveItemResponse(
        item_id=result.item_id,
        message=f"Removed {result.institution_name or 'bank connection'}",
        deleted=DeletedCounts(
            transactions=result.transactions_deleted,
            accounts=result.accounts_deleted,
        ),
    )


@router.get("/accounts", response_model=list[PlaidAccountResponse])
def list_accounts(
    item_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List stored accounts, optionally for a single Item."""
    return ConnectionService.list_accounts(db, item_id=item_id)
