"""Pydantic schemas for bank connection endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class LinkTokenResponse(BaseModel):
    link_token: str


class ExchangeTokenRequest(BaseModel):
    public_token: str
    institution_id: Optional[str] = None
    institution_name: Optional[str] = None
    context: Literal["personal", "business"] = "personal"


class ExchangeTokenResponse(BaseModel):
    item_id: str
    institution_name: Optional[str] = None
    status: str = "connected"
    is_duplicate: bool
    accounts_upserted: int
    request_id: Optional[str] = None


class PlaidItemResponse(BaseModel):
    """A linked Item. The access token is never part of this schema."""

    id: str
    item_id: str
    institution_id: Optional[str] = None
    institution_name: Optional[str] = None
    status: str
    context: str
    last_synced_at: Optional[datetime] = None
    last_sync_error: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PlaidAccountResponse(BaseModel):
    id: str
    account_id: str
    name: str
    official_name: Optional[str] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    mask: Optional[str] = None
    account_label: Optional[str] = None
    is_liability: bool
    balance_current: Optional[Decimal] = None
    balance_available: Optional[Decimal] = None
    balance_limit: Optional[Decimal] = None
    iso_currency_code: str
    last_synced_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DeletedCounts(BaseModel):
    transactions: int
    accounts: int


class RemoveItemResponse(BaseModel):
    status: str = "ok"
    item_id: str
    message: str
    deleted: DeletedCounts
