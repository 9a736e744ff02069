"""PlaidAccount model - a bank account discovered under a PlaidItem."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class PlaidAccount(Base):
    """An account reported by Plaid for a linked Item.

    ``account_id`` is Plaid's identifier and is unique across all Items, so
    reconnecting the same bank updates rows in place. Balances are a cached
    snapshot from the last connect, not an authoritative ledger.
    """

    __tablename__ = "plaid_accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String, unique=True, index=True, nullable=False)
    plaid_item_id = Column(
        String(36), ForeignKey("plaid_items.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    official_name = Column(String, nullable=True)
    type = Column(String, nullable=True)  # e.g., "depository", "credit", "loan"
    subtype = Column(String, nullable=True)  # e.g., "checking", "credit card"
    mask = Column(String, nullable=True)
    account_label = Column(String, nullable=True)  # Human-readable type label
    is_liability = Column(Boolean, default=False, nullable=False)

    balance_current = Column(Numeric(18, 2), nullable=True)
    balance_available = Column(Numeric(18, 2), nullable=True)
    balance_limit = Column(Numeric(18, 2), nullable=True)
    iso_currency_code = Column(String(3), nullable=False, default="USD")

    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    item = relationship("PlaidItem", back_populates="accounts")
