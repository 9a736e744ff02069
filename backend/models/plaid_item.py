"""PlaidItem model - one row per linked bank connection."""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now

ITEM_STATUSES = ("active", "error", "revoked")
ITEM_CONTEXTS = ("personal", "business")


class PlaidItem(Base):
    """A Plaid Item representing a linked financial institution login.

    Each institution linked via Plaid Link gets its own access_token and
    its own transactions sync cursor. Re-linking the same institution
    updates this row rather than creating a second one.
    """

    __tablename__ = "plaid_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    item_id = Column(String, unique=True, index=True, nullable=False)
    access_token = Column(String, nullable=False)
    institution_id = Column(String, nullable=True)
    institution_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active")  # "active" | "error" | "revoked"
    context = Column(String, nullable=False, default="personal")  # "personal" | "business"

    # Transactions sync checkpoint; None means "start from full history"
    sync_cursor = Column(Text, nullable=True)
    last_synced_at = Column(DateTime, nullable=True)
    last_sync_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    accounts = relationship(
        "PlaidAccount", back_populates="item", cascade="all, delete-orphan"
    )
    sync_log_entries = relationship(
        "SyncLogEntry", back_populates="item", cascade="all, delete-orphan"
    )
