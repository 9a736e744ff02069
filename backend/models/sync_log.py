"""SyncLogEntry model - records the result of each transactions sync run."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class SyncLogEntry(Base):
    """A log entry recording the result of syncing a single Item.

    Each call to the sync consumer writes one entry, whether the run
    completed or was aborted part-way through.
    """

    __tablename__ = "sync_log_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    plaid_item_id = Column(
        String(36), ForeignKey("plaid_items.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String, nullable=False)  # "success" | "failed"
    pages_applied = Column(Integer, default=0)
    added_count = Column(Integer, default=0)
    modified_count = Column(Integer, default=0)
    removed_count = Column(Integer, default=0)
    skipped_count = Column(Integer, default=0)
    failed_count = Column(Integer, default=0)
    final_cursor = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    correlation_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    item = relationship("PlaidItem", back_populates="sync_log_entries")
