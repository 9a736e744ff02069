"""Transaction model - a ledger row ingested from the Plaid change feed."""

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Numeric, String

from database import Base
from models.utils import generate_uuid, utc_now


class Transaction(Base):
    """A bank transaction applied from ``/transactions/sync``.

    ``transaction_id`` is Plaid's identifier and the only key the change
    feed refers to: at most one row may exist per id. ``amount`` keeps
    Plaid's sign convention (positive = money leaving the account);
    ``amount_normalized`` flips it to the accounting convention.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    transaction_id = Column(String, unique=True, index=True, nullable=False)
    item_id = Column(String, index=True, nullable=True)  # Plaid item_id the row came from
    account_id = Column(String, index=True, nullable=False)  # Plaid account_id
    amount = Column(Numeric(18, 2), nullable=False)
    amount_normalized = Column(Numeric(18, 2), nullable=False)
    date = Column(Date, index=True, nullable=False)
    authorized_date = Column(Date, nullable=True)
    name = Column(String, nullable=True)
    merchant_name = Column(String, nullable=True)
    category = Column(JSON, nullable=True)  # list[str]
    pending = Column(Boolean, default=False, nullable=False)
    payment_channel = Column(String, nullable=True)
    iso_currency_code = Column(String(3), nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )
