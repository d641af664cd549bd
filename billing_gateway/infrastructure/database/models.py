"""SQLAlchemy ORM models for the billing transaction store"""

import uuid
from sqlalchemy import Column, BigInteger, DateTime, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class BillingTransaction(Base):
    """Advance (CREDIT) or repayment debit (DEBIT), linked to each other by bank account"""

    __tablename__ = "billing_transaction"
    __table_args__ = (
        Index("ix_billing_transaction_account_time", "dst_bank_account", "transaction_time"),
        Index("ix_billing_transaction_status_direction", "status", "direction"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    dst_bank_account = Column(Text, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    transaction_time = Column(DateTime(timezone=True), nullable=False)
    direction = Column(Text, nullable=False)
    status = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
