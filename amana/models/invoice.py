"""Invoice and expense ORM models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from amana.clock import utcnow
from amana.database import Base, GUID


class InvoiceStatus(str, Enum):
    """Lifecycle of an invoice."""
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"


class Invoice(Base):
    """Invoice issued by an organization to one of its clients."""

    __tablename__ = "invoices"
    __table_args__ = (
        Index("ix_invoices_org_number", "organization_id", "invoice_number", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Human-facing number, e.g. INV-001
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    client_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} ({self.status})>"


class Expense(Base):
    """Cost booked against exactly one invoice. Rows are never updated."""

    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # Internal invoice id, not the human-facing number
    invoice_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False, index=True)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="General")
    date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Expense {self.amount} on {self.invoice_number}>"
