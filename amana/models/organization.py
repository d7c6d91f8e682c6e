"""Organization and WhatsApp user ORM models."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from amana.clock import utcnow
from amana.database import Base, GUID


class Organization(Base):
    """A tenant. All other collections are partitioned by its id."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    wallet_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Organization {self.id}>"


class WhatsAppUser(Base):
    """Profile of a WhatsApp number registered against an organization."""

    __tablename__ = "whatsapp_users"
    __table_args__ = (
        Index("ix_whatsapp_users_number_org", "whatsapp_number", "organization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    whatsapp_number: Mapped[str] = mapped_column(String(32), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    # en, pidgin, ha, ig, yo
    language: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<WhatsAppUser {self.whatsapp_number} (org={self.organization_id})>"
