"""Client, route and driver ORM models."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from amana.clock import utcnow
from amana.database import Base, GUID

ACTIVE_ROUTE_STATUSES = ("Pending", "In Progress")
ACTIVE_DRIVER_STATUS = "Active"


class Client(Base):
    """A customer the organization invoices."""

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Client {self.name}>"


class Route(Base):
    """A delivery route between two places."""

    __tablename__ = "routes"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    origin: Mapped[str] = mapped_column(String(200), nullable=False)
    destination: Mapped[str] = mapped_column(String(200), nullable=False)
    # Pending, In Progress, Completed, Cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending")

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Route {self.display_name} ({self.status})>"

    @property
    def display_name(self) -> str:
        return f"{self.origin} → {self.destination}"


class Driver(Base):
    """A driver employed by the organization."""

    __tablename__ = "drivers"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ACTIVE_DRIVER_STATUS)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Driver {self.name} ({self.status})>"
