"""Conversation memory ORM models."""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, JSON, Integer
from sqlalchemy.orm import Mapped, mapped_column

from amana.clock import utcnow
from amana.database import Base


class ConversationMemory(Base):
    """Last-referenced entity pointers for one WhatsApp number."""

    __tablename__ = "conversation_memories"

    phone_number: Mapped[str] = mapped_column(String(32), primary_key=True)

    last_invoice_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    last_client_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    last_driver_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_route_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<ConversationMemory {self.phone_number}>"


class ConversationTurn(Base):
    """One entry of a number's conversation history. Rows are insert-only."""

    __tablename__ = "conversation_turns"

    # Autoincrement id gives a total order even when timestamps collide
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    # Role: user, assistant
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    intent: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Entity reference: {type, id, name, ...}
    entity: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reply: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<ConversationTurn {self.phone_number} {self.role} ({self.intent})>"
