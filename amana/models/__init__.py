"""SQLAlchemy ORM models.

Each table stands in for one document collection of the back office and is
partitioned by organization id, except the per-number conversation tables.
"""

from amana.models.organization import Organization, WhatsAppUser
from amana.models.invoice import Invoice, Expense, InvoiceStatus
from amana.models.fleet import Client, Route, Driver
from amana.models.conversation import ConversationMemory, ConversationTurn

__all__ = [
    "Organization",
    "WhatsAppUser",
    "Invoice",
    "Expense",
    "InvoiceStatus",
    "Client",
    "Route",
    "Driver",
    "ConversationMemory",
    "ConversationTurn",
]
