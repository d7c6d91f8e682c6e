"""Repositories, one per collection.

Each repository opens its own short-lived session per call, so a single
instance is safe to share across concurrent coroutines.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import async_sessionmaker

from amana.repositories.base import BaseRepository, RepositoryError
from amana.repositories.organizations import OrganizationRepository, ProfileRepository
from amana.repositories.invoices import InvoiceRepository, ExpenseRepository
from amana.repositories.fleet import ClientRepository, RouteRepository, DriverRepository
from amana.repositories.conversations import ConversationRepository


@dataclass
class Repositories:
    organizations: OrganizationRepository
    profiles: ProfileRepository
    invoices: InvoiceRepository
    expenses: ExpenseRepository
    clients: ClientRepository
    routes: RouteRepository
    drivers: DriverRepository
    conversations: ConversationRepository


def build_repositories(session_factory: async_sessionmaker) -> Repositories:
    """Create every repository over one session factory."""
    return Repositories(
        organizations=OrganizationRepository(session_factory),
        profiles=ProfileRepository(session_factory),
        invoices=InvoiceRepository(session_factory),
        expenses=ExpenseRepository(session_factory),
        clients=ClientRepository(session_factory),
        routes=RouteRepository(session_factory),
        drivers=DriverRepository(session_factory),
        conversations=ConversationRepository(session_factory),
    )


__all__ = [
    "BaseRepository",
    "RepositoryError",
    "Repositories",
    "build_repositories",
    "OrganizationRepository",
    "ProfileRepository",
    "InvoiceRepository",
    "ExpenseRepository",
    "ClientRepository",
    "RouteRepository",
    "DriverRepository",
    "ConversationRepository",
]
