"""Global test fixtures for the test suite."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import AsyncGenerator, List, Optional, Union

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from amana.clock import utcnow
from amana.config import Settings
from amana.core.llm_client import LLMResponse
from amana.database import Base
from amana.models import (
    Client,
    Driver,
    Expense,
    Invoice,
    Organization,
    Route,
    WhatsAppUser,
)
from amana.repositories import build_repositories

ORG_ID = "org_lagos_haulage"
PHONE = "+2348012345678"


# ============= Mock LLM Client =============

@dataclass
class MockLLMClient:
    """Mock LLM client for testing without actual API calls.

    Queued items are returned in order; a queued exception is raised instead.
    """

    responses: List[Union[LLMResponse, Exception]] = field(default_factory=list)
    calls: List[dict] = field(default_factory=list)
    default_response: LLMResponse = field(default_factory=lambda: LLMResponse(
        text="This is a mock response.",
        stop_reason="stop",
        model="mock-model",
    ))

    def add_response(self, response: LLMResponse):
        """Add a response to the queue."""
        self.responses.append(response)

    def add_text_response(self, text: str):
        """Add a simple text response."""
        self.responses.append(LLMResponse(text=text, stop_reason="stop", model="mock-model"))

    def add_error(self, error: Exception):
        """Queue an exception to be raised by the next call."""
        self.responses.append(error)

    async def complete(
        self,
        system_prompt: str,
        messages: list,
        model: str = None,
        temperature: float = None,
        max_tokens: int = None,
        response_format: Optional[dict] = None,
    ) -> LLMResponse:
        """Mock complete method."""
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": messages,
            "model": model,
            "temperature": temperature,
            "response_format": response_format,
        })
        if self.responses:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return self.default_response


# ============= Settings =============

@pytest.fixture
def test_settings() -> Settings:
    """Settings with a short LLM timeout and no API key."""
    return Settings(openai_api_key="", llm_timeout_seconds=0.5, llm_max_retries=0)


# ============= Database Fixtures =============

@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """File-backed SQLite engine so concurrent sessions see the same data."""
    # Register every model before create_all
    import amana.models  # noqa: F401

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'amana_test.db'}",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def repositories(session_factory):
    return build_repositories(session_factory)


# ============= Mock LLM Fixtures =============

@pytest.fixture
def mock_llm_client() -> MockLLMClient:
    """Create a mock LLM client."""
    return MockLLMClient()


# ============= Sample Data Fixtures =============

@pytest.fixture
def now() -> datetime:
    """Evaluation time shared by seeded data and injected clocks."""
    return utcnow().replace(microsecond=0)


@pytest_asyncio.fixture
async def seeded_org(session_factory, now):
    """
    An organization with invoices covering every status and margin case.

    INV-001: Sent, ₦250,000, expenses ₦80,000 + ₦40,000 (52% margin)
    INV-002: Sent, ₦100,000, expense ₦150,000 (loss of ₦50,000)
    INV-003: Sent, ₦50,000, due 10 days ago, no expenses
    INV-004: Paid, ₦300,000
    INV-005: Draft, ₦20,000, no due date
    """
    invoices = {
        "INV-001": Invoice(
            id=uuid.uuid4(), organization_id=ORG_ID, invoice_number="INV-001",
            client_name="Dangote Cement", total=250_000, status="Sent",
            due_date=now + timedelta(days=7), created_at=now - timedelta(days=20),
        ),
        "INV-002": Invoice(
            id=uuid.uuid4(), organization_id=ORG_ID, invoice_number="INV-002",
            client_name="Chisco Foods", total=100_000, status="Sent",
            due_date=now + timedelta(days=5), created_at=now - timedelta(days=15),
        ),
        "INV-003": Invoice(
            id=uuid.uuid4(), organization_id=ORG_ID, invoice_number="INV-003",
            client_name="Kano Textiles", total=50_000, status="Sent",
            due_date=now - timedelta(days=10), created_at=now - timedelta(days=40),
        ),
        "INV-004": Invoice(
            id=uuid.uuid4(), organization_id=ORG_ID, invoice_number="INV-004",
            client_name="Dangote Cement", total=300_000, status="Paid",
            due_date=now - timedelta(days=3), created_at=now - timedelta(days=30),
        ),
        "INV-005": Invoice(
            id=uuid.uuid4(), organization_id=ORG_ID, invoice_number="INV-005",
            client_name="Ibadan Agro", total=20_000, status="Draft",
            due_date=None, created_at=now - timedelta(days=1),
        ),
    }

    def expense(invoice_number: str, amount: float, description: str, hours_ago: int) -> Expense:
        invoice = invoices[invoice_number]
        created = now - timedelta(hours=hours_ago)
        return Expense(
            id=uuid.uuid4(), organization_id=ORG_ID, invoice_id=invoice.id,
            invoice_number=invoice_number, description=description, amount=amount,
            category="Fuel", date=created, created_by=PHONE, created_at=created,
        )

    async with session_factory() as session:
        session.add(Organization(id=ORG_ID, name="Lagos Haulage Ltd", wallet_balance=75_000))
        session.add(WhatsAppUser(
            whatsapp_number=PHONE, organization_id=ORG_ID,
            name="Tunde", email="tunde@lagoshaulage.ng", language="pidgin",
        ))
        session.add_all(invoices.values())
        session.add_all([
            expense("INV-001", 80_000, "Diesel Lagos-Abuja", hours_ago=2),
            expense("INV-001", 40_000, "Tolls", hours_ago=1),
            expense("INV-002", 150_000, "Truck repair", hours_ago=3),
        ])
        session.add_all([
            Client(organization_id=ORG_ID, name="Dangote Cement", updated_at=now - timedelta(days=1)),
            Client(organization_id=ORG_ID, name="Chisco Foods", updated_at=now - timedelta(days=2)),
            Client(organization_id=ORG_ID, name="Kano Textiles", updated_at=now - timedelta(days=3)),
        ])
        session.add_all([
            Driver(organization_id=ORG_ID, name="Musa Ibrahim", status="Active", updated_at=now - timedelta(hours=5)),
            Driver(organization_id=ORG_ID, name="Emeka Obi", status="Active", updated_at=now - timedelta(hours=8)),
            Driver(organization_id=ORG_ID, name="Sani Bello", status="Suspended", updated_at=now),
        ])
        session.add_all([
            Route(organization_id=ORG_ID, origin="Lagos", destination="Abuja", status="In Progress",
                  created_at=now - timedelta(days=1)),
            Route(organization_id=ORG_ID, origin="Kano", destination="Port Harcourt", status="Pending",
                  created_at=now - timedelta(hours=6)),
            Route(organization_id=ORG_ID, origin="Ibadan", destination="Enugu", status="Completed",
                  created_at=now),
        ])
        await session.commit()

    return invoices


# ============= FastAPI Test Client =============

@pytest_asyncio.fixture
async def test_client(session_factory, mock_llm_client) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with mocked dependencies."""
    from amana.main import app
    from amana.database import get_session_factory
    from amana.core.llm_client import get_llm_client

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_llm_client] = lambda: mock_llm_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
