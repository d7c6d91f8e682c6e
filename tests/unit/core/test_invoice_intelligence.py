"""Unit tests for InvoiceIntelligence."""

import pytest
from sqlalchemy import func, select

from amana.core.invoice_intelligence import (
    InvoiceIntelligence,
    format_naira,
    derive_insights,
    IntelligentInvoice,
)
from amana.core.results import ActionStatus
from amana.models import Expense
from amana.repositories import RepositoryError
from tests.conftest import ORG_ID, PHONE


async def count_expenses(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count(Expense.id)))
        return result.scalar_one()


@pytest.fixture
def engine(repositories, now):
    return InvoiceIntelligence(repositories, clock=lambda: now)


class TestFormatNaira:
    """Test cases for Naira formatting."""

    def test_whole_amounts(self):
        assert format_naira(250000) == "₦250,000"
        assert format_naira(0) == "₦0"

    def test_fractional_amounts(self):
        assert format_naira(1250.5) == "₦1,250.50"

    def test_negative_amounts(self):
        assert format_naira(-50000) == "-₦50,000"


class TestCheckStatus:
    """Test cases for check_status."""

    @pytest.mark.asyncio
    async def test_profitable_invoice(self, engine, seeded_org):
        """INV-001: ₦250,000 with ₦120,000 expenses has a 52% margin."""
        result = await engine.check_status(ORG_ID, "INV-001")

        assert result.status == ActionStatus.SUCCESS
        inv = result.invoice
        assert inv.expenses == 120_000
        assert inv.expected_balance == 130_000
        assert inv.profit_margin == pytest.approx(52.0)
        assert inv.is_profitable is True
        assert inv.days_overdue is None

        assert "🎉 Great profit margin (52.0%)!" in result.insights
        assert not any("WARNING" in insight for insight in result.insights)
        assert "💰 Total expenses: ₦120,000" in result.insights

    @pytest.mark.asyncio
    async def test_loss_making_invoice(self, engine, seeded_org):
        """INV-002: ₦100,000 with a ₦150,000 expense loses ₦50,000."""
        result = await engine.check_status(ORG_ID, "INV-002")

        inv = result.invoice
        assert inv.expected_balance == -50_000
        assert inv.is_profitable is False
        assert inv.profit_margin == pytest.approx(-50.0)

        warning = "⚠️ WARNING: Expenses pass invoice amount! You go lose ₦50,000"
        assert warning in result.insights
        assert "Review expenses for this job" in result.suggestions
        assert not any("Great profit margin" in insight for insight in result.insights)

    @pytest.mark.asyncio
    async def test_overdue_invoice(self, engine, seeded_org):
        """INV-003: Sent and due 10 days ago."""
        result = await engine.check_status(ORG_ID, "INV-003")

        inv = result.invoice
        assert inv.days_overdue == 10
        assert result.insights[0] == "📧 Invoice don send to client"
        assert "⚠️ 10 days overdue!" in result.insights
        assert "Follow up with client" in result.suggestions

    @pytest.mark.asyncio
    async def test_paid_invoice_is_never_overdue(self, engine, seeded_org):
        """INV-004 is past due but Paid."""
        result = await engine.check_status(ORG_ID, "INV-004")

        assert result.invoice.days_overdue is None
        assert result.insights == ["✅ Payment received!"]

    @pytest.mark.asyncio
    async def test_draft_invoice(self, engine, seeded_org):
        result = await engine.check_status(ORG_ID, "INV-005")

        assert result.insights == ["📝 Invoice still dey draft mode"]
        assert result.suggestions == ['Send am to client: "send invoice INV-005"']

    @pytest.mark.asyncio
    async def test_unknown_invoice(self, engine, seeded_org):
        result = await engine.check_status(ORG_ID, "INV-999")

        assert result.status == ActionStatus.NOT_FOUND
        assert result.found is False
        assert result.insights == ["Invoice INV-999 no dey for your records"]
        assert "Check the invoice number" in result.suggestions

    @pytest.mark.asyncio
    async def test_other_organization_cannot_see_invoice(self, engine, seeded_org):
        result = await engine.check_status("org_other", "INV-001")

        assert result.status == ActionStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_repository_failure(self, repositories, now):
        """A storage error comes back as UPSTREAM_UNAVAILABLE, not an exception."""

        async def broken(*args, **kwargs):
            raise RepositoryError("InvoiceRepository.find_by_number", RuntimeError("db down"))

        repositories.invoices.find_by_number = broken
        engine = InvoiceIntelligence(repositories, clock=lambda: now)

        result = await engine.check_status(ORG_ID, "INV-001")

        assert result.status == ActionStatus.UPSTREAM_UNAVAILABLE
        assert result.suggestions == ["Try again later"]


class TestDeriveInsights:
    """Margin thresholds on derived invoices."""

    def _invoice(self, total: float, expenses: float) -> IntelligentInvoice:
        balance = total - expenses
        return IntelligentInvoice(
            invoice_number="INV-010", client_name="Test", total=total, status="Paid",
            due_date=None, created_at=None, expenses=expenses, expected_balance=balance,
            profit_margin=balance / total * 100 if total else 0.0, is_profitable=balance > 0,
        )

    def test_low_margin(self):
        insights, suggestions = derive_insights(self._invoice(100_000, 90_000))

        assert "📉 Low profit margin (10.0%)" in insights
        assert "Try reduce expenses or increase price next time" in suggestions

    def test_mid_margin_has_no_margin_insight(self):
        insights, _ = derive_insights(self._invoice(100_000, 70_000))

        assert not any("margin" in insight.lower() for insight in insights)

    def test_no_expenses_no_profitability_insights(self):
        insights, _ = derive_insights(self._invoice(100_000, 0))

        assert insights == ["✅ Payment received!"]

    def test_zero_total_has_zero_margin(self):
        invoice = self._invoice(0, 5_000)

        assert invoice.profit_margin == 0.0
        assert invoice.is_profitable is False


class TestAddExpense:
    """Test cases for add_expense."""

    @pytest.mark.asyncio
    async def test_adds_and_recomputes(self, engine, seeded_org, session_factory):
        result = await engine.add_expense(
            ORG_ID, "INV-001", description="Loading", amount=10_000, created_by=PHONE,
        )

        assert result.status == ActionStatus.SUCCESS
        assert result.expense_id is not None
        assert result.updated_invoice.expenses == 130_000
        assert "✅ Expense added to invoice INV-001!" in result.message
        assert "💰 Expense: ₦10,000" in result.message
        assert "📊 Total expenses: ₦130,000" in result.message
        assert await count_expenses(session_factory) == 4

    @pytest.mark.asyncio
    async def test_expense_pushing_into_loss_warns(self, engine, seeded_org):
        result = await engine.add_expense(
            ORG_ID, "INV-005", description="Fuel", amount=25_000, created_by=PHONE,
        )

        assert result.status == ActionStatus.SUCCESS
        assert result.updated_invoice.is_profitable is False
        assert "⚠️ WARNING: Expenses don pass invoice amount!" in result.message

    @pytest.mark.asyncio
    async def test_unknown_invoice_writes_nothing(self, engine, seeded_org, session_factory):
        before = await count_expenses(session_factory)

        result = await engine.add_expense(
            ORG_ID, "INV-404", description="Fuel", amount=5_000, created_by=PHONE,
        )

        assert result.status == ActionStatus.NOT_FOUND
        assert result.message == "Invoice INV-404 no dey"
        assert await count_expenses(session_factory) == before

    @pytest.mark.asyncio
    async def test_rejects_non_positive_amount(self, engine, seeded_org, session_factory):
        before = await count_expenses(session_factory)

        for amount in (0, -500):
            result = await engine.add_expense(
                ORG_ID, "INV-001", description="Fuel", amount=amount, created_by=PHONE,
            )
            assert result.status == ActionStatus.VALIDATION_FAILURE

        assert await count_expenses(session_factory) == before

    @pytest.mark.asyncio
    async def test_rejects_blank_description(self, engine, seeded_org, session_factory):
        before = await count_expenses(session_factory)

        result = await engine.add_expense(
            ORG_ID, "INV-001", description="   ", amount=5_000, created_by=PHONE,
        )

        assert result.status == ActionStatus.VALIDATION_FAILURE
        assert await count_expenses(session_factory) == before


class TestBalanceAndExpenseList:
    """Test cases for get_balance and list_expenses."""

    @pytest.mark.asyncio
    async def test_balance_message(self, engine, seeded_org):
        result = await engine.get_balance(ORG_ID, "INV-001")

        assert result.status == ActionStatus.SUCCESS
        assert "👤 Client: Dangote Cement" in result.message
        assert "📈 Expected Profit: ₦130,000" in result.message
        assert "📊 Profit Margin: 52.0%" in result.message
        assert result.message.endswith("✅ Healthy profit margin!")

    @pytest.mark.asyncio
    async def test_balance_reports_loss(self, engine, seeded_org):
        result = await engine.get_balance(ORG_ID, "INV-002")

        assert result.message.endswith("⚠️ Loss: ₦50,000")

    @pytest.mark.asyncio
    async def test_balance_unknown_invoice(self, engine, seeded_org):
        result = await engine.get_balance(ORG_ID, "INV-404")

        assert result.status == ActionStatus.NOT_FOUND
        assert result.message == "Invoice INV-404 no dey"

    @pytest.mark.asyncio
    async def test_list_expenses_newest_first(self, engine, seeded_org):
        result = await engine.list_expenses(ORG_ID, "INV-001")

        assert result.status == ActionStatus.SUCCESS
        assert [line.description for line in result.expenses] == ["Tolls", "Diesel Lagos-Abuja"]
        assert result.total_expenses == 120_000
        assert "📊 Total: ₦120,000" in result.message

    @pytest.mark.asyncio
    async def test_list_expenses_empty(self, engine, seeded_org):
        result = await engine.list_expenses(ORG_ID, "INV-003")

        assert result.expenses == []
        assert result.total_expenses == 0
        assert "No expenses yet for this invoice." in result.message

    @pytest.mark.asyncio
    async def test_list_total_matches_status_expenses(self, engine, seeded_org):
        """The listed total always equals the expenses figure of check_status."""
        await engine.add_expense(ORG_ID, "INV-003", description="Diesel", amount=1234.56, created_by=PHONE)
        await engine.add_expense(ORG_ID, "INV-003", description="Tolls", amount=0.1, created_by=PHONE)

        for number in ("INV-001", "INV-002", "INV-003", "INV-004", "INV-005"):
            listed = await engine.list_expenses(ORG_ID, number)
            status = await engine.check_status(ORG_ID, number)
            assert listed.total_expenses == status.invoice.expenses, number
