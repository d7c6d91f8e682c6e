"""
Invoice Intelligence - invoice status, expense tracking and profitability.

Every operation is addressed by (organization_id, invoice_number) and returns
a result carrying an ActionStatus. Profitability is recomputed from the
expense rows on every call; nothing derived is ever stored.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from amana.clock import utcnow
from amana.core.results import ActionStatus
from amana.models import Expense, Invoice, InvoiceStatus
from amana.repositories import Repositories, RepositoryError

logger = logging.getLogger(__name__)

LOW_MARGIN_THRESHOLD = 20.0
HIGH_MARGIN_THRESHOLD = 50.0

DIVIDER = "➖➖➖➖➖➖➖➖"


def format_naira(amount: float) -> str:
    """Format an amount as Naira, e.g. ₦250,000 or -₦1,250.50."""
    sign = "-" if amount < 0 else ""
    value = abs(amount)
    if value == int(value):
        return f"{sign}₦{value:,.0f}"
    return f"{sign}₦{value:,.2f}"


def sum_amounts(expenses: Iterable[Expense]) -> float:
    return math.fsum(expense.amount or 0.0 for expense in expenses)


@dataclass
class IntelligentInvoice:
    """Invoice plus figures derived from its expenses."""

    invoice_number: str
    client_name: str
    total: float
    status: str
    due_date: Optional[datetime]
    created_at: Optional[datetime]
    expenses: float
    expected_balance: float
    profit_margin: float
    is_profitable: bool
    # Whole days past due; None unless unpaid and past due
    days_overdue: Optional[int] = None


@dataclass
class InvoiceStatusResult:
    status: ActionStatus
    invoice: Optional[IntelligentInvoice] = None
    insights: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.invoice is not None


@dataclass
class ExpenseAddResult:
    status: ActionStatus
    message: str
    expense_id: Optional[str] = None
    updated_invoice: Optional[IntelligentInvoice] = None


@dataclass
class InvoiceBalanceResult:
    status: ActionStatus
    message: str
    invoice: Optional[IntelligentInvoice] = None


@dataclass
class ExpenseLine:
    description: str
    amount: float
    category: str
    date: datetime


@dataclass
class ExpenseListResult:
    status: ActionStatus
    message: str
    expenses: List[ExpenseLine] = field(default_factory=list)
    total_expenses: float = 0.0


def build_intelligent_invoice(invoice: Invoice, total_expenses: float, now: datetime) -> IntelligentInvoice:
    total = invoice.total or 0.0
    expected_balance = total - total_expenses
    profit_margin = (expected_balance / total) * 100 if total > 0 else 0.0

    status = invoice.status or InvoiceStatus.DRAFT.value
    days_overdue = None
    if invoice.due_date is not None and invoice.due_date < now and status != InvoiceStatus.PAID.value:
        days_overdue = math.floor((now - invoice.due_date).total_seconds() / 86400)

    return IntelligentInvoice(
        invoice_number=invoice.invoice_number,
        client_name=invoice.client_name or "Unknown",
        total=total,
        status=status,
        due_date=invoice.due_date,
        created_at=invoice.created_at,
        expenses=total_expenses,
        expected_balance=expected_balance,
        profit_margin=profit_margin,
        is_profitable=expected_balance > 0,
        days_overdue=days_overdue,
    )


def derive_insights(invoice: IntelligentInvoice) -> tuple:
    """Status insights first, then profitability insights when expenses exist."""
    insights: List[str] = []
    suggestions: List[str] = []
    number = invoice.invoice_number

    if invoice.status == InvoiceStatus.DRAFT.value:
        insights.append("📝 Invoice still dey draft mode")
        suggestions.append(f'Send am to client: "send invoice {number}"')
    elif invoice.status == InvoiceStatus.SENT.value:
        insights.append("📧 Invoice don send to client")
        if invoice.days_overdue:
            insights.append(f"⚠️ {invoice.days_overdue} days overdue!")
            suggestions.append("Follow up with client")
            suggestions.append(f'Send reminder: "remind client about {number}"')
        else:
            insights.append("⏳ Dey wait for payment")
    elif invoice.status == InvoiceStatus.PAID.value:
        insights.append("✅ Payment received!")

    if invoice.expenses > 0:
        margin = invoice.profit_margin
        insights.append(f"💰 Total expenses: {format_naira(invoice.expenses)}")
        insights.append(f"📊 Expected profit: {format_naira(invoice.expected_balance)} ({margin:.1f}%)")

        if not invoice.is_profitable:
            insights.append(
                f"⚠️ WARNING: Expenses pass invoice amount! "
                f"You go lose {format_naira(abs(invoice.expected_balance))}"
            )
            suggestions.append("Review expenses for this job")
            suggestions.append("Consider increasing invoice amount")
        elif margin < LOW_MARGIN_THRESHOLD:
            insights.append(f"📉 Low profit margin ({margin:.1f}%)")
            suggestions.append("Try reduce expenses or increase price next time")
        elif margin > HIGH_MARGIN_THRESHOLD:
            insights.append(f"🎉 Great profit margin ({margin:.1f}%)!")

    return insights, suggestions


class InvoiceIntelligence:
    """Invoice status checks, expense logging and profitability analysis."""

    def __init__(
        self,
        repositories: Repositories,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repositories = repositories
        self.clock = clock or utcnow

    async def check_status(self, organization_id: str, invoice_number: str) -> InvoiceStatusResult:
        """Derived view of one invoice with ordered insights and suggestions."""
        try:
            invoice = await self.repositories.invoices.find_by_number(organization_id, invoice_number)
            if invoice is None:
                return InvoiceStatusResult(
                    status=ActionStatus.NOT_FOUND,
                    insights=[f"Invoice {invoice_number} no dey for your records"],
                    suggestions=["Check the invoice number", 'Type "list invoices" to see all'],
                )

            expenses = await self.repositories.expenses.list_for_invoice(organization_id, invoice.id)
        except RepositoryError as e:
            logger.error(f"Error checking invoice status for {invoice_number}: {e}")
            return InvoiceStatusResult(
                status=ActionStatus.UPSTREAM_UNAVAILABLE,
                insights=["Error checking invoice status"],
                suggestions=["Try again later"],
            )

        intelligent = build_intelligent_invoice(invoice, sum_amounts(expenses), self.clock())
        insights, suggestions = derive_insights(intelligent)
        return InvoiceStatusResult(
            status=ActionStatus.SUCCESS,
            invoice=intelligent,
            insights=insights,
            suggestions=suggestions,
        )

    async def add_expense(
        self,
        organization_id: str,
        invoice_number: str,
        description: str,
        amount: float,
        created_by: str,
        category: Optional[str] = None,
    ) -> ExpenseAddResult:
        """
        Record an expense against an invoice.

        Input is validated before any lookup, and nothing is written when the
        invoice does not exist.
        """
        if amount is None or not math.isfinite(amount) or amount <= 0:
            return ExpenseAddResult(
                status=ActionStatus.VALIDATION_FAILURE,
                message="Abeg the expense amount must pass ₦0. Example: add expense 5000 for fuel to INV-001",
            )
        description = (description or "").strip()
        if not description:
            return ExpenseAddResult(
                status=ActionStatus.VALIDATION_FAILURE,
                message="Wetin the expense be for? Example: add expense 5000 for fuel to INV-001",
            )

        try:
            invoice = await self.repositories.invoices.find_by_number(organization_id, invoice_number)
            if invoice is None:
                return ExpenseAddResult(
                    status=ActionStatus.NOT_FOUND,
                    message=f"Invoice {invoice_number} no dey",
                )

            expense = await self.repositories.expenses.create(
                organization_id=organization_id,
                invoice=invoice,
                description=description,
                amount=amount,
                category=category or "General",
                created_by=created_by,
            )
        except RepositoryError as e:
            logger.error(f"Error adding expense to invoice {invoice_number}: {e}")
            return ExpenseAddResult(
                status=ActionStatus.UPSTREAM_UNAVAILABLE,
                message="Error adding expense. Try again.",
            )

        logger.info(f"Expense {expense.id} of {amount} added to {invoice_number} ({organization_id})")

        status_result = await self.check_status(organization_id, invoice_number)

        lines = [
            f"✅ Expense added to invoice {invoice_number}!",
            "",
            f"💰 Expense: {format_naira(amount)}",
        ]
        inv = status_result.invoice
        if inv is not None:
            lines.append(f"📊 Total expenses: {format_naira(inv.expenses)}")
            lines.append(f"💵 Expected profit: {format_naira(inv.expected_balance)} ({inv.profit_margin:.1f}%)")
            if not inv.is_profitable:
                lines.append("")
                lines.append("⚠️ WARNING: Expenses don pass invoice amount!")

        return ExpenseAddResult(
            status=ActionStatus.SUCCESS,
            message="\n".join(lines),
            expense_id=str(expense.id),
            updated_invoice=inv,
        )

    async def get_balance(self, organization_id: str, invoice_number: str) -> InvoiceBalanceResult:
        """Total, expenses and expected profit of one invoice as a message."""
        status_result = await self.check_status(organization_id, invoice_number)
        inv = status_result.invoice
        if inv is None:
            if status_result.status == ActionStatus.NOT_FOUND:
                message = f"Invoice {invoice_number} no dey"
            else:
                message = "Error checking balance. Try again."
            return InvoiceBalanceResult(status=status_result.status, message=message)

        lines = [
            f"📊 *Invoice {invoice_number} Balance*",
            "",
            f"👤 Client: {inv.client_name}",
            f"💵 Invoice Total: {format_naira(inv.total)}",
            f"💰 Total Expenses: {format_naira(inv.expenses)}",
            DIVIDER,
            f"📈 Expected Profit: {format_naira(inv.expected_balance)}",
            f"📊 Profit Margin: {inv.profit_margin:.1f}%",
            "",
        ]
        if not inv.is_profitable:
            lines.append(f"⚠️ Loss: {format_naira(abs(inv.expected_balance))}")
        elif inv.profit_margin < LOW_MARGIN_THRESHOLD:
            lines.append("📉 Low margin - consider optimizing costs")
        else:
            lines.append("✅ Healthy profit margin!")

        return InvoiceBalanceResult(
            status=ActionStatus.SUCCESS,
            message="\n".join(lines),
            invoice=inv,
        )

    async def list_expenses(self, organization_id: str, invoice_number: str) -> ExpenseListResult:
        """Expenses of one invoice, newest first, with their total."""
        try:
            invoice = await self.repositories.invoices.find_by_number(organization_id, invoice_number)
            if invoice is None:
                return ExpenseListResult(
                    status=ActionStatus.NOT_FOUND,
                    message=f"Invoice {invoice_number} no dey",
                )
            expenses = await self.repositories.expenses.list_for_invoice(organization_id, invoice.id)
        except RepositoryError as e:
            logger.error(f"Error listing expenses for {invoice_number}: {e}")
            return ExpenseListResult(
                status=ActionStatus.UPSTREAM_UNAVAILABLE,
                message="Error fetching expenses. Try again.",
            )

        lines = [
            ExpenseLine(
                description=expense.description,
                amount=expense.amount,
                category=expense.category or "General",
                date=expense.date,
            )
            for expense in expenses
        ]
        total = sum_amounts(expenses)

        message = f"💰 *Expenses for Invoice {invoice_number}*\n\n"
        if not lines:
            message += "No expenses yet for this invoice."
        else:
            for i, line in enumerate(lines, start=1):
                message += f"{i}. {line.description}\n"
                message += f"   {format_naira(line.amount)} ({line.category})\n\n"
            message += f"{DIVIDER}\n"
            message += f"📊 Total: {format_naira(total)}"

        return ExpenseListResult(
            status=ActionStatus.SUCCESS,
            message=message,
            expenses=lines,
            total_expenses=total,
        )
