"""Invoice and expense persistence."""

import uuid
from typing import List, Optional

from sqlalchemy import select

from amana.clock import utcnow
from amana.models import Invoice, Expense
from amana.repositories.base import BaseRepository


class InvoiceRepository(BaseRepository):

    async def find_by_number(self, organization_id: str, invoice_number: str) -> Optional[Invoice]:
        """Look up an invoice by its human-facing number within one organization."""
        async with self._session("find_by_number") as session:
            result = await session.execute(
                select(Invoice)
                .where(
                    Invoice.organization_id == organization_id,
                    Invoice.invoice_number == invoice_number,
                )
            )
            return result.scalar_one_or_none()

    async def list_for_organization(self, organization_id: str) -> List[Invoice]:
        async with self._session("list_for_organization") as session:
            result = await session.execute(
                select(Invoice).where(Invoice.organization_id == organization_id)
            )
            return list(result.scalars().all())


class ExpenseRepository(BaseRepository):

    async def create(
        self,
        organization_id: str,
        invoice: Invoice,
        description: str,
        amount: float,
        created_by: str,
        category: str = "General",
    ) -> Expense:
        """Insert an expense linked to the invoice's internal id."""
        async with self._session("create") as session:
            now = utcnow()
            expense = Expense(
                id=uuid.uuid4(),
                organization_id=organization_id,
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                description=description,
                amount=amount,
                category=category,
                date=now,
                created_by=created_by,
                created_at=now,
            )
            session.add(expense)
            await session.commit()
            return expense

    async def list_for_invoice(self, organization_id: str, invoice_id: uuid.UUID) -> List[Expense]:
        """All expenses of one invoice, newest first."""
        async with self._session("list_for_invoice") as session:
            result = await session.execute(
                select(Expense)
                .where(
                    Expense.organization_id == organization_id,
                    Expense.invoice_id == invoice_id,
                )
                .order_by(Expense.created_at.desc(), Expense.date.desc())
            )
            return list(result.scalars().all())
