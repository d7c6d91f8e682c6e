"""Business Metrics Reader - organization-wide counters for proactive insights."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from amana.clock import utcnow
from amana.models import Invoice, InvoiceStatus
from amana.repositories import Repositories
from amana.schemas.context import BusinessMetrics

logger = logging.getLogger(__name__)


def summarize_invoices(invoices: Iterable[Invoice], now: datetime) -> BusinessMetrics:
    """
    Fold invoices into counters in a single pass.

    An invoice is unpaid when its status is anything but Paid, and overdue
    when it is unpaid and its due date is before `now`. Revenue counts Paid
    invoices only.
    """
    metrics = BusinessMetrics()
    for invoice in invoices:
        metrics.total_invoices += 1
        total = invoice.total or 0.0

        if invoice.status == InvoiceStatus.PAID.value:
            metrics.total_revenue += total
            continue

        metrics.unpaid_invoices += 1
        metrics.unpaid_total += total
        if invoice.due_date is not None and invoice.due_date < now:
            metrics.overdue_invoices += 1
            metrics.overdue_total += total

    return metrics


class BusinessMetricsReader:
    """Reads invoices, wallet, routes and drivers of one organization."""

    def __init__(
        self,
        repositories: Repositories,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repositories = repositories
        self.clock = clock or utcnow

    async def read(self, organization_id: str) -> BusinessMetrics:
        """Compute metrics as of now. Repository errors propagate."""
        repos = self.repositories
        invoices, wallet_balance, active_routes, active_drivers = await asyncio.gather(
            repos.invoices.list_for_organization(organization_id),
            repos.organizations.get_wallet_balance(organization_id),
            repos.routes.count_active(organization_id),
            repos.drivers.count_active(organization_id),
        )

        metrics = summarize_invoices(invoices, self.clock())
        metrics.wallet_balance = wallet_balance
        metrics.active_routes = active_routes
        metrics.active_drivers = active_drivers

        logger.debug(
            f"Metrics for {organization_id}: {metrics.total_invoices} invoices, "
            f"{metrics.overdue_invoices} overdue"
        )
        return metrics
