"""
Action Registry - intent name to async handler.

The built-in handlers cover the invoice, wallet and business-summary
catalog. Other intents (invoice creation, client management) are served by
external handlers registered at runtime.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from amana.core.intents import Intent
from amana.core.invoice_intelligence import InvoiceIntelligence, format_naira
from amana.core.results import ActionResult, ActionStatus
from amana.schemas.context import METRICS_SLICE, InvoiceEntity, UserContext

logger = logging.getLogger(__name__)

LOW_WALLET_BALANCE = 10_000

MISSING_INVOICE_PROMPT = (
    "Which invoice you mean? 🤔 Send the number like INV-001, "
    'e.g. "check invoice INV-001".'
)
MISSING_AMOUNT_PROMPT = (
    "How much be the expense? 💰 Example: add expense 5000 for fuel to INV-001"
)


@dataclass
class ActionRequest:
    """Everything a handler needs to run one action."""

    intent: str
    params: dict
    phone_number: str
    organization_id: str
    context: UserContext


ActionHandler = Callable[[ActionRequest], Awaitable[ActionResult]]


@dataclass
class RegisteredAction:
    intent: str
    handler: ActionHandler
    description: str = ""


@dataclass
class ActionRegistry:
    """Maps intent names to handlers."""

    _actions: Dict[str, RegisteredAction] = field(default_factory=dict)

    def register(self, intent: str, handler: ActionHandler, description: str = "") -> None:
        key = intent.value if isinstance(intent, Intent) else intent
        if key in self._actions:
            logger.warning(f"Replacing handler for intent {key}")
        self._actions[key] = RegisteredAction(intent=key, handler=handler, description=description)

    def get(self, intent: str) -> Optional[ActionHandler]:
        key = intent.value if isinstance(intent, Intent) else intent
        action = self._actions.get(key)
        return action.handler if action else None

    def has(self, intent: str) -> bool:
        return self.get(intent) is not None

    def catalog(self) -> List[str]:
        """Descriptions of everything the assistant can do, in registration order."""
        return [action.description for action in self._actions.values() if action.description]


def _invoice_entity(invoice_number: str, client_name: Optional[str] = None) -> InvoiceEntity:
    return InvoiceEntity(id=invoice_number, name=client_name)


def _validation_failure(intent: str, message: str) -> ActionResult:
    return ActionResult(status=ActionStatus.VALIDATION_FAILURE, message=message, intent=intent)


class InvoiceActions:
    """Adapts InvoiceIntelligence operations to the handler interface."""

    def __init__(self, engine: InvoiceIntelligence):
        self.engine = engine

    async def check_status(self, request: ActionRequest) -> ActionResult:
        invoice_number = request.params.get("invoice_number")
        if not invoice_number:
            return _validation_failure(request.intent, MISSING_INVOICE_PROMPT)

        result = await self.engine.check_status(request.organization_id, invoice_number)
        inv = result.invoice
        if inv is None:
            return ActionResult(
                status=result.status,
                message=self._render_lines(result.insights, result.suggestions),
                intent=request.intent,
                suggestions=result.suggestions,
            )

        header = [
            f"📄 *Invoice {inv.invoice_number}*",
            f"👤 Client: {inv.client_name}",
            f"💵 Total: {format_naira(inv.total)}",
            f"📌 Status: {inv.status}",
            "",
        ]
        message = "\n".join(header) + self._render_lines(result.insights, result.suggestions)
        return ActionResult(
            status=ActionStatus.SUCCESS,
            message=message,
            intent=request.intent,
            entity=_invoice_entity(inv.invoice_number, inv.client_name),
            data=inv,
            suggestions=result.suggestions,
        )

    async def add_expense(self, request: ActionRequest) -> ActionResult:
        params = request.params
        invoice_number = params.get("invoice_number")
        if not invoice_number:
            return _validation_failure(request.intent, MISSING_INVOICE_PROMPT)
        if params.get("amount") is None:
            return _validation_failure(request.intent, MISSING_AMOUNT_PROMPT)

        result = await self.engine.add_expense(
            organization_id=request.organization_id,
            invoice_number=invoice_number,
            description=params.get("description") or "",
            amount=params["amount"],
            category=params.get("category"),
            created_by=request.phone_number,
        )
        entity = None
        if result.status == ActionStatus.SUCCESS:
            client = result.updated_invoice.client_name if result.updated_invoice else None
            entity = _invoice_entity(invoice_number, client)
        return ActionResult(
            status=result.status,
            message=result.message,
            intent=request.intent,
            entity=entity,
            data=result.updated_invoice,
        )

    async def get_balance(self, request: ActionRequest) -> ActionResult:
        invoice_number = request.params.get("invoice_number")
        if not invoice_number:
            return _validation_failure(request.intent, MISSING_INVOICE_PROMPT)

        result = await self.engine.get_balance(request.organization_id, invoice_number)
        entity = None
        if result.invoice is not None:
            entity = _invoice_entity(invoice_number, result.invoice.client_name)
        return ActionResult(
            status=result.status,
            message=result.message,
            intent=request.intent,
            entity=entity,
            data=result.invoice,
        )

    async def list_expenses(self, request: ActionRequest) -> ActionResult:
        invoice_number = request.params.get("invoice_number")
        if not invoice_number:
            return _validation_failure(request.intent, MISSING_INVOICE_PROMPT)

        result = await self.engine.list_expenses(request.organization_id, invoice_number)
        entity = _invoice_entity(invoice_number) if result.status == ActionStatus.SUCCESS else None
        return ActionResult(
            status=result.status,
            message=result.message,
            intent=request.intent,
            entity=entity,
            data=result.expenses,
        )

    @staticmethod
    def _render_lines(insights: List[str], suggestions: List[str]) -> str:
        message = "\n".join(insights)
        if suggestions:
            message += "\n\n💡 " + "\n💡 ".join(suggestions)
        return message


def proactive_insights(context: UserContext, intent: str) -> List[str]:
    """Short nudges appended to wallet and summary replies."""
    insights = []
    metrics = context.business_metrics

    if metrics.overdue_invoices > 0:
        count = metrics.overdue_invoices
        insights.append(f"⚠️ You get {count} overdue invoice{'s' if count > 1 else ''}")

    if intent == Intent.VIEW_BALANCE.value and metrics.wallet_balance < LOW_WALLET_BALANCE:
        insights.append(f"💰 Your wallet balance low ({format_naira(metrics.wallet_balance)})")

    features = context.user_patterns.most_used_features
    if features and "invoice" in features[0] and intent == Intent.VIEW_BALANCE.value:
        insights.append("📄 You dey check invoices well well - want to see unpaid ones?")

    return insights


def _with_insights(message: str, insights: List[str]) -> str:
    if not insights:
        return message
    return message + "\n\n💡 *Amana Insights:*\n• " + "\n• ".join(insights)


def _metrics_unavailable(request: ActionRequest) -> Optional[ActionResult]:
    """UPSTREAM_UNAVAILABLE when the metrics slice holds fallback zeros."""
    if not request.context.is_degraded(METRICS_SLICE):
        return None
    logger.warning(f"Business metrics unavailable for {request.organization_id}, not answering {request.intent}")
    return ActionResult(
        status=ActionStatus.UPSTREAM_UNAVAILABLE,
        message="Business figures no dey available right now",
        intent=request.intent,
    )


async def view_balance(request: ActionRequest) -> ActionResult:
    """Wallet balance from the already-aggregated business metrics."""
    unavailable = _metrics_unavailable(request)
    if unavailable:
        return unavailable

    metrics = request.context.business_metrics
    message = f"💳 Your wallet balance na {format_naira(metrics.wallet_balance)}"
    return ActionResult(
        status=ActionStatus.SUCCESS,
        message=_with_insights(message, proactive_insights(request.context, request.intent)),
        intent=request.intent,
        data={"wallet_balance": metrics.wallet_balance},
    )


async def business_summary(request: ActionRequest) -> ActionResult:
    """Invoices, revenue, wallet and fleet figures in one message."""
    unavailable = _metrics_unavailable(request)
    if unavailable:
        return unavailable

    metrics = request.context.business_metrics
    lines = [
        "📊 *Business Summary*",
        "",
        f"📄 Invoices: {metrics.total_invoices}",
        f"⏳ Unpaid: {metrics.unpaid_invoices} ({format_naira(metrics.unpaid_total)})",
        f"⚠️ Overdue: {metrics.overdue_invoices} ({format_naira(metrics.overdue_total)})",
        f"✅ Revenue: {format_naira(metrics.total_revenue)}",
        f"💳 Wallet: {format_naira(metrics.wallet_balance)}",
        f"🚚 Active routes: {metrics.active_routes}",
        f"👤 Active drivers: {metrics.active_drivers}",
    ]
    insights = []
    if metrics.overdue_invoices > 0:
        insights.append("Follow up with clients wey never pay")
    return ActionResult(
        status=ActionStatus.SUCCESS,
        message=_with_insights("\n".join(lines), insights),
        intent=request.intent,
        data=metrics.model_dump(),
    )


def build_default_registry(engine: InvoiceIntelligence) -> ActionRegistry:
    """Registry with the built-in invoice, wallet and summary handlers."""
    invoice_actions = InvoiceActions(engine)
    registry = ActionRegistry()
    registry.register(
        Intent.CHECK_INVOICE_STATUS, invoice_actions.check_status,
        'Check invoice status - "check INV-001"',
    )
    registry.register(
        Intent.INVOICE_BALANCE, invoice_actions.get_balance,
        'Invoice profit - "balance for INV-001"',
    )
    registry.register(
        Intent.ADD_INVOICE_EXPENSE, invoice_actions.add_expense,
        'Add expense - "add expense 5000 for fuel to INV-001"',
    )
    registry.register(
        Intent.LIST_INVOICE_EXPENSES, invoice_actions.list_expenses,
        'List expenses - "expenses for INV-001"',
    )
    registry.register(Intent.VIEW_BALANCE, view_balance, 'Wallet balance - "my balance"')
    registry.register(Intent.BUSINESS_SUMMARY, business_summary, 'Business summary - "summary"')
    return registry
