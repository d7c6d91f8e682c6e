"""Pydantic schemas for the per-message user context snapshot."""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from amana.clock import utcnow


# ============= Entity references =============

class InvoiceEntity(BaseModel):
    type: Literal["invoice"] = "invoice"
    id: str
    name: Optional[str] = None


class ClientEntity(BaseModel):
    type: Literal["client"] = "client"
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class RouteEntity(BaseModel):
    type: Literal["route"] = "route"
    id: str
    name: Optional[str] = None


class DriverEntity(BaseModel):
    type: Literal["driver"] = "driver"
    id: str
    name: Optional[str] = None


class ExpenseEntity(BaseModel):
    type: Literal["expense"] = "expense"
    id: str
    name: Optional[str] = None
    amount: Optional[float] = None


EntityRef = Annotated[
    Union[InvoiceEntity, ClientEntity, RouteEntity, DriverEntity, ExpenseEntity],
    Field(discriminator="type"),
]

entity_adapter: TypeAdapter = TypeAdapter(EntityRef)


# ============= Conversation history =============

class HistoryTurn(BaseModel):
    """One completed turn: the inbound message and the reply sent for it."""

    role: str = "assistant"
    intent: Optional[str] = None
    entity: Optional[EntityRef] = None
    message: Optional[str] = None
    reply: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)

    def to_llm_messages(self) -> List[dict]:
        """Convert to OpenAI chat messages (user message, then reply)."""
        messages = []
        if self.message:
            messages.append({"role": "user", "content": self.message})
        if self.reply:
            messages.append({"role": "assistant", "content": self.reply})
        return messages


def turns_to_llm_messages(turns: List[HistoryTurn]) -> List[dict]:
    """Flatten turns (oldest first) into a chat message list."""
    messages: List[dict] = []
    for turn in turns:
        messages.extend(turn.to_llm_messages())
    return messages


class ActivityRecord(BaseModel):
    """A completed business action, derived from an assistant history turn."""

    action: str
    intent: str
    timestamp: datetime
    entity: Optional[EntityRef] = None


# ============= Context slices =============

class UserProfile(BaseModel):
    name: str = "User"
    email: Optional[str] = None
    language: str = "en"
    timezone: str = "Africa/Lagos"


class CommonEntities(BaseModel):
    """Most recently referenced names per entity kind (deduplicated, capped)."""

    clients: List[str] = Field(default_factory=list)
    routes: List[str] = Field(default_factory=list)
    drivers: List[str] = Field(default_factory=list)


class BusinessMetrics(BaseModel):
    total_invoices: int = 0
    unpaid_invoices: int = 0
    unpaid_total: float = 0.0
    overdue_invoices: int = 0
    overdue_total: float = 0.0
    total_revenue: float = 0.0
    wallet_balance: float = 0.0
    active_routes: int = 0
    active_drivers: int = 0


class UserPatterns(BaseModel):
    most_used_features: List[str] = Field(default_factory=list)
    peak_usage_hours: List[int] = Field(default_factory=list)


MEMORY_POINTER_FIELDS = (
    "last_invoice_number",
    "last_client_name",
    "last_driver_id",
    "last_route_id",
)


class ConversationPointers(BaseModel):
    """Last-referenced entities, used to resolve "that invoice" and friends."""

    last_invoice_number: Optional[str] = None
    last_client_name: Optional[str] = None
    last_driver_id: Optional[str] = None
    last_route_id: Optional[str] = None


# Context slice names, as recorded in UserContext.degraded
PROFILE_SLICE = "user_profile"
MEMORY_SLICE = "conversation_memory"
ACTIVITY_SLICE = "recent_activity"
TURNS_SLICE = "recent_turns"
ENTITIES_SLICE = "common_entities"
METRICS_SLICE = "business_metrics"


class UserContext(BaseModel):
    """Complete picture of the sender's business, rebuilt for every message."""

    whatsapp_number: str
    organization_id: str
    user_profile: Optional[UserProfile] = None

    # Most recent first
    recent_activity: List[ActivityRecord] = Field(default_factory=list)
    common_entities: CommonEntities = Field(default_factory=CommonEntities)
    business_metrics: BusinessMetrics = Field(default_factory=BusinessMetrics)
    user_patterns: UserPatterns = Field(default_factory=UserPatterns)
    conversation_memory: ConversationPointers = Field(default_factory=ConversationPointers)

    # Oldest first, ready to be replayed as LLM history
    recent_turns: List[HistoryTurn] = Field(default_factory=list)

    # Slices that failed to load and hold empty values
    degraded: List[str] = Field(default_factory=list)

    def get_language(self) -> str:
        """Get the user's preferred language."""
        return self.user_profile.language if self.user_profile else "en"

    def is_degraded(self, slice_name: str) -> bool:
        return slice_name in self.degraded
