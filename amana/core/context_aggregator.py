"""
Context Aggregator - assembles the UserContext for one inbound message.

Profile, conversation pointers, recall candidates and business metrics are
fetched concurrently. History is read in windows (the newest actions and the
newest turns), never in full. A failing source degrades to its empty value and
is listed in UserContext.degraded, so a message is never refused because one
collection is unavailable.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, TypeVar

from amana.config import Settings, get_settings
from amana.core.business_metrics import BusinessMetricsReader
from amana.core.entity_recall import EntityRecallIndex, RecallCandidates
from amana.core.memory_store import ConversationMemoryStore
from amana.repositories import Repositories
from amana.schemas.context import (
    ACTIVITY_SLICE,
    ENTITIES_SLICE,
    MEMORY_SLICE,
    METRICS_SLICE,
    PROFILE_SLICE,
    TURNS_SLICE,
    ActivityRecord,
    BusinessMetrics,
    ConversationPointers,
    HistoryTurn,
    UserContext,
    UserPatterns,
    UserProfile,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOP_PATTERNS = 3


def derive_recent_activity(history: List[HistoryTurn], limit: int) -> List[ActivityRecord]:
    """Assistant turns that carried an intent, most recent first."""
    actions = [turn for turn in history if turn.role == "assistant" and turn.intent]
    recent = actions[-limit:] if limit > 0 else []
    return [
        ActivityRecord(
            action=turn.intent.replace("_", " "),
            intent=turn.intent,
            timestamp=turn.timestamp,
            entity=turn.entity,
        )
        for turn in reversed(recent)
    ]


def analyze_user_patterns(recent_activity: List[ActivityRecord]) -> UserPatterns:
    """Top intents and UTC hours by count. Ties keep first-seen order."""
    intents = Counter(record.intent for record in recent_activity if record.intent)
    hours = Counter(record.timestamp.hour for record in recent_activity)
    return UserPatterns(
        most_used_features=[intent for intent, _ in intents.most_common(TOP_PATTERNS)],
        peak_usage_hours=[hour for hour, _ in hours.most_common(TOP_PATTERNS)],
    )


class ContextAggregator:
    """Builds a fresh UserContext per request. Never raises."""

    def __init__(
        self,
        repositories: Repositories,
        memory_store: Optional[ConversationMemoryStore] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repositories = repositories
        self.settings = settings or get_settings()
        self.memory_store = memory_store or ConversationMemoryStore(repositories.conversations)
        self.metrics_reader = BusinessMetricsReader(repositories, clock=clock)
        self.recall_index = EntityRecallIndex(
            repositories,
            limit=self.settings.common_entities_limit,
            minimum=self.settings.common_entities_min,
        )

    async def get_user_context(self, phone_number: str, organization_id: str) -> UserContext:
        settings = self.settings
        degraded: List[str] = []
        profile, pointers, actions, turns, candidates, metrics = await asyncio.gather(
            self._guard(PROFILE_SLICE, self._load_profile(phone_number, organization_id), None, degraded),
            self._guard(
                MEMORY_SLICE, self.memory_store.read_pointers(phone_number),
                ConversationPointers(), degraded,
            ),
            self._guard(
                ACTIVITY_SLICE,
                self.memory_store.recent_actions(phone_number, settings.recent_activity_limit),
                [], degraded,
            ),
            self._guard(
                TURNS_SLICE,
                self.memory_store.recent(phone_number, settings.response_history_turns),
                [], degraded,
            ),
            self._guard(
                ENTITIES_SLICE, self.recall_index.fetch_candidates(organization_id),
                RecallCandidates(), degraded,
            ),
            self._guard(
                METRICS_SLICE, self.metrics_reader.read(organization_id),
                BusinessMetrics(), degraded,
            ),
        )

        recent_activity = derive_recent_activity(actions, settings.recent_activity_limit)
        context = UserContext(
            whatsapp_number=phone_number,
            organization_id=organization_id,
            user_profile=profile,
            recent_activity=recent_activity,
            common_entities=self.recall_index.derive(recent_activity, candidates),
            business_metrics=metrics,
            user_patterns=analyze_user_patterns(recent_activity),
            conversation_memory=pointers,
            recent_turns=turns,
            degraded=sorted(degraded),
        )

        logger.info(
            f"User context built for {phone_number}: "
            f"{len(context.recent_activity)} recent actions, "
            f"{len(context.common_entities.clients)} common clients, "
            f"{context.business_metrics.overdue_invoices} overdue invoices"
        )
        if degraded:
            logger.warning(f"User context for {phone_number} is missing: {', '.join(context.degraded)}")
        return context

    async def _load_profile(self, phone_number: str, organization_id: str) -> Optional[UserProfile]:
        user = await self.repositories.profiles.find(phone_number, organization_id)
        if user is None:
            return None
        return UserProfile(
            name=user.name or "User",
            email=user.email,
            language=user.language or "en",
            timezone=user.timezone or "Africa/Lagos",
        )

    async def _guard(self, source: str, fetch: Awaitable[T], default: T, degraded: List[str]) -> T:
        """Await a sub-fetch, substituting `default` and noting `source` if it fails."""
        try:
            return await fetch
        except Exception as e:
            logger.error(f"Failed to load {source} for user context: {e}")
            degraded.append(source)
            return default
