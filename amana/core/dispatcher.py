"""
Dispatcher - the per-message pipeline.

context -> classification -> social reply or business action -> memory.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from amana.config import Settings, get_settings
from amana.core.actions import ActionRegistry, ActionRequest, build_default_registry
from amana.core.classifier import ClassificationResult, ConversationClassifier
from amana.core.context_aggregator import ContextAggregator
from amana.core.intents import IntentMatcher
from amana.core.invoice_intelligence import InvoiceIntelligence
from amana.core.llm_client import LLMClient
from amana.core.memory_store import ConversationMemoryStore
from amana.core.response_generator import ResponseGenerator
from amana.core.results import ActionResult, ActionStatus
from amana.repositories import build_repositories
from amana.schemas.classification import ConversationType
from amana.schemas.context import EntityRef, HistoryTurn, UserContext

logger = logging.getLogger(__name__)

ERROR_REPLIES = (
    "Ah sorry o! 😅 Something go wrong. Make you try again?",
    "Omo! E no work as expected. Let's try again abeg.",
    "Chai! Network wahala. Make we try again?",
    "My bad! 😓 Something shake. Try am again?",
)

NOT_SURE_REPLY = "I no too sure wetin you mean 🤔. I fit help you with:"

ACTION_TYPES = frozenset({ConversationType.TASK, ConversationType.UNKNOWN})


@dataclass
class DispatchResult:
    """Reply for one inbound message and what produced it."""

    reply: str
    conversation_type: ConversationType
    intent: Optional[str] = None
    action_status: Optional[ActionStatus] = None
    entity: Optional[EntityRef] = None


def pointer_updates(entity: Optional[EntityRef]) -> dict:
    """Conversation memory fields to set for a resolved entity."""
    if entity is None:
        return {}
    if entity.type == "invoice":
        updates = {"last_invoice_number": entity.id}
        if entity.name:
            updates["last_client_name"] = entity.name
        return updates
    if entity.type == "client":
        return {"last_client_name": entity.name or entity.id}
    if entity.type == "driver":
        return {"last_driver_id": entity.id}
    if entity.type == "route":
        return {"last_route_id": entity.id}
    return {}


class Dispatcher:
    """Handles one inbound message end to end."""

    def __init__(
        self,
        aggregator: ContextAggregator,
        classifier: ConversationClassifier,
        generator: ResponseGenerator,
        matcher: IntentMatcher,
        registry: ActionRegistry,
        memory_store: ConversationMemoryStore,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.aggregator = aggregator
        self.classifier = classifier
        self.generator = generator
        self.matcher = matcher
        self.registry = registry
        self.memory_store = memory_store
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()

    async def handle_message(
        self,
        phone_number: str,
        organization_id: str,
        message: str,
        voice_transcript: Optional[str] = None,
    ) -> DispatchResult:
        """
        Produce the reply for one message and record the turn.

        A voice transcript, when present, replaces the text body. Unexpected
        faults never escape: they are logged and answered with an apology.
        """
        text = (voice_transcript or message or "").strip()
        logger.info(f"Processing message from {phone_number} (org={organization_id}): {text[:100]}")

        try:
            result = await self._process(phone_number, organization_id, text)
        except Exception:
            logger.exception(f"Unexpected error handling message from {phone_number}")
            return DispatchResult(
                reply=self.rng.choice(ERROR_REPLIES),
                conversation_type=ConversationType.UNKNOWN,
                action_status=ActionStatus.ERROR,
            )

        await self._remember(phone_number, text, result)
        return result

    async def _process(self, phone_number: str, organization_id: str, text: str) -> DispatchResult:
        context = await self.aggregator.get_user_context(phone_number, organization_id)
        classification = await self.classifier.classify(text, context.recent_turns)

        if classification.is_social:
            reply = await self._social_reply(text, organization_id, context, classification)
            return DispatchResult(reply=reply, conversation_type=classification.type)

        match = None
        if classification.needs_business_action or classification.type in ACTION_TYPES:
            match = self.matcher.match(text, context.conversation_memory)

        handler = self.registry.get(match.intent.value) if match else None
        if handler is None:
            if classification.type == ConversationType.QUESTION:
                reply = await self.generator.generate(
                    text, organization_id, context.recent_turns,
                    business_context=context.business_metrics,
                )
            else:
                reply = self._not_sure_reply()
            return DispatchResult(reply=reply, conversation_type=classification.type)

        request = ActionRequest(
            intent=match.intent.value,
            params=match.params,
            phone_number=phone_number,
            organization_id=organization_id,
            context=context,
        )
        action = await handler(request)
        logger.info(f"Action {request.intent} finished with {action.status.value}")

        return DispatchResult(
            reply=await self._action_reply(text, organization_id, context, action),
            conversation_type=classification.type,
            intent=request.intent,
            action_status=action.status,
            entity=action.entity,
        )

    async def _social_reply(
        self,
        text: str,
        organization_id: str,
        context: UserContext,
        classification: ClassificationResult,
    ) -> str:
        # Keyword classification means the model is unavailable
        if classification.source == "keyword" and classification.suggested_response:
            return classification.suggested_response
        return await self.generator.generate(
            text, organization_id, context.recent_turns,
            business_context=context.business_metrics,
        )

    async def _action_reply(
        self,
        text: str,
        organization_id: str,
        context: UserContext,
        action: ActionResult,
    ) -> str:
        if action.status in (ActionStatus.UPSTREAM_UNAVAILABLE, ActionStatus.ERROR):
            return self.rng.choice(ERROR_REPLIES)

        if self.settings.polish_action_replies and action.status == ActionStatus.SUCCESS:
            return await self.generator.generate(
                text, organization_id, context.recent_turns,
                business_context=context.business_metrics,
                action_result=action.message,
            )
        return action.message

    def _not_sure_reply(self) -> str:
        lines = [NOT_SURE_REPLY]
        lines.extend(f"• {entry}" for entry in self.registry.catalog())
        return "\n".join(lines)

    async def _remember(self, phone_number: str, text: str, result: DispatchResult) -> None:
        """Append the turn and update pointers. Failures are logged only."""
        completed = result.action_status == ActionStatus.SUCCESS
        turn = HistoryTurn(
            role="assistant",
            intent=result.intent if completed else None,
            entity=result.entity,
            message=text,
            reply=result.reply,
        )
        try:
            await self.memory_store.append_history(phone_number, turn)
        except Exception as e:
            logger.error(f"Error adding turn to history for {phone_number}: {e}")

        updates = pointer_updates(result.entity)
        if not updates:
            return
        try:
            await self.memory_store.merge_update(phone_number, updates)
        except Exception as e:
            logger.error(f"Error updating conversation memory for {phone_number}: {e}")


def build_dispatcher(
    session_factory: async_sessionmaker,
    llm_client: LLMClient,
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
) -> Dispatcher:
    """Wire the full pipeline over one session factory and LLM client."""
    settings = settings or get_settings()
    repositories = build_repositories(session_factory)
    memory_store = ConversationMemoryStore(repositories.conversations)
    engine = InvoiceIntelligence(repositories)
    return Dispatcher(
        aggregator=ContextAggregator(repositories, memory_store=memory_store, settings=settings),
        classifier=ConversationClassifier(llm_client, settings=settings),
        generator=ResponseGenerator(llm_client, settings=settings, rng=rng),
        matcher=IntentMatcher(),
        registry=build_default_registry(engine),
        memory_store=memory_store,
        settings=settings,
        rng=rng,
    )
