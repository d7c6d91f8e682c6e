"""Message API routes, called by the WhatsApp webhook handler."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from amana.core.context_aggregator import ContextAggregator
from amana.core.dispatcher import Dispatcher, build_dispatcher
from amana.core.llm_client import LLMClient, get_llm_client
from amana.database import get_session_factory
from amana.repositories import build_repositories
from amana.schemas.context import UserContext
from amana.schemas.messages import InboundMessageRequest, InboundMessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/amana", tags=["amana"])


def get_dispatcher(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    llm_client: LLMClient = Depends(get_llm_client),
) -> Dispatcher:
    return build_dispatcher(session_factory, llm_client)


def get_context_aggregator(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> ContextAggregator:
    return ContextAggregator(build_repositories(session_factory))


@router.post("/message", response_model=InboundMessageResponse)
async def handle_message(
    request: InboundMessageRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """
    Handle one inbound message and return the reply to send.

    Failures never surface as HTTP errors; the reply is an apology instead.
    """
    result = await dispatcher.handle_message(
        phone_number=request.phone_number,
        organization_id=request.organization_id,
        message=request.message,
        voice_transcript=request.voice_transcript,
    )
    return InboundMessageResponse(
        reply=result.reply,
        conversation_type=result.conversation_type.value,
        intent=result.intent,
        action_status=result.action_status.value if result.action_status else None,
    )


@router.get("/context/{organization_id}/{phone_number}", response_model=UserContext)
async def get_user_context(
    organization_id: str,
    phone_number: str,
    aggregator: ContextAggregator = Depends(get_context_aggregator),
):
    """Get the context snapshot the assistant would use for this number."""
    return await aggregator.get_user_context(phone_number, organization_id)
