"""Response Generator - warm Pidgin/English replies grounded in business context."""

import asyncio
import logging
import random
from typing import List, Optional

from openai import OpenAIError

from amana.config import Settings, get_settings
from amana.core.invoice_intelligence import format_naira
from amana.core.llm_client import LLMClient
from amana.schemas.context import BusinessMetrics, HistoryTurn, turns_to_llm_messages

logger = logging.getLogger(__name__)

FALLBACK_REPLIES = (
    "I dey here to help! 😊 Wetin you need today?",
    "E don set! How I fit assist you?",
    "No wahala! Tell me wetin you need.",
    "I ready to help! 💪 Talk to me.",
)

NO_ALERTS = "- No specific business alerts"

PERSONA_PROMPT = """You are Amana (meaning "trust" in Hausa), a warm and intelligent Nigerian business AI assistant for a transport & logistics company.

PERSONALITY:
- Friendly, warm, and conversational like a Nigerian colleague
- Use Nigerian Pidgin naturally: "I dey", "wetin", "abeg", "no wahala", "e don set"
- Proactive - offer helpful suggestions based on business context
- Professional but relatable - balance work with warmth

CURRENT BUSINESS CONTEXT:
{context}

RESPONSE STYLE:
- Keep responses concise (2-3 sentences max)
- Be helpful and action-oriented
- Use emojis naturally: 😊 💰 📄 ✅ ⚠️
- Always end with a helpful question or next step
- Match user's language level (Pidgin ↔ English)

GREETINGS:
- "How far?" → "I dey o! 😊 Wetin I fit do for you today?"
- "Good morning" → "Good morning! ☀️ How your business dey?"
- "Wetin dey happen?" → "Everything dey kampe! How I fit help?"

COMPLIMENTS:
- "Nice work" → "Thank you! 😊 Na team work. Anything else?"
- "You good" → "I dey try! 💪 How I fit help you?"

PROACTIVE REMINDERS (when greeting):
If unpaid invoices > 0: Mention it naturally
If overdue invoices > 0: Suggest following up with clients
If low balance: Suggest funding wallet
If active routes: Offer to show updates"""

ACTION_RESULT_PROMPT = """

ACTION RESULT (rephrase this for the user, keep every number and invoice reference exactly as written):
{action_result}"""


def build_context_lines(metrics: Optional[BusinessMetrics]) -> List[str]:
    """Bullet lines for the non-zero business figures only."""
    if metrics is None:
        return []

    lines = []
    if metrics.unpaid_invoices > 0:
        lines.append(
            f"- User has {metrics.unpaid_invoices} unpaid invoices "
            f"worth {format_naira(metrics.unpaid_total)}"
        )
    if metrics.overdue_invoices > 0:
        lines.append(f"- {metrics.overdue_invoices} invoices are overdue")
    if metrics.wallet_balance:
        lines.append(f"- Wallet balance: {format_naira(metrics.wallet_balance)}")
    if metrics.active_routes > 0:
        lines.append(f"- {metrics.active_routes} active routes")
    return lines


class ResponseGenerator:
    """Generates conversational replies. Always returns non-empty text."""

    def __init__(
        self,
        llm_client: LLMClient,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.llm_client = llm_client
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()

    def build_system_prompt(
        self,
        business_context: Optional[BusinessMetrics] = None,
        action_result: Optional[str] = None,
    ) -> str:
        context = "\n".join(build_context_lines(business_context)) or NO_ALERTS
        prompt = PERSONA_PROMPT.format(context=context)
        if action_result:
            prompt += ACTION_RESULT_PROMPT.format(action_result=action_result)
        return prompt

    async def generate(
        self,
        message: str,
        organization_id: str,
        history: List[HistoryTurn],
        business_context: Optional[BusinessMetrics] = None,
        action_result: Optional[str] = None,
    ) -> str:
        """
        Generate a reply to `message`.

        Args:
            message: The user's message
            organization_id: Tenant, used for logging
            history: Prior turns, oldest first; the last few are replayed
            business_context: Metrics to mention proactively
            action_result: Outcome text of a business action to rephrase

        Returns:
            The model's reply, or a fallback when the model is unavailable
            or answers with nothing. With an action_result the fallback is the
            action_result itself.
        """
        window = self.settings.response_history_turns
        messages = turns_to_llm_messages(history[-window:] if window > 0 else [])
        messages.append({"role": "user", "content": message})

        try:
            response = await asyncio.wait_for(
                self.llm_client.complete(
                    system_prompt=self.build_system_prompt(business_context, action_result),
                    messages=messages,
                    temperature=self.settings.response_temperature,
                    max_tokens=self.settings.response_max_tokens,
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
            text = (response.text or "").strip()
            if text:
                return text
            logger.warning(f"Empty model reply for {organization_id}, using fallback")

        except asyncio.TimeoutError:
            logger.warning(f"Response generation timed out for {organization_id}, using fallback")
        except OpenAIError as e:
            logger.error(f"Conversational response error for {organization_id}: {e}")

        return self.fallback(action_result)

    def fallback(self, action_result: Optional[str] = None) -> str:
        if action_result and action_result.strip():
            return action_result
        return self.rng.choice(FALLBACK_REPLIES)
