"""
Conversation Classifier - decides whether a message is social or a task.

The model is asked for a JSON object matching ClassificationPayload. Any
failure on that path (timeout, transport, malformed output) falls back to a
keyword matcher, so classification itself never raises.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from openai import OpenAIError
from pydantic import ValidationError

from amana.config import Settings, get_settings
from amana.core.llm_client import LLMClient
from amana.schemas.classification import ClassificationPayload, ConversationType
from amana.schemas.context import HistoryTurn, turns_to_llm_messages

logger = logging.getLogger(__name__)

SOCIAL_TYPES = frozenset({
    ConversationType.GREETING,
    ConversationType.SMALL_TALK,
    ConversationType.COMPLIMENT,
})

GREETING_PATTERN = re.compile(r"\b(how far|wetin dey|good morning|hello|hi|hey)\b", re.IGNORECASE)
PRAISE_PATTERN = re.compile(r"\bthank|\b(nice|well done|good job|you good)\b", re.IGNORECASE)

GREETING_REPLY = "I dey o! 😊 Wetin I fit do for you today?"
PRAISE_REPLY = "Na my job be that! 😊 How I fit help you?"

CLASSIFICATION_PROMPT = """You are Amana, a Nigerian business AI assistant. Analyze the user's message and determine its type.

CONVERSATION TYPES:
- GREETING: "how far", "wetin dey happen", "good morning", "hello"
- SMALL_TALK: "how you dey", "you good?", "thanks", "nice one"
- COMPLIMENT: "you too good", "nice work", "well done"
- QUESTION: "how does this work?", "wetin be invoice?"
- TASK: "check invoice INV-001", "add expense", "show balance"

Respond in JSON:
{
  "type": "greeting|small_talk|compliment|question|task|unknown",
  "isGreeting": true/false,
  "isSmallTalk": true/false,
  "isCompliment": true/false,
  "isQuestion": true/false,
  "needsBusinessAction": true/false,
  "suggestedResponse": "Friendly Nigerian response in Pidgin/English"
}"""


@dataclass
class ClassificationResult:
    """Outcome of classifying one message."""

    type: ConversationType
    is_greeting: bool = False
    is_small_talk: bool = False
    is_compliment: bool = False
    is_question: bool = False
    needs_business_action: bool = False
    suggested_response: Optional[str] = None
    # "model" or "keyword"
    source: str = "model"

    @property
    def is_social(self) -> bool:
        return self.type in SOCIAL_TYPES

    @classmethod
    def from_payload(cls, payload: ClassificationPayload) -> "ClassificationResult":
        return cls(
            type=payload.type,
            is_greeting=payload.is_greeting,
            is_small_talk=payload.is_small_talk,
            is_compliment=payload.is_compliment,
            is_question=payload.is_question,
            needs_business_action=payload.needs_business_action,
            suggested_response=payload.suggested_response,
            source="model",
        )


def classify_by_keywords(message: str) -> ClassificationResult:
    """Offline classification from greeting and praise tokens."""
    if GREETING_PATTERN.search(message):
        return ClassificationResult(
            type=ConversationType.GREETING,
            is_greeting=True,
            suggested_response=GREETING_REPLY,
            source="keyword",
        )

    if PRAISE_PATTERN.search(message):
        return ClassificationResult(
            type=ConversationType.COMPLIMENT,
            is_compliment=True,
            suggested_response=PRAISE_REPLY,
            source="keyword",
        )

    return ClassificationResult(
        type=ConversationType.UNKNOWN,
        needs_business_action=True,
        source="keyword",
    )


class ConversationClassifier:
    """Classifies messages with the LLM, falling back to keywords."""

    def __init__(self, llm_client: LLMClient, settings: Optional[Settings] = None):
        self.llm_client = llm_client
        self.settings = settings or get_settings()

    async def classify(self, message: str, history: List[HistoryTurn]) -> ClassificationResult:
        """
        Classify a message given the preceding turns.

        Args:
            message: Inbound text (or voice transcript)
            history: Prior turns, oldest first. Only the last few are sent.

        Returns:
            ClassificationResult; `source` tells which path produced it.
        """
        window = self.settings.classification_history_turns
        messages = turns_to_llm_messages(history[-window:] if window > 0 else [])
        messages.append({"role": "user", "content": message})

        try:
            response = await asyncio.wait_for(
                self.llm_client.complete(
                    system_prompt=CLASSIFICATION_PROMPT,
                    messages=messages,
                    temperature=self.settings.classification_temperature,
                    max_tokens=self.settings.classification_max_tokens,
                    response_format={"type": "json_object"},
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
            payload = ClassificationPayload.model_validate(json.loads(response.text))
            result = ClassificationResult.from_payload(payload)
            logger.info(f"Classified message as {result.type.value} (model)")
            return result

        except asyncio.TimeoutError:
            logger.warning("Classification timed out, using keyword fallback")
        except (OpenAIError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Conversation type detection error: {e}")

        result = classify_by_keywords(message)
        logger.info(f"Classified message as {result.type.value} (keyword)")
        return result
