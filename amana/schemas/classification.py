"""Wire contract for the model-backed conversation classifier."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConversationType(str, Enum):
    """What kind of message the user sent."""
    GREETING = "greeting"
    SMALL_TALK = "small_talk"
    COMPLIMENT = "compliment"
    QUESTION = "question"
    TASK = "task"
    UNKNOWN = "unknown"


class ClassificationPayload(BaseModel):
    """JSON object the model must return. Anything else counts as a failure."""

    model_config = ConfigDict(populate_by_name=True)

    type: ConversationType
    is_greeting: bool = Field(..., alias="isGreeting")
    is_small_talk: bool = Field(..., alias="isSmallTalk")
    is_compliment: bool = Field(..., alias="isCompliment")
    is_question: bool = Field(..., alias="isQuestion")
    needs_business_action: bool = Field(..., alias="needsBusinessAction")
    suggested_response: Optional[str] = Field(None, alias="suggestedResponse")
