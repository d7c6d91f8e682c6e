"""Outcome types shared by business actions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from amana.schemas.context import EntityRef


class ActionStatus(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    VALIDATION_FAILURE = "validation_failure"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    ERROR = "error"


@dataclass
class ActionResult:
    """Result of one dispatched business action.

    `message` is always user-facing text, also for the non-success statuses.
    `entity` is the record the action resolved, if any, and feeds the
    conversation memory pointers.
    """

    status: ActionStatus
    message: str
    intent: Optional[str] = None
    entity: Optional[EntityRef] = None
    data: Optional[Any] = None
    suggestions: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == ActionStatus.SUCCESS
