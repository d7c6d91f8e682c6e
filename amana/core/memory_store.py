"""Per-number conversation memory: last-referenced pointers plus turn history."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from amana.models import ConversationMemory, ConversationTurn
from amana.repositories import ConversationRepository
from amana.schemas.context import (
    ConversationPointers,
    HistoryTurn,
    MEMORY_POINTER_FIELDS,
    entity_adapter,
)

logger = logging.getLogger(__name__)


@dataclass
class ConversationMemoryRecord:
    """Everything stored for one phone number."""

    phone_number: str
    pointers: ConversationPointers = field(default_factory=ConversationPointers)
    # Oldest first
    history: List[HistoryTurn] = field(default_factory=list)
    updated_at: Optional[datetime] = None


def to_pointers(memory: ConversationMemory) -> ConversationPointers:
    return ConversationPointers(**{name: getattr(memory, name) for name in MEMORY_POINTER_FIELDS})


def decode_turn(row: ConversationTurn) -> HistoryTurn:
    """Build a HistoryTurn from a stored row, dropping an undecodable entity."""
    entity = None
    if row.entity:
        try:
            entity = entity_adapter.validate_python(row.entity)
        except ValidationError as e:
            logger.warning(
                f"Dropping malformed entity on turn {row.id} for {row.phone_number}: "
                f"{e.error_count()} error(s)"
            )

    return HistoryTurn(
        role=row.role,
        intent=row.intent,
        entity=entity,
        message=row.message,
        reply=row.reply,
        timestamp=row.created_at,
    )


class ConversationMemoryStore:
    """Reads and writes the conversation memory of a phone number.

    Pointers are upserted field by field (last write wins). History is
    append-only; windowing happens at read time.
    """

    def __init__(self, conversations: ConversationRepository):
        self.conversations = conversations

    async def read(self, phone_number: str) -> Optional[ConversationMemoryRecord]:
        """Pointers and full decoded history, or None if nothing is stored."""
        memory = await self.conversations.get_memory(phone_number)
        rows = await self.conversations.list_turns(phone_number)

        if memory is None and not rows:
            return None

        record = ConversationMemoryRecord(
            phone_number=phone_number,
            history=[decode_turn(row) for row in rows],
        )
        if memory is not None:
            record.pointers = to_pointers(memory)
            record.updated_at = memory.updated_at
        return record

    async def read_pointers(self, phone_number: str) -> ConversationPointers:
        """Last-referenced pointers; all empty for a number never seen."""
        memory = await self.conversations.get_memory(phone_number)
        if memory is None:
            return ConversationPointers()
        return to_pointers(memory)

    async def recent(self, phone_number: str, limit: int) -> List[HistoryTurn]:
        """The last `limit` turns, oldest first."""
        if limit <= 0:
            return []
        rows = await self.conversations.list_turns(phone_number, limit=limit)
        return [decode_turn(row) for row in rows]

    async def recent_actions(self, phone_number: str, limit: int) -> List[HistoryTurn]:
        """The last `limit` assistant turns that completed an action, oldest first."""
        if limit <= 0:
            return []
        rows = await self.conversations.list_turns(phone_number, limit=limit, actions_only=True)
        return [decode_turn(row) for row in rows]

    async def merge_update(self, phone_number: str, fields: dict) -> None:
        """Upsert pointer fields. Fields not named keep their stored value."""
        unknown = set(fields) - set(MEMORY_POINTER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown memory fields: {sorted(unknown)}")
        if not fields:
            return

        await self.conversations.upsert_memory(phone_number, fields)
        logger.info(f"Conversation memory updated for {phone_number}: {sorted(fields)}")

    async def append_history(self, phone_number: str, turn: HistoryTurn) -> None:
        """Insert one turn. Existing turns are never rewritten or truncated."""
        await self.conversations.append_turn(
            phone_number=phone_number,
            role=turn.role,
            intent=turn.intent,
            entity=turn.entity.model_dump(exclude_none=True) if turn.entity else None,
            message=turn.message,
            reply=turn.reply,
            created_at=turn.timestamp,
        )
        logger.debug(f"Turn appended for {phone_number} (intent={turn.intent})")
