"""Conversation memory pointers and the append-only turn log."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from amana.clock import utcnow
from amana.models import ConversationMemory, ConversationTurn
from amana.repositories.base import BaseRepository


class ConversationRepository(BaseRepository):

    async def get_memory(self, phone_number: str) -> Optional[ConversationMemory]:
        async with self._session("get_memory") as session:
            return await session.get(ConversationMemory, phone_number)

    async def upsert_memory(self, phone_number: str, fields: dict) -> None:
        """Set the given pointer fields, creating the row on first use."""
        async with self._session("upsert_memory") as session:
            now = utcnow()
            memory = await session.get(ConversationMemory, phone_number)
            if memory is None:
                session.add(ConversationMemory(
                    phone_number=phone_number,
                    created_at=now,
                    updated_at=now,
                    **fields,
                ))
            else:
                for name, value in fields.items():
                    setattr(memory, name, value)
                memory.updated_at = now

            try:
                await session.commit()
            except IntegrityError:
                # A concurrent turn inserted the row first; apply ours on top
                await session.rollback()
                await session.execute(
                    update(ConversationMemory)
                    .where(ConversationMemory.phone_number == phone_number)
                    .values(updated_at=now, **fields)
                )
                await session.commit()

    async def append_turn(
        self,
        phone_number: str,
        role: str,
        intent: Optional[str],
        entity: Optional[dict],
        message: Optional[str],
        reply: Optional[str],
        created_at: datetime,
    ) -> ConversationTurn:
        async with self._session("append_turn") as session:
            turn = ConversationTurn(
                phone_number=phone_number,
                role=role,
                intent=intent,
                entity=entity,
                message=message,
                reply=reply,
                created_at=created_at,
            )
            session.add(turn)
            await session.commit()
            return turn

    async def list_turns(
        self,
        phone_number: str,
        limit: Optional[int] = None,
        actions_only: bool = False,
    ) -> List[ConversationTurn]:
        """
        Turns of a number, oldest first. With a limit, only the newest ones.

        actions_only keeps assistant turns that carried an intent.
        """
        async with self._session("list_turns") as session:
            query = select(ConversationTurn).where(ConversationTurn.phone_number == phone_number)
            if actions_only:
                query = query.where(
                    ConversationTurn.role == "assistant",
                    ConversationTurn.intent.is_not(None),
                )
            query = query.order_by(ConversationTurn.id.desc())
            if limit is not None:
                query = query.limit(limit)
            result = await session.execute(query)
            turns = list(result.scalars().all())
            turns.reverse()
            return turns
