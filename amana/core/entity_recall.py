"""Entity Recall Index - the clients, routes and drivers a user talks about."""

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, List

from amana.repositories import Repositories
from amana.schemas.context import ActivityRecord, CommonEntities

ENTITY_KINDS = ("client", "route", "driver")


@dataclass
class RecallCandidates:
    """Recency-ordered names straight from the collections."""

    clients: List[str] = field(default_factory=list)
    routes: List[str] = field(default_factory=list)
    drivers: List[str] = field(default_factory=list)


def unique_names(names: Iterable[str], limit: int) -> List[str]:
    """Drop blanks and duplicates keeping first occurrence, then cap."""
    seen = dict.fromkeys(name for name in names if name)
    return list(seen)[:limit]


class EntityRecallIndex:
    """
    Derives common entities from recent activity, topped up from the database.

    Candidate queries are issued up front (they run inside the aggregator's
    concurrent fan-out); `derive` itself does no I/O.
    """

    def __init__(self, repositories: Repositories, limit: int = 5, minimum: int = 3):
        self.repositories = repositories
        self.limit = limit
        self.minimum = minimum

    async def fetch_candidates(self, organization_id: str) -> RecallCandidates:
        repos = self.repositories
        clients, routes, drivers = await asyncio.gather(
            repos.clients.recent_names(organization_id, self.limit),
            repos.routes.active_names(organization_id, self.limit),
            repos.drivers.active_names(organization_id, self.limit),
        )
        return RecallCandidates(clients=clients, routes=routes, drivers=drivers)

    def derive(
        self,
        recent_activity: List[ActivityRecord],
        candidates: RecallCandidates,
    ) -> CommonEntities:
        """
        Merge names seen in activity (most recent first) with the candidates.

        The database list is only consulted for a kind when activity yields
        fewer than `minimum` names for it.
        """
        result = {}
        for kind in ENTITY_KINDS:
            from_activity = unique_names(
                (
                    record.entity.name
                    for record in recent_activity
                    if record.entity is not None and record.entity.type == kind
                ),
                self.limit,
            )
            if len(from_activity) < self.minimum:
                fallback = getattr(candidates, f"{kind}s")
                from_activity = unique_names(from_activity + fallback, self.limit)
            result[f"{kind}s"] = from_activity

        return CommonEntities(**result)
