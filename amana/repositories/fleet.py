"""Client, route and driver queries used by the context aggregator."""

from typing import List

from sqlalchemy import select, func

from amana.models import Client, Route, Driver
from amana.models.fleet import ACTIVE_ROUTE_STATUSES, ACTIVE_DRIVER_STATUS
from amana.repositories.base import BaseRepository


class ClientRepository(BaseRepository):

    async def recent_names(self, organization_id: str, limit: int) -> List[str]:
        """Names of the most recently updated clients."""
        async with self._session("recent_names") as session:
            result = await session.execute(
                select(Client.name)
                .where(Client.organization_id == organization_id)
                .order_by(Client.updated_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())


class RouteRepository(BaseRepository):

    async def active_names(self, organization_id: str, limit: int) -> List[str]:
        """Display names of the newest active routes."""
        async with self._session("active_names") as session:
            result = await session.execute(
                select(Route)
                .where(
                    Route.organization_id == organization_id,
                    Route.status.in_(ACTIVE_ROUTE_STATUSES),
                )
                .order_by(Route.created_at.desc())
                .limit(limit)
            )
            return [route.display_name for route in result.scalars().all()]

    async def count_active(self, organization_id: str) -> int:
        async with self._session("count_active") as session:
            result = await session.execute(
                select(func.count(Route.id)).where(
                    Route.organization_id == organization_id,
                    Route.status.in_(ACTIVE_ROUTE_STATUSES),
                )
            )
            return result.scalar_one() or 0


class DriverRepository(BaseRepository):

    async def active_names(self, organization_id: str, limit: int) -> List[str]:
        async with self._session("active_names") as session:
            result = await session.execute(
                select(Driver.name)
                .where(
                    Driver.organization_id == organization_id,
                    Driver.status == ACTIVE_DRIVER_STATUS,
                )
                .order_by(Driver.updated_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def count_active(self, organization_id: str) -> int:
        async with self._session("count_active") as session:
            result = await session.execute(
                select(func.count(Driver.id)).where(
                    Driver.organization_id == organization_id,
                    Driver.status == ACTIVE_DRIVER_STATUS,
                )
            )
            return result.scalar_one() or 0
