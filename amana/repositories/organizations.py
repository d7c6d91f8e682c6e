"""Organization and WhatsApp profile lookups."""

from typing import Optional

from sqlalchemy import select

from amana.models import Organization, WhatsAppUser
from amana.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository):

    async def get(self, organization_id: str) -> Optional[Organization]:
        async with self._session("get") as session:
            return await session.get(Organization, organization_id)

    async def get_wallet_balance(self, organization_id: str) -> float:
        """Wallet balance of the organization, 0 when it has no record."""
        organization = await self.get(organization_id)
        if organization is None:
            return 0.0
        return organization.wallet_balance or 0.0


class ProfileRepository(BaseRepository):

    async def find(self, whatsapp_number: str, organization_id: str) -> Optional[WhatsAppUser]:
        """Profile registered for this number within this organization."""
        async with self._session("find") as session:
            result = await session.execute(
                select(WhatsAppUser)
                .where(
                    WhatsAppUser.whatsapp_number == whatsapp_number,
                    WhatsAppUser.organization_id == organization_id,
                )
                .limit(1)
            )
            return result.scalar_one_or_none()
