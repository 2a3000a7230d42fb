"""
Role claims repository.
"""
import asyncio
from typing import Optional

from docstore_identity.models.claims import Claim, RoleClaim
from docstore_identity.repositories.base import Repository
from docstore_identity.storage.provider import StorageProvider


class RoleClaims(Repository[RoleClaim]):
    """RoleClaim documents."""

    def __init__(self, provider: StorageProvider, model_cls: type[RoleClaim] = RoleClaim):
        super().__init__(provider, model_cls)

    async def find_by_role(
        self, role_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[RoleClaim]:
        if not role_id:
            return []
        return await self._all(self.queryable.where(role_id=role_id), cancel)

    async def get_claims(
        self, role_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[Claim]:
        return [role_claim.to_claim() for role_claim in await self.find_by_role(role_id, cancel)]

    async def find(
        self, role_id: Optional[str], claim: Claim, cancel: Optional[asyncio.Event] = None
    ) -> list[RoleClaim]:
        if not role_id:
            return []
        return await self._all(
            self.queryable.where(role_id=role_id, claim_type=claim.type, claim_value=claim.value),
            cancel,
        )
