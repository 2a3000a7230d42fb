"""
Role store: the persistence backend the identity framework calls for roles
and role claims.
"""
import asyncio
import logging
from typing import Optional

from docstore_identity.models.base import new_id
from docstore_identity.models.claims import Claim
from docstore_identity.models.result import IdentityResult
from docstore_identity.models.role import Role
from docstore_identity.repositories import IdentityRepositories
from docstore_identity.services.base import StoreBase
from docstore_identity.storage.provider import Query

logger = logging.getLogger(__name__)


class RoleStore(StoreBase):
    """Persistence store for roles and their claims."""

    def __init__(self, repositories: IdentityRepositories):
        super().__init__()
        if repositories is None:
            raise TypeError("repositories cannot be None.")
        self.repositories = repositories

    @property
    def roles(self) -> Query[Role]:
        """Query handle over the role partition."""
        self._check()
        return self.repositories.roles.queryable

    # ==================== Roles ====================

    async def create(self, role: Role, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        self._check(cancel)
        self._require(role, "role")
        return await self.repositories.roles.add(role, cancel)

    async def update(self, role: Role, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        """Replace role, conditional on its previous concurrency stamp."""
        self._check(cancel)
        self._require(role, "role")

        previous_stamp = role.concurrency_stamp
        role.concurrency_stamp = new_id()
        if_match = {"concurrency_stamp": previous_stamp} if previous_stamp else None

        result = await self.repositories.roles.update(role, cancel, if_match=if_match)
        if not result.succeeded:
            role.concurrency_stamp = previous_stamp
        return result

    async def delete(self, role: Role, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        """
        Delete role and then its claims.

        User links to the role and the members' flattened fields are left
        untouched.
        """
        self._check(cancel)
        self._require(role, "role")

        result = await self.repositories.roles.remove(role, cancel)
        if result.succeeded:
            for role_claim in await self.repositories.role_claims.find_by_role(role.id):
                removed = await self.repositories.role_claims.remove(role_claim)
                if not removed.succeeded:
                    logger.warning(
                        f"Cascade delete left orphaned role claim {role_claim.id} "
                        f"for role {role.id}: {removed}"
                    )
        return result

    async def find_by_id(
        self, role_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[Role]:
        self._check(cancel)
        return await self.repositories.roles.find_by_id(role_id, cancel)

    async def find_by_name(
        self, normalized_name: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[Role]:
        self._check(cancel)
        return await self.repositories.roles.find_by_name(normalized_name, cancel)

    # ==================== Role claims ====================

    async def get_claims(self, role: Role, cancel: Optional[asyncio.Event] = None) -> list[Claim]:
        self._check(cancel)
        self._require(role, "role")
        return await self.repositories.role_claims.get_claims(role.id, cancel)

    async def add_claim(
        self, role: Role, claim: Claim, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        self._check(cancel)
        self._require(role, "role")
        self._require(claim, "claim")

        role_claim = self.repositories.role_claims.model_cls(role_id=role.id)
        role_claim.init_from_claim(claim)
        return await self.repositories.role_claims.add(role_claim, cancel)

    async def remove_claim(
        self, role: Role, claim: Claim, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """Delete every claim document of role matching claim."""
        self._check(cancel)
        self._require(role, "role")
        self._require(claim, "claim")

        failure: Optional[IdentityResult] = None
        for role_claim in await self.repositories.role_claims.find(role.id, claim, cancel):
            result = await self.repositories.role_claims.remove(role_claim, cancel)
            if not result.succeeded and failure is None:
                failure = result
        return failure or IdentityResult.success()
