"""
Roles repository.
"""
import asyncio
from typing import Any, Optional

from docstore_identity.models.result import IdentityResult
from docstore_identity.models.role import Role
from docstore_identity.repositories.base import Repository
from docstore_identity.storage.provider import StorageProvider


class Roles(Repository[Role]):
    """Role documents: CRUD plus lookup on normalized name."""

    def __init__(self, provider: StorageProvider, model_cls: type[Role] = Role):
        super().__init__(provider, model_cls)

    async def update(
        self,
        role: Role,
        cancel: Optional[asyncio.Event] = None,
        if_match: Optional[dict[str, Any]] = None,
    ) -> IdentityResult:
        return await self.provider.update(role, if_match=if_match, cancel=cancel)

    async def find_by_name(
        self, normalized_name: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[Role]:
        """
        Find a role by normalized name.

        Uniqueness of normalized names is not enforced by the store; with
        duplicates the first result of the first page wins.
        """
        if not normalized_name:
            return None
        return await self._first(self.queryable.where(normalized_name=normalized_name), cancel)
