"""
User roles repository.
"""
import asyncio
from typing import Optional

from docstore_identity.core.flatten import split_tokens
from docstore_identity.models.user import User
from docstore_identity.models.user_role import UserRole
from docstore_identity.repositories.base import Repository
from docstore_identity.storage.provider import StorageProvider


class UserRoles(Repository[UserRole]):
    """UserRole link documents and the role-to-users lookup."""

    def __init__(
        self,
        provider: StorageProvider,
        model_cls: type[UserRole] = UserRole,
        user_cls: type[User] = User,
    ):
        super().__init__(provider, model_cls)
        self.user_cls = user_cls

    async def find(
        self, user_id: Optional[str], role_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[UserRole]:
        if not user_id or not role_id:
            return None
        return await self._first(self.queryable.where(user_id=user_id, role_id=role_id), cancel)

    async def find_all(
        self, user_id: Optional[str], role_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[UserRole]:
        """Every link between user_id and role_id."""
        if not user_id or not role_id:
            return []
        return await self._all(self.queryable.where(user_id=user_id, role_id=role_id), cancel)

    async def find_by_user(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[UserRole]:
        if not user_id:
            return []
        return await self._all(self.queryable.where(user_id=user_id), cancel)

    async def get_users(self, role_id: Optional[str], cancel: Optional[asyncio.Event] = None) -> list[User]:
        """Users whose flattened role ids hold role_id."""
        if not role_id:
            return []
        query = self.provider.queryable(self.user_cls).where_contains_token("flatten_role_ids", role_id)
        return await self._all(query, cancel)

    async def get_role_names(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[str]:
        """Role names from the stored user's flattened field."""
        user = await self.provider.find_by_id(self.user_cls, user_id, cancel)
        if user is None:
            return []
        return split_tokens(user.flatten_role_names)
