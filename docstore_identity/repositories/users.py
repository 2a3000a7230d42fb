"""
Users repository.
"""
import asyncio
from typing import Any, Optional

from docstore_identity.models.result import IdentityResult
from docstore_identity.models.user import User
from docstore_identity.repositories.base import Repository
from docstore_identity.storage.provider import StorageProvider


class Users(Repository[User]):
    """User documents: CRUD plus lookups on normalized name and email."""

    def __init__(self, provider: StorageProvider, model_cls: type[User] = User):
        super().__init__(provider, model_cls)

    async def update(
        self,
        user: User,
        cancel: Optional[asyncio.Event] = None,
        if_match: Optional[dict[str, Any]] = None,
    ) -> IdentityResult:
        return await self.provider.update(user, if_match=if_match, cancel=cancel)

    async def find_by_name(
        self, normalized_user_name: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[User]:
        if not normalized_user_name:
            return None
        return await self._first(
            self.queryable.where(normalized_user_name=normalized_user_name), cancel
        )

    async def find_by_email(
        self, normalized_email: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[User]:
        if not normalized_email:
            return None
        return await self._first(
            self.queryable.where(normalized_email=normalized_email), cancel
        )
