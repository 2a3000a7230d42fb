"""
User tokens repository.
"""
import asyncio
from typing import Optional

from docstore_identity.models.user_token import UserToken
from docstore_identity.repositories.base import Repository
from docstore_identity.storage.provider import StorageProvider


class UserTokens(Repository[UserToken]):
    """UserToken documents."""

    def __init__(self, provider: StorageProvider, model_cls: type[UserToken] = UserToken):
        super().__init__(provider, model_cls)

    async def get_tokens(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[UserToken]:
        if not user_id:
            return []
        return await self._all(self.queryable.where(user_id=user_id), cancel)

    async def find(
        self,
        user_id: str,
        login_provider: str,
        name: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[UserToken]:
        return await self._first(
            self.queryable.where(user_id=user_id, login_provider=login_provider, name=name),
            cancel,
        )
