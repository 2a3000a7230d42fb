"""
User logins repository.
"""
import asyncio
from typing import Optional

from docstore_identity.models.login import UserLogin, UserLoginInfo
from docstore_identity.repositories.base import Repository
from docstore_identity.storage.provider import StorageProvider


class UserLogins(Repository[UserLogin]):
    """
    UserLogin documents.

    The composite (login_provider, provider_key) lookups stand in for a
    unique index; the store does not enforce it.
    """

    def __init__(self, provider: StorageProvider, model_cls: type[UserLogin] = UserLogin):
        super().__init__(provider, model_cls)

    async def find_by_user(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[UserLogin]:
        if not user_id:
            return []
        return await self._all(self.queryable.where(user_id=user_id), cancel)

    async def get_logins(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[UserLoginInfo]:
        return [login.to_login_info() for login in await self.find_by_user(user_id, cancel)]

    async def find(
        self,
        login_provider: str,
        provider_key: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[UserLogin]:
        return await self._first(
            self.queryable.where(login_provider=login_provider, provider_key=provider_key),
            cancel,
        )

    async def find_for_user(
        self,
        user_id: str,
        login_provider: str,
        provider_key: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[UserLogin]:
        return await self._first(
            self.queryable.where(
                user_id=user_id, login_provider=login_provider, provider_key=provider_key
            ),
            cancel,
        )
