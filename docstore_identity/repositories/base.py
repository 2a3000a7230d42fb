"""
Base repository over the storage provider.

Repository reads are best-effort: a store error while querying is logged
and degrades to an empty result. Writes surface failures through the
IdentityResult returned by the provider.
"""
import asyncio
import logging
from typing import Generic, Optional, TypeVar

from docstore_identity.core.cancellation import throw_if_cancelled
from docstore_identity.core.exceptions import StoreError
from docstore_identity.models.base import IdentityDocument
from docstore_identity.models.result import IdentityResult
from docstore_identity.storage.provider import Query, StorageProvider

TEntity = TypeVar("TEntity", bound=IdentityDocument)

logger = logging.getLogger(__name__)


class Repository(Generic[TEntity]):
    """Typed wrapper around StorageProvider for one entity type."""

    def __init__(self, provider: StorageProvider, model_cls: type[TEntity]):
        if provider is None:
            raise TypeError("provider cannot be None")
        self.provider = provider
        self.model_cls = model_cls

    @property
    def queryable(self) -> Query[TEntity]:
        return self.provider.queryable(self.model_cls)

    # ==================== CRUD ====================

    async def add(self, entity: TEntity, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        return await self.provider.create(entity, cancel)

    async def update(self, entity: TEntity, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        return await self.provider.update(entity, cancel=cancel)

    async def remove(self, entity: TEntity, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        return await self.provider.delete(entity, cancel)

    async def find_by_id(
        self, entity_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[TEntity]:
        return await self.provider.find_by_id(self.model_cls, entity_id, cancel)

    # ==================== Best-effort reads ====================

    async def _first(
        self, query: Query[TEntity], cancel: Optional[asyncio.Event] = None
    ) -> Optional[TEntity]:
        throw_if_cancelled(cancel)
        try:
            # Should only be one, so...
            return await query.first()
        except StoreError as e:
            logger.warning(
                f"Query degraded to None: type={self.model_cls.__name__}, "
                f"filter={query.filter}, status={e.status_code}, error={e.message}"
            )
            return None

    async def _all(
        self, query: Query, cancel: Optional[asyncio.Event] = None
    ) -> list:
        throw_if_cancelled(cancel)
        try:
            return await query.to_list()
        except StoreError as e:
            logger.warning(
                f"Query degraded to []: type={query.model_cls.__name__}, "
                f"filter={query.filter}, status={e.status_code}, error={e.message}"
            )
            return []
