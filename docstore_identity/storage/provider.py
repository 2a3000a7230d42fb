"""
Generic storage provider for identity documents.

The provider is the only place that knows how an entity type maps onto a
container and a partition key. Subclasses choose the container per type
(one shared container, or one per entity type); everything else, including
partition-key resolution, serialization and result mapping, lives here so
the write path and the query path can never disagree.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar, Union

from docstore_identity.core.cancellation import throw_if_cancelled
from docstore_identity.core.exceptions import StoreError
from docstore_identity.core.flatten import token_pattern
from docstore_identity.database.container import (
    DocumentContainer,
    FeedIterator,
    ItemResponse,
    PartitionKey,
)
from docstore_identity.models.base import IdentityDocument
from docstore_identity.models.result import IdentityError, IdentityResult

TDocument = TypeVar("TDocument", bound=IdentityDocument)

logger = logging.getLogger(__name__)

TIMESTAMP_KEY = "_ts"


def resolve_partition_key(
    entity_or_type: Union[IdentityDocument, type[IdentityDocument]],
) -> PartitionKey:
    """
    Partition key for an entity instance or entity type.

    Empty or missing discriminators resolve to PartitionKey.NONE.
    """
    return PartitionKey(getattr(entity_or_type, "partition_key", None) or None)


def _failure(status_code: int, description: str) -> IdentityResult:
    return IdentityResult.failed(
        IdentityError(
            code=StoreError(status_code, description).status_name,
            description=description,
            status_code=status_code,
        )
    )


class DocumentFeed(Generic[TDocument]):
    """Typed view over a FeedIterator."""

    def __init__(self, provider: "StorageProvider", model_cls: type[TDocument], feed: FeedIterator):
        self._provider = provider
        self._model_cls = model_cls
        self._feed = feed

    @property
    def has_more_results(self) -> bool:
        return self._feed.has_more_results

    async def read_next(self) -> list[TDocument]:
        return [
            self._provider.from_document(self._model_cls, doc)
            for doc in await self._feed.read_next()
        ]


class Query(Generic[TDocument]):
    """
    Predicate query over one entity type, scoped to that type's partition.

    Queries are immutable; where() returns a new query. Execution errors
    propagate as StoreError, repositories decide how to degrade.
    """

    def __init__(
        self,
        provider: "StorageProvider",
        model_cls: type[TDocument],
        filter_dict: Optional[dict[str, Any]] = None,
    ):
        self._provider = provider
        self.model_cls = model_cls
        self.filter = dict(filter_dict or {})

    @property
    def partition_key(self) -> PartitionKey:
        return resolve_partition_key(self.model_cls)

    def where(self, **equals: Any) -> "Query[TDocument]":
        """Add equality predicates on model fields."""
        filter_dict = dict(self.filter)
        for field_name, value in equals.items():
            filter_dict[self.model_cls.document_key(field_name)] = value
        return Query(self._provider, self.model_cls, filter_dict)

    def where_contains_token(self, field_name: str, token: str) -> "Query[TDocument]":
        """Match documents whose flattened list field holds token exactly."""
        filter_dict = dict(self.filter)
        filter_dict[self.model_cls.document_key(field_name)] = {"$regex": token_pattern(token)}
        return Query(self._provider, self.model_cls, filter_dict)

    def feed(self, page_size: Optional[int] = None) -> DocumentFeed[TDocument]:
        container = self._provider.container_for(self.model_cls)
        return DocumentFeed(
            self._provider,
            self.model_cls,
            container.query_items(
                self.filter,
                self.partition_key,
                page_size or self._provider.page_size,
            ),
        )

    async def first(self) -> Optional[TDocument]:
        """First result of the first page, or None."""
        feed = self.feed()
        if feed.has_more_results:
            page = await feed.read_next()
            return page[0] if page else None
        return None

    async def to_list(self) -> list[TDocument]:
        """Every result across all pages."""
        results: list[TDocument] = []
        feed = self.feed()
        while feed.has_more_results:
            results.extend(await feed.read_next())
        return results


class StorageProvider(ABC):
    """
    CRUD and query façade over the document store for every identity type.

    Writes never raise for store-level failures: they return an
    IdentityResult carrying the status code and message. find_by_id turns
    any store error into None.
    """

    def __init__(self, page_size: int = 100):
        self.page_size = page_size

    @abstractmethod
    def container_for(self, model_cls: type[IdentityDocument]) -> DocumentContainer:
        """Container holding documents of model_cls."""

    # ==================== Serialization ====================

    def to_document(self, entity: IdentityDocument) -> dict[str, Any]:
        document = entity.to_document()
        document[TIMESTAMP_KEY] = int(time.time())
        return document

    def from_document(self, model_cls: type[TDocument], document: dict[str, Any]) -> TDocument:
        document = dict(document)
        document.pop(self.container_for(model_cls).partition_key_field, None)
        return model_cls.model_validate(document)

    # ==================== Writes ====================

    async def _write(self, entity: IdentityDocument, verb: str, call) -> IdentityResult:
        try:
            response: ItemResponse = await call()
        except StoreError as e:
            logger.debug(f"{type(entity).__name__} {entity.id} was not {verb}: {e.message}")
            return _failure(e.status_code, e.message)

        if response.status_code >= 400:
            return _failure(
                response.status_code,
                f"The storage type {type(entity).__name__} was not {verb}.",
            )
        return IdentityResult.success()

    @staticmethod
    def _stamp(entity: IdentityDocument, document: dict[str, Any]) -> None:
        entity.timestamp = datetime.fromtimestamp(document[TIMESTAMP_KEY], tz=timezone.utc)

    async def create(
        self, entity: Optional[IdentityDocument], cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """Create entity in the store."""
        throw_if_cancelled(cancel)
        if entity is None:
            return _failure(400, "Argument entity cannot be null.")

        container = self.container_for(type(entity))
        document = self.to_document(entity)
        result = await self._write(
            entity,
            "created",
            lambda: container.create_item(document, resolve_partition_key(entity)),
        )
        if result.succeeded:
            self._stamp(entity, document)
        return result

    async def update(
        self,
        entity: Optional[IdentityDocument],
        if_match: Optional[dict[str, Any]] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> IdentityResult:
        """
        Replace entity in the store.

        Args:
            entity: Entity to write
            if_match: Model field values the stored document must still have
                (optimistic concurrency); a mismatch fails with status 412
            cancel: Cancellation signal checked at entry
        """
        throw_if_cancelled(cancel)
        if entity is None:
            return _failure(400, "Argument entity cannot be null.")

        model_cls = type(entity)
        container = self.container_for(model_cls)
        document = self.to_document(entity)
        conditions = None
        if if_match:
            conditions = {model_cls.document_key(k): v for k, v in if_match.items()}
        result = await self._write(
            entity,
            "updated",
            lambda: container.replace_item(
                document, entity.id, resolve_partition_key(entity), if_match=conditions
            ),
        )
        if result.succeeded:
            self._stamp(entity, document)
        return result

    async def delete(
        self, entity: Optional[IdentityDocument], cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """Delete entity from the store."""
        throw_if_cancelled(cancel)
        if entity is None:
            return _failure(400, "Argument entity cannot be null.")

        container = self.container_for(type(entity))
        return await self._write(
            entity,
            "deleted",
            lambda: container.delete_item(entity.id, resolve_partition_key(entity)),
        )

    # ==================== Reads ====================

    async def find_by_id(
        self,
        model_cls: type[TDocument],
        item_id: Optional[str],
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[TDocument]:
        """
        Point read by id within the type's partition.

        Returns:
            The entity, or None when it does not exist or the read failed
        """
        throw_if_cancelled(cancel)
        if not item_id:
            return None

        container = self.container_for(model_cls)
        try:
            response = await container.read_item(item_id, resolve_partition_key(model_cls))
        except StoreError as e:
            if e.status_code != 404:
                logger.warning(
                    f"find_by_id degraded to None: type={model_cls.__name__}, "
                    f"id={item_id}, status={e.status_code}, error={e.message}"
                )
            return None
        return self.from_document(model_cls, response.resource)

    def queryable(self, model_cls: type[TDocument]) -> Query[TDocument]:
        """Predicate query handle scoped to model_cls's partition."""
        return Query(self, model_cls)
