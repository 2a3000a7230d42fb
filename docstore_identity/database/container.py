"""
Document container: the store handle used by the storage providers.

Wraps one MongoDB collection and exposes point operations keyed by
(id, partition key) plus paged predicate queries scoped to a partition key.
Every driver error is translated into a StoreError carrying an HTTP-like
status code, so callers above this layer see one failure shape.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    ExecutionTimeout,
    NetworkTimeout,
    OperationFailure,
    PyMongoError,
    ServerSelectionTimeoutError,
    WTimeoutError,
)

from docstore_identity.core.exceptions import StoreError

logger = logging.getLogger(__name__)

# Throttling error code returned by request-unit limited MongoDB-compatible stores
THROTTLED_ERROR_CODE = 16500


class PartitionKey:
    """
    Partition key value for a document.

    PartitionKey.NONE is the "no partition" sentinel used for entity types
    without a discriminator; it matches documents whose partition field is
    null or absent.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Optional[str]):
        self._value = value or None

    @property
    def value(self) -> Optional[str]:
        return self._value

    @property
    def is_none(self) -> bool:
        return self._value is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PartitionKey):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return "PartitionKey.NONE" if self.is_none else f"PartitionKey({self._value!r})"


PartitionKey.NONE = PartitionKey(None)


@dataclass
class ItemResponse:
    """Response of a point operation."""
    status_code: int
    resource: Optional[dict[str, Any]] = None


def translate_error(exc: PyMongoError) -> StoreError:
    """Map a driver exception onto a StoreError status code."""
    if isinstance(exc, DuplicateKeyError):
        return StoreError(409, f"Conflict: {exc}")
    if isinstance(exc, (ExecutionTimeout, NetworkTimeout, WTimeoutError)):
        return StoreError(408, f"Request timeout: {exc}")
    if isinstance(exc, ServerSelectionTimeoutError) or isinstance(exc, ConnectionFailure):
        return StoreError(503, f"Service unavailable: {exc}")
    if isinstance(exc, OperationFailure) and exc.code == THROTTLED_ERROR_CODE:
        return StoreError(429, f"Too many requests: {exc}")
    return StoreError(500, f"Store error: {exc}")


class FeedIterator:
    """
    Paged query results.

    Usage:
        feed = container.query_items({"user_id": "42"}, partition_key)
        while feed.has_more_results:
            for doc in await feed.read_next():
                ...
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        filter_dict: dict[str, Any],
        page_size: int,
    ):
        self._collection = collection
        self._filter = filter_dict
        self._page_size = page_size
        self._offset = 0
        self._has_more = True

    @property
    def has_more_results(self) -> bool:
        return self._has_more

    async def read_next(self) -> list[dict[str, Any]]:
        """
        Fetch the next page.

        Raises:
            StoreError: If the underlying query fails
        """
        if not self._has_more:
            return []

        try:
            cursor = self._collection.find(
                self._filter,
                sort=[("_id", 1)],
                skip=self._offset,
                limit=self._page_size,
            )
            page = await cursor.to_list(length=self._page_size)
        except PyMongoError as e:
            self._has_more = False
            raise translate_error(e) from e

        self._offset += len(page)
        if len(page) < self._page_size:
            self._has_more = False
        return page

    async def read_all(self) -> list[dict[str, Any]]:
        """Drain every remaining page."""
        documents: list[dict[str, Any]] = []
        while self.has_more_results:
            documents.extend(await self.read_next())
        return documents


class DocumentContainer:
    """
    A partitioned document container backed by a MongoDB collection.

    The partition key is stored in the top-level field named by
    partition_key_field and is part of every point-operation filter, so a
    lookup with the wrong partition key misses instead of failing.
    """

    def __init__(self, collection: AsyncIOMotorCollection, partition_key_field: str):
        self._collection = collection
        self.partition_key_field = partition_key_field

    @property
    def id(self) -> str:
        return self._collection.name

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._collection

    def _key_filter(self, item_id: str, partition_key: PartitionKey) -> dict[str, Any]:
        return {"_id": item_id, self.partition_key_field: partition_key.value}

    def scope(self, filter_dict: dict[str, Any], partition_key: PartitionKey) -> dict[str, Any]:
        """Restrict a filter to one partition."""
        return {**filter_dict, self.partition_key_field: partition_key.value}

    async def create_item(
        self, document: dict[str, Any], partition_key: PartitionKey
    ) -> ItemResponse:
        document = {**document, self.partition_key_field: partition_key.value}
        logger.debug(f"create_item: container={self.id}, id={document.get('_id')}")
        try:
            await self._collection.insert_one(document)
        except PyMongoError as e:
            raise translate_error(e) from e
        return ItemResponse(status_code=201, resource=document)

    async def read_item(self, item_id: str, partition_key: PartitionKey) -> ItemResponse:
        logger.debug(f"read_item: container={self.id}, id={item_id}")
        try:
            document = await self._collection.find_one(self._key_filter(item_id, partition_key))
        except PyMongoError as e:
            raise translate_error(e) from e
        if document is None:
            raise StoreError(404, f"Item {item_id} not found in {partition_key!r}.")
        return ItemResponse(status_code=200, resource=document)

    async def replace_item(
        self,
        document: dict[str, Any],
        item_id: str,
        partition_key: PartitionKey,
        if_match: Optional[dict[str, Any]] = None,
    ) -> ItemResponse:
        """
        Replace a whole document.

        Args:
            document: New document body
            item_id: Id of the document to replace
            partition_key: Partition of the document
            if_match: Field values the stored document must still have

        Raises:
            StoreError: 404 if the item does not exist, 412 if it exists but
                no longer matches if_match
        """
        document = {**document, "_id": item_id, self.partition_key_field: partition_key.value}
        filter_dict = self._key_filter(item_id, partition_key)
        if if_match:
            filter_dict.update(if_match)

        logger.debug(f"replace_item: container={self.id}, id={item_id}")
        try:
            result = await self._collection.replace_one(filter_dict, document)
            if result.matched_count == 0:
                current = await self._collection.find_one(
                    self._key_filter(item_id, partition_key), {"_id": 1}
                )
                if current is not None:
                    raise StoreError(412, f"Item {item_id} was modified concurrently.")
                raise StoreError(404, f"Item {item_id} not found in {partition_key!r}.")
        except PyMongoError as e:
            raise translate_error(e) from e
        return ItemResponse(status_code=200, resource=document)

    async def delete_item(self, item_id: str, partition_key: PartitionKey) -> ItemResponse:
        logger.debug(f"delete_item: container={self.id}, id={item_id}")
        try:
            result = await self._collection.delete_one(self._key_filter(item_id, partition_key))
        except PyMongoError as e:
            raise translate_error(e) from e
        if result.deleted_count == 0:
            raise StoreError(404, f"Item {item_id} not found in {partition_key!r}.")
        return ItemResponse(status_code=204)

    def query_items(
        self,
        filter_dict: dict[str, Any],
        partition_key: PartitionKey,
        page_size: int = 100,
    ) -> FeedIterator:
        return FeedIterator(self._collection, self.scope(filter_dict, partition_key), page_size)
