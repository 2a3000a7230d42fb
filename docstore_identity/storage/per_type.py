"""
One container per entity type strategy.

Each model class declares the container it belongs to (its `collection`
class attribute). Partition keys are still written and applied, so the
documents stay interchangeable with the shared strategy.
"""
from docstore_identity.core.exceptions import ConfigurationError
from docstore_identity.database.container import DocumentContainer
from docstore_identity.models.base import IdentityDocument
from docstore_identity.storage.provider import StorageProvider


class PerTypeStorageProvider(StorageProvider):
    """Storage provider routing each identity type to its own container."""

    def __init__(self, containers: dict[str, DocumentContainer], page_size: int = 100):
        """
        Args:
            containers: Mapping of model `collection` name to container
            page_size: Query page size
        """
        super().__init__(page_size=page_size)
        self._containers = dict(containers)

    def container_for(self, model_cls: type[IdentityDocument]) -> DocumentContainer:
        try:
            return self._containers[model_cls.collection]
        except KeyError:
            raise ConfigurationError(
                f"No container registered for {model_cls.__name__} "
                f"(collection {model_cls.collection!r})"
            ) from None
