"""
Single shared container strategy.

Every entity type lives in one container; documents are told apart by
their partition discriminator.
"""
from docstore_identity.database.container import DocumentContainer
from docstore_identity.models.base import IdentityDocument
from docstore_identity.storage.provider import StorageProvider


class SharedContainerStorageProvider(StorageProvider):
    """Storage provider over one container shared by all identity types."""

    def __init__(self, container: DocumentContainer, page_size: int = 100):
        super().__init__(page_size=page_size)
        self._container = container

    def container_for(self, model_cls: type[IdentityDocument]) -> DocumentContainer:
        return self._container
