"""
Role model for the identity database.
"""
from typing import ClassVar, Optional

from pydantic import Field

from docstore_identity.database.databases.identity_db import Collections
from docstore_identity.models.base import IdentityDocument, new_id


class Role(IdentityDocument):
    """Role document."""

    partition_key: ClassVar[Optional[str]] = "Role"
    collection: ClassVar[str] = Collections.ROLES

    name: Optional[str] = None
    normalized_name: Optional[str] = None
    concurrency_stamp: Optional[str] = Field(default_factory=new_id)

    def __str__(self) -> str:
        return self.name or self.id
