"""
User-role link model.
"""
from typing import ClassVar, Optional

from docstore_identity.database.databases.identity_db import Collections
from docstore_identity.models.base import IdentityDocument


class UserRole(IdentityDocument):
    """Link entity between a user and a role."""

    partition_key: ClassVar[Optional[str]] = "UserRole"
    collection: ClassVar[str] = Collections.USER_ROLES

    user_id: Optional[str] = None
    role_id: Optional[str] = None
