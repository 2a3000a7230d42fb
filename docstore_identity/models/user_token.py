"""
User authentication token model.
"""
from typing import ClassVar, Optional

from docstore_identity.database.databases.identity_db import Collections
from docstore_identity.models.base import IdentityDocument


class UserToken(IdentityDocument):
    """Token identified by (user_id, login_provider, name)."""

    partition_key: ClassVar[Optional[str]] = "UserToken"
    collection: ClassVar[str] = Collections.USER_TOKENS

    user_id: Optional[str] = None
    login_provider: Optional[str] = None
    name: Optional[str] = None
    value: Optional[str] = None
