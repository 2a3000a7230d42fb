"""
External login models.
"""
from typing import ClassVar, Optional

from pydantic import BaseModel

from docstore_identity.database.databases.identity_db import Collections
from docstore_identity.models.base import IdentityDocument


class UserLoginInfo(BaseModel):
    """External login as exchanged with the identity framework."""
    login_provider: str
    provider_key: str
    provider_display_name: Optional[str] = None


class UserLogin(IdentityDocument):
    """
    Link between a user and an external login.

    Identified by (login_provider, provider_key); the document id is a
    synthetic GUID.
    """

    partition_key: ClassVar[Optional[str]] = "UserLogin"
    collection: ClassVar[str] = Collections.USER_LOGINS

    login_provider: Optional[str] = None
    provider_key: Optional[str] = None
    provider_display_name: Optional[str] = None
    user_id: Optional[str] = None

    def to_login_info(self) -> UserLoginInfo:
        return UserLoginInfo(
            login_provider=self.login_provider or "",
            provider_key=self.provider_key or "",
            provider_display_name=self.provider_display_name,
        )
