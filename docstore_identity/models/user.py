"""
User model for the identity database.
"""
from datetime import datetime
from typing import ClassVar, Optional

from pydantic import Field

from docstore_identity.database.databases.identity_db import Collections
from docstore_identity.models.base import IdentityDocument, new_id


class User(IdentityDocument):
    """
    User document.

    flatten_role_names, flatten_role_ids and flatten_claims are inline
    copies of the user's UserRole and UserClaim documents, kept so that
    role and claim membership queries need no join.
    """

    partition_key: ClassVar[Optional[str]] = "User"
    collection: ClassVar[str] = Collections.USERS

    user_name: Optional[str] = None
    normalized_user_name: Optional[str] = None
    email: Optional[str] = None
    normalized_email: Optional[str] = None
    email_confirmed: bool = False
    password_hash: Optional[str] = None
    security_stamp: Optional[str] = None
    concurrency_stamp: Optional[str] = Field(default_factory=new_id)
    phone_number: Optional[str] = None
    phone_number_confirmed: bool = False
    two_factor_enabled: bool = False
    lockout_end: Optional[datetime] = None
    lockout_enabled: bool = False
    access_failed_count: int = 0

    flatten_role_names: str = Field(default="", description="Comma-joined role names")
    flatten_role_ids: str = Field(default="", description="Comma-joined role ids")
    flatten_claims: str = Field(default="", description="Comma-joined type|value pairs")

    def __str__(self) -> str:
        return self.user_name or self.id
