"""
Claim value type and the user/role claim documents.
"""
from typing import ClassVar, Optional

from pydantic import BaseModel

from docstore_identity.database.databases.identity_db import Collections
from docstore_identity.models.base import IdentityDocument


class Claim(BaseModel):
    """A (type, value) claim as exchanged with the identity framework."""
    type: str
    value: str

    class Config:
        frozen = True


class UserClaim(IdentityDocument):
    """Claim owned by a user."""

    partition_key: ClassVar[Optional[str]] = "UserClaim"
    collection: ClassVar[str] = Collections.USER_CLAIMS

    user_id: Optional[str] = None
    claim_type: Optional[str] = None
    claim_value: Optional[str] = None

    def to_claim(self) -> Claim:
        return Claim(type=self.claim_type or "", value=self.claim_value or "")

    def init_from_claim(self, claim: Claim) -> None:
        self.claim_type = claim.type
        self.claim_value = claim.value


class RoleClaim(IdentityDocument):
    """Claim granted to every member of a role."""

    partition_key: ClassVar[Optional[str]] = "RoleClaim"
    collection: ClassVar[str] = Collections.ROLE_CLAIMS

    role_id: Optional[str] = None
    claim_type: Optional[str] = None
    claim_value: Optional[str] = None

    def to_claim(self) -> Claim:
        return Claim(type=self.claim_type or "", value=self.claim_value or "")

    def init_from_claim(self, claim: Claim) -> None:
        self.claim_type = claim.type
        self.claim_value = claim.value
