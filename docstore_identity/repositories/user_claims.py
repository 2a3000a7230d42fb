"""
User claims repository.
"""
import asyncio
from typing import Optional

from docstore_identity.core.flatten import claim_token
from docstore_identity.models.claims import Claim, UserClaim
from docstore_identity.models.user import User
from docstore_identity.repositories.base import Repository
from docstore_identity.storage.provider import StorageProvider


class UserClaims(Repository[UserClaim]):
    """UserClaim documents and the claim-to-users lookup."""

    def __init__(
        self,
        provider: StorageProvider,
        model_cls: type[UserClaim] = UserClaim,
        user_cls: type[User] = User,
    ):
        super().__init__(provider, model_cls)
        self.user_cls = user_cls

    async def find_by_user(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[UserClaim]:
        if not user_id:
            return []
        return await self._all(self.queryable.where(user_id=user_id), cancel)

    async def get_claims(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> list[Claim]:
        return [user_claim.to_claim() for user_claim in await self.find_by_user(user_id, cancel)]

    async def find(
        self, user_id: Optional[str], claim: Claim, cancel: Optional[asyncio.Event] = None
    ) -> list[UserClaim]:
        """Claim documents of user_id matching claim's type and value."""
        if not user_id:
            return []
        return await self._all(
            self.queryable.where(user_id=user_id, claim_type=claim.type, claim_value=claim.value),
            cancel,
        )

    async def get_users(self, claim: Claim, cancel: Optional[asyncio.Event] = None) -> list[User]:
        """
        Users holding claim.

        Scans the flattened claims of every user in the partition; this
        full scan is the price of not joining against claim documents.
        """
        query = self.provider.queryable(self.user_cls).where_contains_token(
            "flatten_claims", claim_token(claim.type, claim.value)
        )
        return await self._all(query, cancel)
