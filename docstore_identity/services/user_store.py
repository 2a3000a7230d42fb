"""
User store: the persistence backend the identity framework calls for users,
their roles, claims, external logins and tokens.

Multi-document operations (role assignment plus the user's flattened
fields, cascading deletes) are sequences of independent writes. Nothing is
rolled back when a later step fails; cleanup is at-least-once.
"""
import asyncio
import logging
from typing import Callable, Iterable, Optional

from docstore_identity.core.exceptions import RoleNotFoundError
from docstore_identity.core.flatten import (
    append_token,
    claim_token,
    contains_token,
    join_tokens,
    remove_token,
    replace_token,
    split_tokens,
    check_claim,
    check_token,
)
from docstore_identity.core.normalizer import normalize_key
from docstore_identity.models.base import new_id
from docstore_identity.models.claims import Claim
from docstore_identity.models.login import UserLoginInfo
from docstore_identity.models.result import IdentityResult
from docstore_identity.models.user import User
from docstore_identity.models.user_token import UserToken
from docstore_identity.repositories import IdentityRepositories
from docstore_identity.services.base import StoreBase
from docstore_identity.storage.provider import Query

logger = logging.getLogger(__name__)

UserMutation = Callable[[User], None]


class UserStore(StoreBase):
    """
    Persistence store for users and their role, claim, login and token
    documents.

    With auto_save_user enabled, every change the store makes to a user's
    flattened fields is persisted immediately with optimistic concurrency:
    on a concurrency-stamp conflict the user is re-read, the same edit is
    applied to the fresh copy and the update retried. With it disabled the
    caller must persist the user after add_to_role, remove_from_role,
    add_claims, replace_claim and remove_claims.
    """

    def __init__(
        self,
        repositories: IdentityRepositories,
        auto_save_user: bool = True,
        concurrency_retries: int = 3,
    ):
        super().__init__()
        if repositories is None:
            raise TypeError("repositories cannot be None.")
        self.repositories = repositories
        self.auto_save_user = auto_save_user
        self.concurrency_retries = max(1, concurrency_retries)

    @property
    def users(self) -> Query[User]:
        """Query handle over the user partition."""
        self._check()
        return self.repositories.users.queryable

    # ==================== Users ====================

    async def create(self, user: User, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        """Create user in the store."""
        self._check(cancel)
        self._require(user, "user")
        return await self.repositories.users.add(user, cancel)

    async def update(self, user: User, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        """
        Replace user in the store.

        A new concurrency stamp is written; the replace only succeeds if the
        stored stamp still equals the one the caller read (status 412
        otherwise, and the caller's stamp is left unchanged).
        """
        self._check(cancel)
        self._require(user, "user")

        previous_stamp = user.concurrency_stamp
        user.concurrency_stamp = new_id()
        if_match = {"concurrency_stamp": previous_stamp} if previous_stamp else None

        result = await self.repositories.users.update(user, cancel, if_match=if_match)
        if not result.succeeded:
            user.concurrency_stamp = previous_stamp
        return result

    async def delete(self, user: User, cancel: Optional[asyncio.Event] = None) -> IdentityResult:
        """
        Delete user, then every role link, claim, login and token it owns.

        The store has no foreign keys, so the dependent documents are
        enumerated by user id and deleted one by one. Each cascade step runs
        even if an earlier one failed; failures are logged and the user
        deletion is not rolled back.
        """
        self._check(cancel)
        self._require(user, "user")

        result = await self.repositories.users.remove(user, cancel)
        if result.succeeded:
            await self._cascade_delete(user.id)
        return result

    async def _cascade_delete(self, user_id: str) -> list[IdentityResult]:
        repos = self.repositories
        dependents = [
            ("role link", repos.user_roles, await repos.user_roles.find_by_user(user_id)),
            ("claim", repos.user_claims, await repos.user_claims.find_by_user(user_id)),
            ("login", repos.user_logins, await repos.user_logins.find_by_user(user_id)),
            ("token", repos.user_tokens, await repos.user_tokens.get_tokens(user_id)),
        ]

        failures = []
        for kind, repository, documents in dependents:
            for document in documents:
                removed = await repository.remove(document)
                if not removed.succeeded:
                    logger.warning(
                        f"Cascade delete left orphaned {kind} {document.id} "
                        f"for user {user_id}: {removed}"
                    )
                    failures.append(removed)
        return failures

    async def find_by_id(
        self, user_id: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[User]:
        self._check(cancel)
        return await self.repositories.users.find_by_id(user_id, cancel)

    async def find_by_name(
        self, normalized_user_name: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[User]:
        self._check(cancel)
        return await self.repositories.users.find_by_name(normalized_user_name, cancel)

    async def find_by_email(
        self, normalized_email: Optional[str], cancel: Optional[asyncio.Event] = None
    ) -> Optional[User]:
        self._check(cancel)
        return await self.repositories.users.find_by_email(normalized_email, cancel)

    # ==================== Flattened field persistence ====================

    async def _apply_to_user(
        self, user: User, mutation: UserMutation, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """
        Apply a flattened-field edit to user and, with auto_save_user, persist
        it with a read-modify-write retry on concurrency conflicts.
        """
        mutation(user)
        if not self.auto_save_user:
            return IdentityResult.success()

        result = IdentityResult.success()
        for attempt in range(1, self.concurrency_retries + 1):
            result = await self.update(user, cancel)
            if result.succeeded or result.status_code != 412:
                return result

            logger.warning(
                f"Concurrency conflict saving user {user.id} "
                f"(attempt {attempt}/{self.concurrency_retries})"
            )
            fresh = await self.repositories.users.find_by_id(user.id)
            if fresh is None:
                return result
            mutation(fresh)
            for field_name in type(user).model_fields:
                if field_name in type(fresh).model_fields:
                    setattr(user, field_name, getattr(fresh, field_name))
        return result

    # ==================== Roles ====================

    async def add_to_role(
        self, user: User, normalized_role_name: str, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """
        Add user to the role named normalized_role_name.

        Raises:
            RoleNotFoundError: If the role does not exist
        """
        self._check(cancel)
        self._require(user, "user")
        self._require_text(normalized_role_name, "normalized_role_name")

        role = await self.repositories.roles.find_by_name(normalized_role_name, cancel)
        if role is None:
            raise RoleNotFoundError(normalized_role_name)
        check_token(role.name or "")

        if await self.repositories.user_roles.find(user.id, role.id, cancel) is None:
            user_role = self.repositories.user_roles.model_cls(user_id=user.id, role_id=role.id)
            result = await self.repositories.user_roles.add(user_role, cancel)
            if not result.succeeded:
                return result
        elif contains_token(user.flatten_role_ids, role.id):
            return IdentityResult.success()

        def add_role(target: User) -> None:
            if not contains_token(target.flatten_role_ids, role.id):
                target.flatten_role_names = append_token(target.flatten_role_names, role.name)
                target.flatten_role_ids = append_token(target.flatten_role_ids, role.id)

        return await self._apply_to_user(user, add_role, cancel)

    async def remove_from_role(
        self, user: User, normalized_role_name: str, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """Remove user from the role named normalized_role_name, if a member."""
        self._check(cancel)
        self._require(user, "user")
        self._require_text(normalized_role_name, "normalized_role_name")

        role = await self.repositories.roles.find_by_name(normalized_role_name, cancel)
        if role is None:
            return IdentityResult.success()

        user_roles = await self.repositories.user_roles.find_all(user.id, role.id, cancel)
        if not user_roles:
            return IdentityResult.success()

        for user_role in user_roles:
            result = await self.repositories.user_roles.remove(user_role, cancel)
            if not result.succeeded:
                return result

        def remove_role(target: User) -> None:
            target.flatten_role_names = remove_token(target.flatten_role_names, role.name or "")
            target.flatten_role_ids = remove_token(target.flatten_role_ids, role.id)

        return await self._apply_to_user(user, remove_role, cancel)

    async def get_roles(self, user: User, cancel: Optional[asyncio.Event] = None) -> list[str]:
        """Names of the roles user belongs to, read from its flattened field."""
        self._check(cancel)
        self._require(user, "user")
        return split_tokens(user.flatten_role_names)

    async def is_in_role(
        self, user: User, normalized_role_name: str, cancel: Optional[asyncio.Event] = None
    ) -> bool:
        self._check(cancel)
        self._require(user, "user")
        self._require_text(normalized_role_name, "normalized_role_name")

        role = await self.repositories.roles.find_by_name(normalized_role_name, cancel)
        if role is None:
            return False
        return await self.repositories.user_roles.find(user.id, role.id, cancel) is not None

    async def get_users_in_role(
        self, normalized_role_name: str, cancel: Optional[asyncio.Event] = None
    ) -> list[User]:
        self._check(cancel)
        self._require_text(normalized_role_name, "normalized_role_name")

        role = await self.repositories.roles.find_by_name(normalized_role_name, cancel)
        if role is None:
            return []
        return await self.repositories.user_roles.get_users(role.id, cancel)

    # ==================== Claims ====================

    async def get_claims(self, user: User, cancel: Optional[asyncio.Event] = None) -> list[Claim]:
        self._check(cancel)
        self._require(user, "user")
        return await self.repositories.user_claims.get_claims(user.id, cancel)

    async def add_claims(
        self, user: User, claims: Iterable[Claim], cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """
        Create a claim document per claim and record each on the user.

        Returns:
            The first failed claim write, or the result of saving the user
        """
        self._check(cancel)
        self._require(user, "user")
        self._require(claims, "claims")
        claims = list(claims)
        for claim in claims:
            self._require(claim, "claim")
            check_claim(claim.type, claim.value)

        added: list[str] = []
        failure: Optional[IdentityResult] = None
        for claim in claims:
            user_claim = self.repositories.user_claims.model_cls(user_id=user.id)
            user_claim.init_from_claim(claim)
            result = await self.repositories.user_claims.add(user_claim, cancel)
            if result.succeeded:
                added.append(claim_token(claim.type, claim.value))
            elif failure is None:
                failure = result

        if added:
            def add_tokens(target: User) -> None:
                for token in added:
                    target.flatten_claims = append_token(target.flatten_claims, token)

            saved = await self._apply_to_user(user, add_tokens, cancel)
            if failure is None:
                return saved
        return failure or IdentityResult.success()

    async def replace_claim(
        self,
        user: User,
        claim: Claim,
        new_claim: Claim,
        cancel: Optional[asyncio.Event] = None,
    ) -> IdentityResult:
        """Replace every claim document of user matching claim with new_claim."""
        self._check(cancel)
        self._require(user, "user")
        self._require(claim, "claim")
        self._require(new_claim, "new_claim")

        old_token = claim_token(claim.type, claim.value)
        new_token = check_claim(new_claim.type, new_claim.value)

        replaced = 0
        failure: Optional[IdentityResult] = None
        for user_claim in await self.repositories.user_claims.find(user.id, claim, cancel):
            user_claim.init_from_claim(new_claim)
            result = await self.repositories.user_claims.update(user_claim, cancel)
            if result.succeeded:
                replaced += 1
            elif failure is None:
                failure = result

        if replaced:
            def swap_token(target: User) -> None:
                for _ in range(replaced):
                    if contains_token(target.flatten_claims, old_token):
                        target.flatten_claims = replace_token(
                            target.flatten_claims, old_token, new_token, count=1
                        )
                    else:
                        target.flatten_claims = append_token(target.flatten_claims, new_token)

            saved = await self._apply_to_user(user, swap_token, cancel)
            if failure is None:
                return saved
        return failure or IdentityResult.success()

    async def remove_claims(
        self, user: User, claims: Iterable[Claim], cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """Delete every claim document of user matching one of claims."""
        self._check(cancel)
        self._require(user, "user")
        self._require(claims, "claims")

        removed: list[str] = []
        failure: Optional[IdentityResult] = None
        for claim in list(claims):
            self._require(claim, "claim")
            for user_claim in await self.repositories.user_claims.find(user.id, claim, cancel):
                result = await self.repositories.user_claims.remove(user_claim, cancel)
                if result.succeeded:
                    removed.append(claim_token(claim.type, claim.value))
                elif failure is None:
                    failure = result

        if removed:
            def strip_tokens(target: User) -> None:
                for token in removed:
                    target.flatten_claims = remove_token(target.flatten_claims, token, count=1)

            saved = await self._apply_to_user(user, strip_tokens, cancel)
            if failure is None:
                return saved
        return failure or IdentityResult.success()

    async def get_users_for_claim(
        self, claim: Claim, cancel: Optional[asyncio.Event] = None
    ) -> list[User]:
        self._check(cancel)
        self._require(claim, "claim")
        return await self.repositories.user_claims.get_users(claim, cancel)

    # ==================== Logins ====================

    async def add_login(
        self, user: User, login: UserLoginInfo, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        self._check(cancel)
        self._require(user, "user")
        self._require(login, "login")

        user_login = self.repositories.user_logins.model_cls(
            user_id=user.id,
            login_provider=login.login_provider,
            provider_key=login.provider_key,
            provider_display_name=login.provider_display_name,
        )
        return await self.repositories.user_logins.add(user_login, cancel)

    async def remove_login(
        self,
        user: User,
        login_provider: str,
        provider_key: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> IdentityResult:
        self._check(cancel)
        self._require(user, "user")
        self._require_text(login_provider, "login_provider")
        self._require_text(provider_key, "provider_key")

        user_login = await self.repositories.user_logins.find_for_user(
            user.id, login_provider, provider_key, cancel
        )
        if user_login is None:
            return IdentityResult.success()
        return await self.repositories.user_logins.remove(user_login, cancel)

    async def get_logins(
        self, user: User, cancel: Optional[asyncio.Event] = None
    ) -> list[UserLoginInfo]:
        self._check(cancel)
        self._require(user, "user")
        return await self.repositories.user_logins.get_logins(user.id, cancel)

    async def find_by_login(
        self, login_provider: str, provider_key: str, cancel: Optional[asyncio.Event] = None
    ) -> Optional[User]:
        """User owning the external login, or None."""
        self._check(cancel)
        self._require_text(login_provider, "login_provider")
        self._require_text(provider_key, "provider_key")

        user_login = await self.repositories.user_logins.find(login_provider, provider_key, cancel)
        if user_login is None:
            return None
        return await self.repositories.users.find_by_id(user_login.user_id, cancel)

    # ==================== Tokens ====================

    async def _find_token(
        self, user: User, login_provider: str, name: str, cancel: Optional[asyncio.Event]
    ) -> Optional[UserToken]:
        self._check(cancel)
        self._require(user, "user")
        self._require_text(login_provider, "login_provider")
        self._require_text(name, "name")
        return await self.repositories.user_tokens.find(user.id, login_provider, name, cancel)

    async def get_token(
        self, user: User, login_provider: str, name: str, cancel: Optional[asyncio.Event] = None
    ) -> Optional[str]:
        token = await self._find_token(user, login_provider, name, cancel)
        return token.value if token is not None else None

    async def set_token(
        self,
        user: User,
        login_provider: str,
        name: str,
        value: Optional[str],
        cancel: Optional[asyncio.Event] = None,
    ) -> IdentityResult:
        """Create the token, or overwrite its value if it exists."""
        token = await self._find_token(user, login_provider, name, cancel)
        if token is None:
            token = self.repositories.user_tokens.model_cls(
                user_id=user.id, login_provider=login_provider, name=name, value=value
            )
            return await self.repositories.user_tokens.add(token, cancel)

        token.value = value
        return await self.repositories.user_tokens.update(token, cancel)

    async def remove_token(
        self, user: User, login_provider: str, name: str, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        token = await self._find_token(user, login_provider, name, cancel)
        if token is None:
            return IdentityResult.success()
        return await self.repositories.user_tokens.remove(token, cancel)

    # ==================== Repair ====================

    async def rederive_flattened_fields(
        self, user: User, cancel: Optional[asyncio.Event] = None
    ) -> IdentityResult:
        """
        Rebuild the user's flattened role and claim fields from its UserRole
        and UserClaim documents. Idempotent; persists with auto_save_user.
        """
        self._check(cancel)
        self._require(user, "user")

        repos = self.repositories
        role_names: list[str] = []
        role_ids: list[str] = []
        for user_role in await repos.user_roles.find_by_user(user.id, cancel):
            role = await repos.roles.find_by_id(user_role.role_id, cancel)
            if role is None or role.id in role_ids:
                continue
            role_names.append(role.name or "")
            role_ids.append(role.id)

        claim_tokens = [
            claim_token(claim.type, claim.value)
            for claim in await repos.user_claims.get_claims(user.id, cancel)
        ]

        def rebuild(target: User) -> None:
            target.flatten_role_names = join_tokens(role_names)
            target.flatten_role_ids = join_tokens(role_ids)
            target.flatten_claims = join_tokens(claim_tokens)

        return await self._apply_to_user(user, rebuild, cancel)

    @staticmethod
    def normalize(key: Optional[str]) -> Optional[str]:
        """Normalize a user name, email or role name for lookups."""
        return normalize_key(key)
