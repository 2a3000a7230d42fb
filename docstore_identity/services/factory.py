"""Identity store composition.

Wires settings, storage provider, repositories and the two façades.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from docstore_identity.config import Settings, get_settings
from docstore_identity.models.claims import RoleClaim, UserClaim
from docstore_identity.models.login import UserLogin
from docstore_identity.models.role import Role
from docstore_identity.models.user import User
from docstore_identity.models.user_role import UserRole
from docstore_identity.models.user_token import UserToken
from docstore_identity.repositories import IdentityRepositories
from docstore_identity.services.role_store import RoleStore
from docstore_identity.services.user_store import UserStore
from docstore_identity.storage.factory import create_storage_provider


async def create_identity_stores(
    settings: Optional[Settings] = None,
    client: Optional[AsyncIOMotorClient] = None,
    user_cls: type[User] = User,
    role_cls: type[Role] = Role,
    user_claim_cls: type[UserClaim] = UserClaim,
    user_role_cls: type[UserRole] = UserRole,
    user_login_cls: type[UserLogin] = UserLogin,
    user_token_cls: type[UserToken] = UserToken,
    role_claim_cls: type[RoleClaim] = RoleClaim,
) -> tuple[UserStore, RoleStore]:
    """Create a UserStore and RoleStore sharing one provisioned storage provider.

    Args:
        settings: Identity store settings (default: get_settings())
        client: Document store client (default: shared cached client)
        *_cls: Model classes to store, for applications extending the
            identity models

    Returns:
        (UserStore, RoleStore)
    """
    settings = settings or get_settings()
    provider = await create_storage_provider(settings, client)
    repositories = IdentityRepositories.from_provider(
        provider,
        user_cls=user_cls,
        role_cls=role_cls,
        user_claim_cls=user_claim_cls,
        user_role_cls=user_role_cls,
        user_login_cls=user_login_cls,
        user_token_cls=user_token_cls,
        role_claim_cls=role_claim_cls,
    )
    user_store = UserStore(
        repositories,
        auto_save_user=settings.auto_save_user,
        concurrency_retries=settings.concurrency_retries,
    )
    return user_store, RoleStore(repositories)
