"""
Per-entity repositories built on the storage provider.
"""
from dataclasses import dataclass

from docstore_identity.models.claims import RoleClaim, UserClaim
from docstore_identity.models.login import UserLogin
from docstore_identity.models.role import Role
from docstore_identity.models.user import User
from docstore_identity.models.user_role import UserRole
from docstore_identity.models.user_token import UserToken
from docstore_identity.repositories.base import Repository
from docstore_identity.repositories.role_claims import RoleClaims
from docstore_identity.repositories.roles import Roles
from docstore_identity.repositories.user_claims import UserClaims
from docstore_identity.repositories.user_logins import UserLogins
from docstore_identity.repositories.user_roles import UserRoles
from docstore_identity.repositories.user_tokens import UserTokens
from docstore_identity.repositories.users import Users
from docstore_identity.storage.provider import StorageProvider


@dataclass
class IdentityRepositories:
    """The full set of repositories the identity stores depend on."""
    users: Users
    roles: Roles
    user_claims: UserClaims
    user_roles: UserRoles
    user_logins: UserLogins
    user_tokens: UserTokens
    role_claims: RoleClaims

    @classmethod
    def from_provider(
        cls,
        provider: StorageProvider,
        user_cls: type[User] = User,
        role_cls: type[Role] = Role,
        user_claim_cls: type[UserClaim] = UserClaim,
        user_role_cls: type[UserRole] = UserRole,
        user_login_cls: type[UserLogin] = UserLogin,
        user_token_cls: type[UserToken] = UserToken,
        role_claim_cls: type[RoleClaim] = RoleClaim,
    ) -> "IdentityRepositories":
        """Build every repository over one provider, with optional model subclasses."""
        return cls(
            users=Users(provider, user_cls),
            roles=Roles(provider, role_cls),
            user_claims=UserClaims(provider, user_claim_cls, user_cls),
            user_roles=UserRoles(provider, user_role_cls, user_cls),
            user_logins=UserLogins(provider, user_login_cls),
            user_tokens=UserTokens(provider, user_token_cls),
            role_claims=RoleClaims(provider, role_claim_cls),
        )


__all__ = [
    "IdentityRepositories",
    "Repository",
    "Users",
    "Roles",
    "UserClaims",
    "UserRoles",
    "UserLogins",
    "UserTokens",
    "RoleClaims",
]
