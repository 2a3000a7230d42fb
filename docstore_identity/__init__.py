"""
docstore-identity: user and role stores for an identity framework, backed by
a partitioned document store.
"""
from docstore_identity.config import Settings, get_settings
from docstore_identity.models import (
    Claim,
    IdentityError,
    IdentityResult,
    Role,
    RoleClaim,
    User,
    UserClaim,
    UserLogin,
    UserLoginInfo,
    UserRole,
    UserToken,
)
from docstore_identity.services import RoleStore, UserStore, create_identity_stores

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "Claim",
    "IdentityError",
    "IdentityResult",
    "Role",
    "RoleClaim",
    "User",
    "UserClaim",
    "UserLogin",
    "UserLoginInfo",
    "UserRole",
    "UserToken",
    "RoleStore",
    "UserStore",
    "create_identity_stores",
]
