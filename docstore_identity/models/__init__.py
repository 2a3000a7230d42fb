"""
Pydantic models for identity documents and store results.
"""
from docstore_identity.models.base import IdentityDocument, new_id
from docstore_identity.models.user import User
from docstore_identity.models.role import Role
from docstore_identity.models.claims import Claim, UserClaim, RoleClaim
from docstore_identity.models.login import UserLogin, UserLoginInfo
from docstore_identity.models.user_role import UserRole
from docstore_identity.models.user_token import UserToken
from docstore_identity.models.result import IdentityError, IdentityResult

__all__ = [
    "IdentityDocument",
    "new_id",
    "User",
    "Role",
    "Claim",
    "UserClaim",
    "RoleClaim",
    "UserLogin",
    "UserLoginInfo",
    "UserRole",
    "UserToken",
    "IdentityError",
    "IdentityResult",
]
