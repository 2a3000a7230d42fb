"""
Identity store façades consumed by the authentication framework.
"""
from docstore_identity.services.user_store import UserStore
from docstore_identity.services.role_store import RoleStore
from docstore_identity.services.factory import create_identity_stores

__all__ = ["UserStore", "RoleStore", "create_identity_stores"]
