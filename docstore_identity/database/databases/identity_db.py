"""
Identity database configuration.
Stores users, roles and their link documents.
"""


class Collections:
    """
    Collection names used by the per-type storage strategy.

    The shared strategy keeps every entity type in the single container
    named by settings.container_id.
    """
    USERS = "users"
    ROLES = "roles"
    USER_CLAIMS = "user_claims"
    ROLE_CLAIMS = "role_claims"
    USER_LOGINS = "user_logins"
    USER_ROLES = "user_roles"
    USER_TOKENS = "user_tokens"
    METADATA = "_metadata"

    PER_TYPE = [
        USERS,
        ROLES,
        USER_CLAIMS,
        ROLE_CLAIMS,
        USER_LOGINS,
        USER_ROLES,
        USER_TOKENS,
    ]


# Secondary indexes per entity container. Uniqueness is deliberately not
# enforced: duplicate normalized names are a data-integrity assumption.
INDEXES = {
    Collections.USERS: [
        {"keys": [("normalized_user_name", 1)]},
        {"keys": [("normalized_email", 1)]},
    ],
    Collections.ROLES: [
        {"keys": [("normalized_name", 1)]},
    ],
    Collections.USER_CLAIMS: [
        {"keys": [("user_id", 1)]},
    ],
    Collections.ROLE_CLAIMS: [
        {"keys": [("role_id", 1)]},
    ],
    Collections.USER_LOGINS: [
        {"keys": [("login_provider", 1), ("provider_key", 1)]},
        {"keys": [("user_id", 1)]},
    ],
    Collections.USER_ROLES: [
        {"keys": [("user_id", 1), ("role_id", 1)]},
    ],
    Collections.USER_TOKENS: [
        {"keys": [("user_id", 1), ("login_provider", 1), ("name", 1)]},
    ],
}


def manifest(database_id: str, container_ids: list[str]) -> dict:
    """Registry manifest describing the provisioned identity database."""
    return {
        "db_name": database_id,
        "purpose": "User authentication and identity management",
        "collections": [*container_ids, Collections.METADATA],
        "access_level": "restricted",
    }
