"""
Exception hierarchy for the identity store.

Backing-store failures on writes never escape the storage provider; they are
turned into an IdentityResult. The exceptions here cover the remaining tiers:
raw store errors inside the provider, caller contract violations that are not
plain ValueError/TypeError, and lifecycle errors.
"""
from http import HTTPStatus
from typing import Optional


class IdentityStoreError(Exception):
    """Base class for all identity store errors."""


class ConfigurationError(IdentityStoreError):
    """Invalid wiring or settings."""


class StoreError(IdentityStoreError):
    """
    Error raised by the document container.

    Attributes:
        status_code: HTTP-like status code describing the failure
        message: Human readable description
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def status_name(self) -> str:
        try:
            return HTTPStatus(self.status_code).phrase.replace(" ", "")
        except ValueError:
            return str(self.status_code)

    def __repr__(self) -> str:
        return f"StoreError(status_code={self.status_code}, message={self.message!r})"


class OperationCancelledError(IdentityStoreError):
    """The cancellation signal was set before the operation started."""


class StoreDisposedError(IdentityStoreError):
    """The store has been closed."""

    def __init__(self, name: Optional[str] = None):
        super().__init__(f"Cannot access a closed store{f': {name}' if name else ''}.")


class RoleNotFoundError(IdentityStoreError, LookupError):
    """A role referenced by normalized name does not exist."""

    def __init__(self, normalized_role_name: str):
        super().__init__(f"{normalized_role_name} does not exist.")
        self.normalized_role_name = normalized_role_name
