"""
Shared plumbing for the identity store façades.
"""
import asyncio
from typing import Any, Optional

from docstore_identity.core.cancellation import throw_if_cancelled
from docstore_identity.core.exceptions import StoreDisposedError


class StoreBase:
    """Lifecycle and argument checks common to UserStore and RoleStore."""

    def __init__(self):
        self._closed = False

    def close(self) -> None:
        """Close the store; further operations raise StoreDisposedError."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _check(self, cancel: Optional[asyncio.Event] = None) -> None:
        throw_if_cancelled(cancel)
        if self._closed:
            raise StoreDisposedError(type(self).__name__)

    @staticmethod
    def _require(value: Any, name: str) -> None:
        if value is None:
            raise TypeError(f"{name} cannot be None.")

    @staticmethod
    def _require_text(value: Optional[str], name: str) -> None:
        if not value:
            raise ValueError(f"{name} cannot be null or empty.")
