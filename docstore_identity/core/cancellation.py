"""
Cooperative cancellation.

Operations accept an optional asyncio.Event as cancellation signal. It is
checked once at entry; a store call already in flight is not interrupted.
"""
import asyncio
from typing import Optional

from docstore_identity.core.exceptions import OperationCancelledError


def throw_if_cancelled(cancel: Optional[asyncio.Event]) -> None:
    """Raise OperationCancelledError if the signal is set."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("The operation was cancelled.")
