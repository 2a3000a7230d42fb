"""
Lookup key normalization for user names, emails and role names.
"""
import unicodedata
from typing import Optional


def normalize_key(key: Optional[str]) -> Optional[str]:
    """
    Normalize a lookup key the way the identity framework does.

    Args:
        key: Raw name or email

    Returns:
        NFKC-normalized, upper-cased key, or None if key is None
    """
    if key is None:
        return None
    return unicodedata.normalize("NFKC", key).upper()
