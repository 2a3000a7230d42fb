"""
Flattened list helpers.

Users carry comma-separated inline copies of their role names, role ids and
claims ("type|value") so that "users in role" and "users for claim" can be
answered without a join. Lists use a trailing separator ("Admin,Editor,").

All edits work on whole tokens: removing "Admin" never touches "Admin2".
Tokens must not contain the separator.
"""
import re
from typing import Optional

SEPARATOR = ","
CLAIM_SEPARATOR = "|"


def split_tokens(flat: Optional[str]) -> list[str]:
    """Split a flattened list into its non-empty tokens."""
    if not flat:
        return []
    return [token for token in flat.split(SEPARATOR) if token]


def join_tokens(tokens: list[str]) -> str:
    """Join tokens back into the trailing-separator representation."""
    return "".join(token + SEPARATOR for token in tokens)


def check_token(token: str) -> None:
    if not token:
        raise ValueError("Flattened token cannot be empty.")
    if SEPARATOR in token:
        raise ValueError(f"Flattened token {token!r} cannot contain {SEPARATOR!r}.")


def append_token(flat: Optional[str], token: str) -> str:
    """Append token to the list."""
    check_token(token)
    return (flat or "") + token + SEPARATOR


def remove_token(flat: Optional[str], token: str, count: Optional[int] = None) -> str:
    """
    Remove exact occurrences of token from the list.

    Args:
        flat: Flattened list
        token: Token to remove
        count: Maximum number of occurrences to remove (default: all)
    """
    kept = []
    for t in split_tokens(flat):
        if t == token and (count is None or count > 0):
            if count is not None:
                count -= 1
            continue
        kept.append(t)
    return join_tokens(kept)


def replace_token(flat: Optional[str], old: str, new: str, count: Optional[int] = None) -> str:
    """Replace exact occurrences of old with new (at most count, default all)."""
    check_token(new)
    tokens = []
    for t in split_tokens(flat):
        if t == old and (count is None or count > 0):
            if count is not None:
                count -= 1
            t = new
        tokens.append(t)
    return join_tokens(tokens)


def contains_token(flat: Optional[str], token: str) -> bool:
    return token in split_tokens(flat)


def token_pattern(token: str) -> str:
    """
    Regular expression matching a flattened list that contains token.

    Anchored on the separator so that a prefix of a longer token does not
    match.
    """
    return f"(^|{re.escape(SEPARATOR)}){re.escape(token)}{re.escape(SEPARATOR)}"


def claim_token(claim_type: str, claim_value: str) -> str:
    """Flattened representation of a claim."""
    return f"{claim_type}{CLAIM_SEPARATOR}{claim_value}"


def check_claim(claim_type: str, claim_value: str) -> str:
    """
    Validate a claim for the flattened claims list and return its token.

    The type must not contain the claim separator, otherwise ("a|b", "c")
    and ("a", "b|c") would flatten to the same token.
    """
    if not claim_type:
        raise ValueError("Claim type cannot be empty.")
    if CLAIM_SEPARATOR in claim_type:
        raise ValueError(f"Claim type {claim_type!r} cannot contain {CLAIM_SEPARATOR!r}.")
    token = claim_token(claim_type, claim_value)
    check_token(token)
    return token
