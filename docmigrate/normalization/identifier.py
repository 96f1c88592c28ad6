# ==============================================
# Identifier Canonicalization
# ==============================================
#
# PURPOSE:
#   Convert field paths and collection names to a single canonical
#   form that is safe to use as a relational identifier, so that
#   source names and destination column names can be compared.
#
# RULES:
# ------
#   1. Every character outside [a-zA-Z0-9_] → "_"
#        ("address.city" → "address_city", "user-name" → "user_name")
#   2. A leading digit gets a "_" prefix      ("123table" → "_123table")
#   3. Lowercase                              ("UserName" → "username")
#   4. Names longer than MAX_IDENTIFIER_LENGTH (MySQL's limit) are
#      cut and end in "_" + 8 hex chars of their SHA-1, so distinct
#      long names stay distinct and the result is stable across runs.
#
#   The rules are idempotent: canonicalize(canonicalize(x)) == canonicalize(x).
#
# ==============================================

import hashlib
import re

MAX_IDENTIFIER_LENGTH = 64

_INVALID_CHARS = re.compile(r'[^a-zA-Z0-9_]')
_LEADING_DIGIT = re.compile(r'^[0-9]')
_DIGEST_LENGTH = 8


def canonicalize(name: str) -> str:
    """
    Canonical relational identifier for a raw name.

    Examples:
        canonicalize("profile.age") → "profile_age"
        canonicalize("User-Name")   → "user_name"
        canonicalize("2fa_secret")  → "_2fa_secret"
    """
    name = _INVALID_CHARS.sub('_', name)
    name = _LEADING_DIGIT.sub(lambda m: '_' + m.group(0), name)
    return shorten(name.lower())


def shorten(name: str, limit: int = MAX_IDENTIFIER_LENGTH) -> str:
    """Cut `name` to `limit` characters, ending in a digest of the full name."""
    if len(name) <= limit:
        return name
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    return f"{name[:limit - _DIGEST_LENGTH - 1]}_{digest}"


def with_suffix(base: str, suffix: int) -> str:
    """
    `base` with a numeric collision suffix, still within the length limit.

    Examples:
        with_suffix("email", 2) → "email_2"
    """
    tail = f"_{suffix}"
    return base[:MAX_IDENTIFIER_LENGTH - len(tail)] + tail
