"""Description normalization for pattern matching.

The normalized form is used for matching only. Transaction ids hash the raw
description.
"""

import re

_SEPARATORS = re.compile(r"[*#]")
_WHITESPACE = re.compile(r"\s+")

# Needles this short are matched on word boundaries only.
SHORT_TOKEN_LENGTH = 4


def normalize_description(raw: str) -> str:
    """Uppercase, turn ``*``/``#`` into spaces, collapse whitespace, trim."""
    text = _SEPARATORS.sub(" ", raw.upper())
    return _WHITESPACE.sub(" ", text).strip()


def contains_token(haystack: str, needle: str) -> bool:
    """Return True if ``needle`` occurs in ``haystack``.

    Short needles (a bank code such as "BOA") must stand alone as a word so
    they do not match inside longer words ("BOAT"). Longer needles use plain
    substring containment. Both sides are compared upper-cased.
    """
    needle = needle.strip().upper()
    haystack = haystack.upper()
    if not needle:
        return False
    if len(needle) <= SHORT_TOKEN_LENGTH:
        return re.search(rf"(?<!\w){re.escape(needle)}(?!\w)", haystack) is not None
    return needle in haystack
