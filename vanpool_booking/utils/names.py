"""
Full-name normalization shared by the join path and the override admin.
"""

import re

MIN_FULL_NAME_LENGTH = 3

_WHITESPACE = re.compile(r"\s+")


def normalize_full_name(raw: str | None) -> str:
    """Trim and collapse internal whitespace. Case is preserved."""
    return _WHITESPACE.sub(" ", (raw or "").strip())
