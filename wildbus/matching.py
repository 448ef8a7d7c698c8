"""Segment wildcard matching for wildbus.

Event names and patterns are split into segments on ``:`` or ``.`` (the two
delimiters are interchangeable). A pattern segment ``*`` matches exactly one
event segment and ``**`` matches one or more remaining segments.

Example:
    match_pattern("user:*", "user:login")      # True
    match_pattern("user:*", "user:a:b")        # False
    match_pattern("user:**", "user.a.b")       # True
    match_pattern("**", "anything:at:all")     # True
"""

from __future__ import annotations

import re

from wildbus.errors import InvalidEventNameError

SEGMENT_DELIMITERS = re.compile(r"[:.]")
SINGLE_WILDCARD = "*"
MULTI_WILDCARD = "**"
WILDCARD_TOKENS = frozenset({SINGLE_WILDCARD, MULTI_WILDCARD})


def split_segments(name: str) -> list[str]:
    """Split an event name or pattern into its segments."""
    return SEGMENT_DELIMITERS.split(name)


def validate_name(name: str) -> str:
    """Reject empty names and names with an empty segment.

    Raises:
        InvalidEventNameError: If ``name`` is not a usable event name or pattern.
    """
    if not isinstance(name, str) or not name or "" in split_segments(name):
        raise InvalidEventNameError(name)
    return name


def is_wildcard_pattern(pattern: str) -> bool:
    """Check whether any segment of ``pattern`` is a wildcard token."""
    return any(segment in WILDCARD_TOKENS for segment in split_segments(pattern))


def match_pattern(pattern: str, name: str) -> bool:
    """Test whether ``pattern`` matches the concrete event ``name``.

    Uses two cursors with a single backtrack anchor, like classic glob
    matching: each time a ``**`` is met the anchor moves there, and a later
    mismatch retries with the anchored ``**`` absorbing one more segment.

    Args:
        pattern: Subscription pattern, possibly containing ``*``/``**``.
        name: Concrete event name.

    Returns:
        True if the pattern matches the name.
    """
    pattern_parts = split_segments(pattern)
    name_parts = split_segments(name)

    p = 0
    e = 0
    anchor_p = -1
    anchor_e = -1

    while e < len(name_parts):
        if p < len(pattern_parts) and pattern_parts[p] == MULTI_WILDCARD:
            anchor_p = p
            anchor_e = e
            p += 1
        elif p < len(pattern_parts) and (
            pattern_parts[p] == SINGLE_WILDCARD or pattern_parts[p] == name_parts[e]
        ):
            p += 1
            e += 1
        elif anchor_p != -1:
            p = anchor_p + 1
            anchor_e += 1
            e = anchor_e
        else:
            return False

    while p < len(pattern_parts) and pattern_parts[p] == MULTI_WILDCARD:
        p += 1

    return p == len(pattern_parts)
