"""Member name utilities.

The scheduling platform stores display names either as ``"LAST, FIRST"`` or
``"FIRST LAST"``. Parsing is best-effort: without a comma the first token is
taken as the first name and everything after it as the last name, so
multi-word first names ("Mary Ann Smith") end up split in the wrong place.
There is no way to tell the two cases apart from the string alone.
"""

import re
from typing import Optional

_WORD_START = re.compile(r"\b\w")


def title_case(value: str) -> str:
    """Lower-case the value, then upper-case the first letter of every word."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), value.lower())


def parse_display_name(name: Optional[str]) -> tuple[str, str]:
    """
    Split a raw display name into title-cased (first_name, last_name).

    Args:
        name: "LAST, FIRST" or "FIRST LAST" (either may be empty)

    Returns:
        Tuple of first and last name; empty strings when missing
    """
    if not name:
        return "", ""

    if "," in name:
        last_part, _, first_part = name.partition(",")
        return title_case(first_part.strip()), title_case(last_part.strip())

    parts = name.split()
    if not parts:
        return "", ""
    return title_case(parts[0]), title_case(" ".join(parts[1:]))
