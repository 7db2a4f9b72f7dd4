"""
Content Delta.

Line-based unified diff between two serialized content versions.
"""

import difflib
from typing import Optional


def compute_delta(previous: Optional[str], current: Optional[str],
                  label: str = "content") -> str:
    """
    Unified diff from ``previous`` to ``current``.

    Returns "" when there is no previous version or nothing changed.
    """
    if previous is None:
        return ""
    current = current or ""
    if previous == current:
        return ""
    diff = difflib.unified_diff(
        previous.splitlines(keepends=True),
        current.splitlines(keepends=True),
        fromfile=f"{label}.previous",
        tofile=f"{label}.current",
    )
    return "".join(diff)
