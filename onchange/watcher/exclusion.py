"""
Onchange Exclusion Filter.

Requires Python 3.11+.
"""

from collections.abc import Iterable


class ExclusionFilter:
    """
    Substring-based ignore check.

    A text is excluded when any configured pattern occurs anywhere in it.
    Patterns are plain substrings, not globs.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self._patterns = tuple(patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def is_excluded(self, text: str) -> bool:
        """Check if a path or event description should be ignored."""
        if not self._patterns:
            return False
        return any(pattern in text for pattern in self._patterns)
