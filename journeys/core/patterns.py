# ==============================================================================
# Step Pattern Compiler
# ==============================================================================
"""
Wildcard patterns for step filters.

    *   matches exactly one path segment (no "/")
    **  matches any run of characters, "/" included, so it spans segments

"/blog/*" matches "/blog/post-1" but not "/blog/post-1/comments";
"/blog/**" matches both. Patterns without a wildcard compile to a plain
equality check, which behaves exactly like the regex of the same pattern.
"""

import re
from abc import ABC, abstractmethod

from journeys.core.errors import PatternError

_WILDCARD_SPLIT = re.compile(r"(\*\*|\*)")
_BRACKET_PAIRS = {"]": "[", "}": "{", ")": "("}


class StepMatcher(ABC):
    """Compiled step filter."""

    def __init__(self, pattern: str):
        self.pattern = pattern

    @abstractmethod
    def matches(self, label: str) -> bool:
        """Check whether a step label satisfies the pattern."""
        ...

    def __call__(self, label: str) -> bool:
        return self.matches(label)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pattern!r})"


class LiteralMatcher(StepMatcher):
    """Exact label equality."""

    def matches(self, label: str) -> bool:
        return label == self.pattern


class WildcardMatcher(StepMatcher):
    """Anchored regex compiled from a wildcard pattern."""

    def __init__(self, pattern: str):
        super().__init__(pattern)
        self.regex = re.compile(pattern_to_regex(pattern))

    def matches(self, label: str) -> bool:
        return self.regex.fullmatch(label) is not None


def pattern_to_regex(pattern: str) -> str:
    """Translate a wildcard pattern to an anchored regular expression."""
    parts = []
    for token in _WILDCARD_SPLIT.split(pattern):
        if token == "**":
            parts.append(".*")
        elif token == "*":
            parts.append("[^/]+")
        else:
            parts.append(re.escape(token))
    return "^" + "".join(parts) + "$"


def _validate(pattern) -> None:
    if not isinstance(pattern, str):
        raise PatternError(str(pattern), "pattern must be a string")
    if not pattern.strip():
        raise PatternError(pattern, "pattern is empty")
    if "***" in pattern:
        raise PatternError(pattern, "at most two consecutive '*' are allowed")

    stack: list[str] = []
    for char in pattern:
        if char in "[{(":
            stack.append(char)
        elif char in _BRACKET_PAIRS:
            if not stack or stack.pop() != _BRACKET_PAIRS[char]:
                raise PatternError(pattern, f"unbalanced '{char}'")
    if stack:
        raise PatternError(pattern, f"unbalanced '{stack[-1]}'")


def compile_pattern(pattern: str) -> StepMatcher:
    """
    Compile a step filter pattern.

    Args:
        pattern: Literal step label or wildcard pattern

    Returns:
        LiteralMatcher for patterns without "*", WildcardMatcher otherwise

    Raises:
        PatternError: If the pattern is empty or malformed
    """
    _validate(pattern)
    if "*" in pattern:
        return WildcardMatcher(pattern)
    return LiteralMatcher(pattern)
