"""PatMatch pattern tree - immutable node types produced by the pattern compiler."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Tuple, Union

from patmatch.patmatch_condition import PatMatchCondition


DISCARD_NAME = "_"


class PatMatchPatternNode(ABC):
    """
    Abstract base class for all pattern tree nodes.

    All nodes are immutable once constructed.
    """

    @abstractmethod
    def describe(self) -> str:
        """Render the node back into pattern syntax for messages."""

    def variable_names(self) -> List[str]:
        """Return the names this node binds, in pattern order."""
        return []

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class PatMatchLiteralString(PatMatchPatternNode):
    """A quoted string that must equal the source exactly."""
    value: str

    def describe(self) -> str:
        escaped = self.value.replace('\\', '\\\\').replace("'", "\\'")
        return f"'{escaped}'"


@dataclass(frozen=True)
class PatMatchLiteralNumber(PatMatchPatternNode):
    """A numeric literal that must equal the source exactly."""
    value: Union[int, float]

    def describe(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class PatMatchRegex(PatMatchPatternNode):
    """A regular expression that must match the whole source string."""
    source: str
    ignore_case: bool
    compiled: re.Pattern = field(compare=False, repr=False)

    def describe(self) -> str:
        return f"/{self.source}/{'i' if self.ignore_case else ''}"

    def full_match(self, text: str) -> re.Match | None:
        """Match the regex against the entire text."""
        return self.compiled.fullmatch(text)


@dataclass(frozen=True)
class PatMatchBindVariable(PatMatchPatternNode):
    """
    A variable that binds the source value under its name.

    The name `_` discards the value.  A tail variable may only appear as the
    final element of a sequence pattern and captures the remaining elements.
    """
    name: str
    is_tail: bool = False

    @property
    def is_discard(self) -> bool:
        """True for the `_` wildcard."""
        return self.name == DISCARD_NAME

    def describe(self) -> str:
        return f"| {self.name}" if self.is_tail else self.name

    def variable_names(self) -> List[str]:
        return [] if self.is_discard else [self.name]


@dataclass(frozen=True)
class PatMatchSequencePattern(PatMatchPatternNode):
    """An ordered sequence of element patterns, optionally ending in a tail variable."""
    elements: Tuple[PatMatchPatternNode, ...] = ()

    def length(self) -> int:
        """Return the number of element patterns, including any tail."""
        return len(self.elements)

    def has_tail(self) -> bool:
        """Check if the last element is a tail variable."""
        if not self.elements:
            return False

        last = self.elements[-1]
        return isinstance(last, PatMatchBindVariable) and last.is_tail

    def describe(self) -> str:
        parts = [element.describe() for element in self.elements]
        if self.has_tail():
            tail = parts.pop()
            return f"[{', '.join(parts)} {tail}]" if parts else f"[{tail}]"

        return f"[{', '.join(parts)}]"

    def variable_names(self) -> List[str]:
        names: List[str] = []
        for element in self.elements:
            names.extend(element.variable_names())

        return names


@dataclass(frozen=True)
class PatMatchMappingPattern(PatMatchPatternNode):
    """Key/pattern pairs that must each match the corresponding source entry."""
    entries: Tuple[Tuple[str, PatMatchPatternNode], ...] = ()

    _IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

    def describe(self) -> str:
        parts = []
        for key, pattern in self.entries:
            key_text = key if self._IDENTIFIER.fullmatch(key) else PatMatchLiteralString(key).describe()
            parts.append(f"{key_text} = {pattern.describe()}")

        return "{" + ", ".join(parts) + "}"

    def variable_names(self) -> List[str]:
        names: List[str] = []
        for _key, pattern in self.entries:
            names.extend(pattern.variable_names())

        return names


@dataclass(frozen=True)
class PatMatchRegexGroupBinding(PatMatchPatternNode):
    """
    A regex whose captured groups are matched against a sequence pattern.

    Group 0 (the whole match) is the first element of the group sequence.
    """
    regex: PatMatchRegex
    group_pattern: PatMatchSequencePattern

    def describe(self) -> str:
        return f"{self.regex.describe()} {self.group_pattern.describe()}"

    def variable_names(self) -> List[str]:
        return self.group_pattern.variable_names()


@dataclass(frozen=True)
class PatMatchCompiledPattern:
    """
    A pattern string compiled into its tree and optional guard condition.

    Attributes:
        pattern_text: The full pattern-condition text as written by the caller
        fingerprint: Content fingerprint of pattern_text, used as the cache key
        tree: Root of the pattern tree
        condition: Compiled `when` condition, if the pattern has one
    """
    pattern_text: str
    fingerprint: str
    tree: PatMatchPatternNode
    condition: PatMatchCondition | None = None
