"""Token types and token representation for PatMatch patterns and conditions."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class PatMatchTokenType(Enum):
    """Token types for pattern templates and condition expressions."""
    LBRACKET = "["
    RBRACKET = "]"
    LBRACE = "{"
    RBRACE = "}"
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    EQUALS = "="
    PIPE = "|"
    IDENTIFIER = "IDENTIFIER"
    LITERAL = "LITERAL"
    OPERATOR = "OPERATOR"
    KEYWORD = "KEYWORD"
    NUMBER = "NUMBER"
    STRING = "STRING"
    BOOLEAN = "BOOLEAN"


@dataclass
class PatMatchToken:
    """Represents a single token in a pattern template or condition."""
    type: PatMatchTokenType
    value: Any
    position: int
    length: int = 1

    def __repr__(self) -> str:
        return f"PatMatchToken({self.type.name}, {self.value!r}, pos={self.position})"
