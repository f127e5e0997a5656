"""Parser for PatMatch pattern templates."""

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from patmatch.patmatch_error import PatMatchInvalidPatternError
from patmatch.patmatch_escaper import PatMatchEscapedPattern, PatMatchLiteral, PatMatchLiteralKind
from patmatch.patmatch_pattern import (
    PatMatchPatternNode, PatMatchLiteralString, PatMatchLiteralNumber, PatMatchRegex,
    PatMatchBindVariable, PatMatchRegexGroupBinding, PatMatchSequencePattern, PatMatchMappingPattern
)
from patmatch.patmatch_token import PatMatchToken, PatMatchTokenType


@dataclass
class BracketStackFrame:
    """Represents an unclosed opening bracket or brace."""
    position: int
    closing: PatMatchTokenType


class PatMatchParser:
    """
    Parses pattern template tokens directly into a pattern tree.

    Grammar:
        pattern  := sequence | mapping | regex [sequence] | literal | identifier
        sequence := '[' [pattern (',' pattern)*] [','] ['|' identifier] ']'
        mapping  := '{' [key '=' pattern (',' key '=' pattern)*] '}'
        key      := identifier | string literal
    """

    def __init__(self, tokens: List[PatMatchToken], escaped: PatMatchEscapedPattern, text: str = ""):
        """
        Initialize parser with tokens and the escaped pattern they came from.

        Args:
            tokens: Pattern template tokens
            escaped: Escaper output, used to resolve literal markers
            text: Original pattern text for error context
        """
        self.tokens = tokens
        self.pos = 0
        self.current_token: PatMatchToken | None = tokens[0] if tokens else None
        self.escaped = escaped
        self.text = text

        # Bracket stack for reporting unclosed sequences and mappings
        self.bracket_stack: List[BracketStackFrame] = []

    def parse(self) -> PatMatchPatternNode:
        """
        Parse tokens into a pattern tree.

        Returns:
            Root node of the pattern tree

        Raises:
            PatMatchInvalidPatternError: If the pattern is malformed
        """
        if self.current_token is None:
            raise PatMatchInvalidPatternError(
                message="Empty pattern",
                expected="Pattern such as _, x, 'literal', [a, b | rest] or {key = value}",
                example="[head | tail]",
                suggestion="Provide a pattern to match against"
            )

        tree = self._parse_pattern()

        if self.current_token is not None:
            raise PatMatchInvalidPatternError(
                message="Unexpected token after complete pattern",
                position=self.current_token.position,
                received=f"Found: {self._describe_token(self.current_token)}",
                expected="End of pattern or ' when <condition>'",
                example="Correct: [a, b]\nIncorrect: [a, b] c",
                suggestion="Wrap multiple patterns in a sequence: [p1, p2]"
            )

        return tree

    def _parse_pattern(self) -> PatMatchPatternNode:
        """Parse a single pattern."""
        token = self.current_token
        if token is None:
            raise self._unexpected_end("a pattern")

        if token.type == PatMatchTokenType.LBRACKET:
            return self._parse_sequence()

        if token.type == PatMatchTokenType.LBRACE:
            return self._parse_mapping()

        if token.type == PatMatchTokenType.IDENTIFIER:
            self._advance()
            return PatMatchBindVariable(token.value)

        if token.type == PatMatchTokenType.LITERAL:
            self._advance()
            literal = self.escaped.literal(token.value)
            if literal.kind == PatMatchLiteralKind.STRING:
                return PatMatchLiteralString(str(literal.value))

            if literal.kind == PatMatchLiteralKind.NUMBER:
                assert isinstance(literal.value, (int, float)), "Number literals are always numeric"
                return PatMatchLiteralNumber(literal.value)

            regex = self._compile_regex(literal)

            # A regex directly followed by a sequence binds its capture groups
            if self.current_token is not None and self.current_token.type == PatMatchTokenType.LBRACKET:
                return PatMatchRegexGroupBinding(regex, self._parse_sequence())

            return regex

        raise PatMatchInvalidPatternError(
            message=f"Unexpected token: {self._describe_token(token)}",
            position=token.position,
            received=f"Token: {self._describe_token(token)} (type: {token.type.name})",
            expected="'[', '{', identifier or literal",
            example="[a, b | rest] or {name = n}",
            suggestion="Tail markers '|' may only appear inside a sequence, before its last element"
                if token.type == PatMatchTokenType.PIPE else None
        )

    def _parse_sequence(self) -> PatMatchSequencePattern:
        """Parse [p1, p2, ... | tail]."""
        start = self._open(PatMatchTokenType.RBRACKET)
        elements: List[PatMatchPatternNode] = []

        while True:
            token = self.current_token
            if token is None:
                raise self._unterminated(start)

            if token.type == PatMatchTokenType.RBRACKET:
                break

            if token.type == PatMatchTokenType.PIPE:
                elements.append(self._parse_tail())
                if self.current_token is None:
                    raise self._unterminated(start)

                if self.current_token.type != PatMatchTokenType.RBRACKET:
                    raise PatMatchInvalidPatternError(
                        message="Tail variable must be the last element of a sequence",
                        position=self.current_token.position,
                        received=f"Found: {self._describe_token(self.current_token)} after the tail",
                        expected="']' after the tail variable",
                        example="[first, second | rest]"
                    )

                break

            elements.append(self._parse_pattern())

            if self.current_token is not None and self.current_token.type == PatMatchTokenType.COMMA:
                comma = self.current_token
                self._advance()

                # A trailing comma is only permitted before a tail: [a, | t]
                if self.current_token is not None and self.current_token.type == PatMatchTokenType.RBRACKET:
                    raise PatMatchInvalidPatternError(
                        message="Trailing comma in sequence pattern",
                        position=comma.position,
                        expected="Another element or a tail ('| name') after ','",
                        example="[a, b] or [a, b, | rest]"
                    )

                continue

            if self.current_token is not None and self.current_token.type not in (
                PatMatchTokenType.RBRACKET, PatMatchTokenType.PIPE
            ):
                raise PatMatchInvalidPatternError(
                    message="Missing comma between sequence elements",
                    position=self.current_token.position,
                    received=f"Found: {self._describe_token(self.current_token)}",
                    expected="',', '|' or ']'",
                    example="[a, b, c]"
                )

        self._close()
        return PatMatchSequencePattern(tuple(elements))

    def _parse_tail(self) -> PatMatchBindVariable:
        """Parse '| name' inside a sequence."""
        pipe = self.current_token
        assert pipe is not None, "Caller checked the current token"
        self._advance()

        token = self.current_token
        if token is None or token.type != PatMatchTokenType.IDENTIFIER:
            raise PatMatchInvalidPatternError(
                message="Tail marker must be followed by a variable name",
                position=pipe.position,
                received=f"Found: {self._describe_token(token) if token else 'end of pattern'}",
                expected="Identifier after '|'",
                example="[head | tail] or [_ | _]"
            )

        self._advance()
        return PatMatchBindVariable(token.value, is_tail=True)

    def _parse_mapping(self) -> PatMatchMappingPattern:
        """Parse {key = pattern, ...}."""
        start = self._open(PatMatchTokenType.RBRACE)
        entries: List[Tuple[str, PatMatchPatternNode]] = []
        seen: Dict[str, int] = {}

        if self.current_token is not None and self.current_token.type == PatMatchTokenType.RBRACE:
            self._close()
            return PatMatchMappingPattern(())

        while True:
            key_token = self.current_token
            if key_token is None:
                raise self._unterminated(start)

            key = self._mapping_key(key_token)
            if key in seen:
                raise PatMatchInvalidPatternError(
                    message=f"Duplicate mapping key: {key}",
                    position=key_token.position,
                    received=f"Key '{key}' first used at position {seen[key]}",
                    suggestion="Each key may only appear once in a mapping pattern"
                )

            seen[key] = key_token.position
            self._advance()

            if self.current_token is None or self.current_token.type != PatMatchTokenType.EQUALS:
                raise PatMatchInvalidPatternError(
                    message=f"Missing '=' after mapping key: {key}",
                    position=key_token.position,
                    received=f"Found: {self._describe_token(self.current_token) if self.current_token else 'end of pattern'}",
                    expected="key = pattern",
                    example="{type = 'member', name = n}"
                )

            self._advance()
            entries.append((key, self._parse_pattern()))

            token = self.current_token
            if token is None:
                raise self._unterminated(start)

            if token.type == PatMatchTokenType.RBRACE:
                break

            if token.type != PatMatchTokenType.COMMA:
                raise PatMatchInvalidPatternError(
                    message="Missing comma between mapping entries",
                    position=token.position,
                    received=f"Found: {self._describe_token(token)}",
                    expected="',' or '}'",
                    example="{type = 'member', name = n}"
                )

            self._advance()

        self._close()
        return PatMatchMappingPattern(tuple(entries))

    def _mapping_key(self, token: PatMatchToken) -> str:
        """Return the key named by an identifier or string literal token."""
        if token.type == PatMatchTokenType.IDENTIFIER:
            return str(token.value)

        if token.type == PatMatchTokenType.LITERAL:
            literal = self.escaped.literal(token.value)
            if literal.kind == PatMatchLiteralKind.STRING:
                return str(literal.value)

        raise PatMatchInvalidPatternError(
            message=f"Invalid mapping key: {self._describe_token(token)}",
            position=token.position,
            expected="Identifier or quoted string as mapping key",
            example="{name = n, 'first name' = f}"
        )

    def _compile_regex(self, literal: PatMatchLiteral) -> PatMatchRegex:
        """Pre-compile a regex literal."""
        source = str(literal.value)
        try:
            compiled = re.compile(source, re.IGNORECASE if literal.ignore_case else 0)

        except re.error as e:
            raise PatMatchInvalidPatternError(
                message=f"Invalid regular expression: {literal.raw_text}",
                position=literal.position,
                received=f"Regular expression source: {source}",
                context=str(e),
                suggestion="Check the regular expression syntax"
            ) from e

        return PatMatchRegex(source, literal.ignore_case, compiled)

    def _open(self, closing: PatMatchTokenType) -> int:
        """Consume an opening bracket or brace and track it."""
        assert self.current_token is not None, "Caller checked the current token"
        position = self.current_token.position
        self.bracket_stack.append(BracketStackFrame(position, closing))
        self._advance()
        return position

    def _close(self) -> None:
        """Consume a closing bracket or brace."""
        assert self.bracket_stack, "Bracket stack underflow"
        self.bracket_stack.pop()
        self._advance()

    def _unterminated(self, start: int) -> PatMatchInvalidPatternError:
        """Create an error for input that ends inside sequences or mappings."""
        depth = len(self.bracket_stack)
        closing = " ".join(frame.closing.value for frame in reversed(self.bracket_stack))
        return PatMatchInvalidPatternError(
            message=f"Unterminated pattern - missing {depth} closing bracket{'s' if depth > 1 else ''}",
            position=start,
            expected=f"Add '{closing}' to close all open patterns",
            example="Correct: [a, {b = c}]\nIncorrect: [a, {b = c}",
            context=f"Pattern: {self.text}" if self.text else None
        )

    def _unexpected_end(self, expected: str) -> PatMatchInvalidPatternError:
        return PatMatchInvalidPatternError(
            message="Unexpected end of pattern",
            expected=f"Expected {expected}",
            context=f"Pattern: {self.text}" if self.text else None
        )

    def _describe_token(self, token: PatMatchToken) -> str:
        """Render a token as it appeared in the pattern text."""
        if token.type == PatMatchTokenType.LITERAL:
            return self.escaped.literal(token.value).raw_text

        return str(token.value)

    def _advance(self) -> None:
        """Move to the next token."""
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current_token = self.tokens[self.pos]

        else:
            self.current_token = None
