"""Tokenizer and parser for PatMatch `when` conditions."""

import difflib
import re
from typing import Collection, List

from patmatch.patmatch_condition import (
    PatMatchConditionExpr, PatMatchConditionLiteral, PatMatchConditionVariable,
    PatMatchConditionUnary, PatMatchConditionBinary
)
from patmatch.patmatch_error import PatMatchInvalidPatternError
from patmatch.patmatch_escaper import STRING_ESCAPES
from patmatch.patmatch_token import PatMatchToken, PatMatchTokenType


class PatMatchConditionTokenizer:
    """Tokenizes condition text into operators, keywords and operands."""

    _OPERATORS = ['<=', '>=', '==', '!=', '<', '>', '+', '-', '*', '/']
    _KEYWORDS = {'and', 'or', 'not'}
    _BOOLEANS = {'true': True, 'false': False}

    _IDENTIFIER_START_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
    _IDENTIFIER_CHARS = set("0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
    _NUMBER_PATTERN = re.compile(r"(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

    def tokenize(self, text: str, offset: int = 0) -> List[PatMatchToken]:
        """
        Tokenize condition text.

        Args:
            text: The condition (everything after `when`)
            offset: Position of the condition within the full pattern text

        Returns:
            List of tokens

        Raises:
            PatMatchInvalidPatternError: If the condition contains invalid characters or literals
        """
        tokens = []
        i = 0

        while i < len(text):
            ch = text[i]

            if ch.isspace():
                i += 1
                continue

            if ch == '(':
                tokens.append(PatMatchToken(PatMatchTokenType.LPAREN, ch, offset + i))
                i += 1
                continue

            if ch == ')':
                tokens.append(PatMatchToken(PatMatchTokenType.RPAREN, ch, offset + i))
                i += 1
                continue

            if ch in ('"', "'"):
                value, length = self._read_string(text, i, offset)
                tokens.append(PatMatchToken(PatMatchTokenType.STRING, value, offset + i, length))
                i += length
                continue

            number = self._NUMBER_PATTERN.match(text, i)
            if number is not None and number.end() > i:
                number_text = number.group(0)
                value = int(number_text) if number_text.isdigit() else float(number_text)
                tokens.append(PatMatchToken(PatMatchTokenType.NUMBER, value, offset + i, len(number_text)))
                i = number.end()
                continue

            if ch in self._IDENTIFIER_START_CHARS:
                start = i
                while i < len(text) and text[i] in self._IDENTIFIER_CHARS:
                    i += 1

                word = text[start:i]
                if word in self._KEYWORDS:
                    tokens.append(PatMatchToken(PatMatchTokenType.KEYWORD, word, offset + start, len(word)))

                elif word in self._BOOLEANS:
                    tokens.append(PatMatchToken(PatMatchTokenType.BOOLEAN, self._BOOLEANS[word], offset + start, len(word)))

                else:
                    tokens.append(PatMatchToken(PatMatchTokenType.IDENTIFIER, word, offset + start, len(word)))

                continue

            operator = next((op for op in self._OPERATORS if text.startswith(op, i)), None)
            if operator is not None:
                tokens.append(PatMatchToken(PatMatchTokenType.OPERATOR, operator, offset + i, len(operator)))
                i += len(operator)
                continue

            raise self._invalid_character(text, i, offset)

        return tokens

    def _read_string(self, text: str, start: int, offset: int) -> tuple[str, int]:
        """
        Read a quoted string from the condition.

        Returns:
            Tuple of (string_value, length_consumed)
        """
        quote = text[start]
        i = start + 1
        result: List[str] = []

        while i < len(text):
            ch = text[i]

            if ch == quote:
                return ''.join(result), i + 1 - start

            if ch == '\\' and i + 1 < len(text):
                escaped = text[i + 1]
                if escaped not in STRING_ESCAPES:
                    raise PatMatchInvalidPatternError(
                        message=f"Invalid escape sequence in condition: \\{escaped}",
                        position=offset + i,
                        expected="Valid escape: \\\\, \\', \\\", \\/, \\n, \\t or \\r"
                    )

                result.append(STRING_ESCAPES[escaped])
                i += 2
                continue

            result.append(ch)
            i += 1

        raise PatMatchInvalidPatternError(
            message="Unterminated string literal in condition",
            position=offset + start,
            received=f"String starting with: {text[start:start + 10]}...",
            suggestion="Add the matching closing quote"
        )

    def _invalid_character(self, text: str, position: int, offset: int) -> PatMatchInvalidPatternError:
        suggestions = {
            '=': "Use '==' to compare values, conditions cannot assign",
            '!': "Use 'not' for negation",
            '&': "Use 'and' to combine conditions",
            '|': "Use 'or' to combine conditions",
            '%': "Only +, -, * and / are supported in conditions",
        }

        ch = text[position]
        return PatMatchInvalidPatternError(
            message=f"Invalid character in condition: {ch}",
            position=offset + position,
            received=f"Character: {ch} (code {ord(ch)})",
            expected="Variables, numbers, strings, true, false, operators or parentheses",
            example="n when n > 0 and n < 10",
            suggestion=suggestions.get(ch, f"'{ch}' is not valid in a condition")
        )


class PatMatchConditionParser:
    """
    Parses condition tokens into an expression tree.

    Precedence, from lowest to highest: `or`, `and`, comparisons, `+ -`,
    `* /`, unary `not` and `-`, then parentheses and operands.  Identifiers
    must name variables bound by the pattern.
    """

    _BINARY_PRECEDENCE = {
        'or': 1,
        'and': 2,
        '<': 3, '<=': 3, '>': 3, '>=': 3, '==': 3, '!=': 3,
        '+': 4, '-': 4,
        '*': 5, '/': 5,
    }

    def __init__(self, tokens: List[PatMatchToken], text: str, known_names: Collection[str]):
        """
        Initialize parser with tokens and the original condition text.

        Args:
            tokens: Condition tokens
            text: Condition text for error context
            known_names: Variables bound by the pattern
        """
        self.tokens = tokens
        self.pos = 0
        self.current_token: PatMatchToken | None = tokens[0] if tokens else None
        self.text = text
        self.known_names = known_names

    def parse(self) -> PatMatchConditionExpr:
        """
        Parse the condition.

        Returns:
            Root of the condition expression tree

        Raises:
            PatMatchInvalidPatternError: If the condition is malformed
        """
        if self.current_token is None:
            raise PatMatchInvalidPatternError(
                message="Empty condition after 'when'",
                expected="Boolean expression over the pattern's variables",
                example="[a, b] when a < b"
            )

        expr = self._parse_binary(1)

        if self.current_token is not None:
            raise PatMatchInvalidPatternError(
                message="Unexpected token after complete condition",
                position=self.current_token.position,
                received=f"Found: {self.current_token.value}",
                expected="End of condition, 'and' or 'or'",
                context=f"Condition: {self.text.strip()}"
            )

        return expr

    def _parse_binary(self, min_precedence: int) -> PatMatchConditionExpr:
        """Parse a chain of binary operators using precedence climbing."""
        left = self._parse_unary()

        while True:
            op = self._current_binary_operator()
            if op is None or self._BINARY_PRECEDENCE[op] < min_precedence:
                return left

            self._advance()
            right = self._parse_binary(self._BINARY_PRECEDENCE[op] + 1)
            left = PatMatchConditionBinary(op, left, right)

    def _parse_unary(self) -> PatMatchConditionExpr:
        token = self.current_token
        if token is not None and token.value in ('not', '-') and \
                token.type in (PatMatchTokenType.KEYWORD, PatMatchTokenType.OPERATOR):
            self._advance()
            return PatMatchConditionUnary(token.value, self._parse_unary())

        return self._parse_primary()

    def _parse_primary(self) -> PatMatchConditionExpr:
        token = self.current_token
        if token is None:
            raise PatMatchInvalidPatternError(
                message="Incomplete condition",
                received=f"Condition: {self.text.strip()}",
                expected="Operand after operator",
                example="n when n > 0"
            )

        if token.type == PatMatchTokenType.LPAREN:
            self._advance()
            expr = self._parse_binary(1)
            if self.current_token is None or self.current_token.type != PatMatchTokenType.RPAREN:
                raise PatMatchInvalidPatternError(
                    message="Unterminated parenthesis in condition",
                    position=token.position,
                    expected="Closing )",
                    context=f"Condition: {self.text.strip()}"
                )

            self._advance()
            return expr

        if token.type in (PatMatchTokenType.NUMBER, PatMatchTokenType.STRING, PatMatchTokenType.BOOLEAN):
            self._advance()
            return PatMatchConditionLiteral(token.value)

        if token.type == PatMatchTokenType.IDENTIFIER:
            self._advance()
            return self._variable(token)

        raise PatMatchInvalidPatternError(
            message=f"Unexpected token in condition: {token.value}",
            position=token.position,
            received=f"Token: {token.value} (type: {token.type.name})",
            expected="Variable, number, string, true, false, 'not', '-' or '('",
            context=f"Condition: {self.text.strip()}"
        )

    def _variable(self, token: PatMatchToken) -> PatMatchConditionVariable:
        """Resolve an identifier against the variables bound by the pattern."""
        name = token.value
        if name in self.known_names:
            return PatMatchConditionVariable(name)

        similar = difflib.get_close_matches(name, list(self.known_names), n=3, cutoff=0.6)
        suggestion = f"Did you mean: {', '.join(similar)}?" if similar else \
            "Conditions can only use variables bound by the pattern"
        raise PatMatchInvalidPatternError(
            message=f"Unknown variable in condition: {name}",
            position=token.position,
            received=f"Bound variables: {', '.join(sorted(self.known_names)) or '(none)'}",
            suggestion=suggestion,
            example="[a, b] when a < b"
        )

    def _current_binary_operator(self) -> str | None:
        token = self.current_token
        if token is None or token.type not in (PatMatchTokenType.OPERATOR, PatMatchTokenType.KEYWORD):
            return None

        return token.value if token.value in self._BINARY_PRECEDENCE else None

    def _advance(self) -> None:
        """Move to the next token."""
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current_token = self.tokens[self.pos]

        else:
            self.current_token = None
