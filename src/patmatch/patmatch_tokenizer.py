"""Tokenizer for escaped PatMatch pattern templates."""

from typing import List, Sequence

from patmatch.patmatch_error import PatMatchInvalidPatternError
from patmatch.patmatch_escaper import MARKER_DELIMITER, MARKER_PATTERN
from patmatch.patmatch_token import PatMatchToken, PatMatchTokenType


class PatMatchTokenizer:
    """
    Tokenizes a pattern template produced by the literal escaper.

    Literals have already been replaced by markers, so the only things left
    are structural punctuation, identifiers and whitespace.
    """

    _PUNCTUATION = {
        '[': PatMatchTokenType.LBRACKET,
        ']': PatMatchTokenType.RBRACKET,
        '{': PatMatchTokenType.LBRACE,
        '}': PatMatchTokenType.RBRACE,
        ',': PatMatchTokenType.COMMA,
        '=': PatMatchTokenType.EQUALS,
        '|': PatMatchTokenType.PIPE,
    }

    _IDENTIFIER_START_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
    _IDENTIFIER_CHARS = set("0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")

    def tokenize(self, template: str, source_offsets: Sequence[int] = ()) -> List[PatMatchToken]:
        """
        Tokenize a pattern template.

        Args:
            template: Escaped pattern text (without any `when` condition)
            source_offsets: Original text position of each template character, used
                for token positions when given

        Returns:
            List of tokens.  LITERAL tokens carry the 1-based literal index.

        Raises:
            PatMatchInvalidPatternError: If the template contains an invalid character
        """
        tokens = []
        i = 0

        while i < len(template):
            ch = template[i]

            if ch.isspace():
                i += 1
                continue

            position = self._position(i, source_offsets)

            if ch == MARKER_DELIMITER:
                marker = MARKER_PATTERN.match(template, i)
                assert marker is not None, "Escaper always emits well-formed markers"
                length = marker.end() - i
                tokens.append(PatMatchToken(PatMatchTokenType.LITERAL, int(marker.group(2)), position, length))
                i += length
                continue

            token_type = self._PUNCTUATION.get(ch)
            if token_type is not None:
                tokens.append(PatMatchToken(token_type, ch, position))
                i += 1
                continue

            if ch in self._IDENTIFIER_START_CHARS:
                start = i
                while i < len(template) and template[i] in self._IDENTIFIER_CHARS:
                    i += 1

                tokens.append(PatMatchToken(PatMatchTokenType.IDENTIFIER, template[start:i], position, i - start))
                continue

            raise self._invalid_character(ch, position)

        return tokens

    def _invalid_character(self, ch: str, position: int) -> PatMatchInvalidPatternError:
        """Build an error for a character that has no meaning in a pattern."""
        suggestions = {
            ':': "Use '=' between a mapping key and its pattern, not ':'",
            '(': "Use square brackets [ ] for sequence patterns",
            ')': "Use square brackets [ ] for sequence patterns",
            '.': "Numbers must start with a digit, e.g. 0.5 rather than .5",
            '-': "Identifiers may only contain letters, digits and underscores",
            '$': "Variables are bare identifiers, no sigil is needed",
            '@': "Variables are bare identifiers, no sigil is needed",
        }

        return PatMatchInvalidPatternError(
            message=f"Invalid character in pattern: {ch}",
            position=position,
            received=f"Character: {ch} (code {ord(ch)})",
            expected="Brackets, braces, ',', '=', '|', identifiers or literals",
            example="[head | tail], {type = 'member', name = n}, /([0-9]+)/ [_, digits]",
            suggestion=suggestions.get(ch, f"'{ch}' is not valid outside a quoted string or regex")
        )

    @staticmethod
    def _position(index: int, source_offsets: Sequence[int]) -> int:
        return source_offsets[index] if index < len(source_offsets) else index
