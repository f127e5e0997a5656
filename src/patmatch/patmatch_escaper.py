"""Literal escaper for PatMatch pattern text.

The escaper protects quoted strings, numbers and regular expressions from the
structural passes that follow.  Each literal is lifted out of the text and
replaced by a positional marker, so later stages only ever see brackets,
braces, punctuation, identifiers and markers.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, List, Tuple, Union

from patmatch.patmatch_error import PatMatchInvalidPatternError


MARKER_DELIMITER = "\x00"

# Matches a literal marker: delimiter, kind letter, 1-based index, delimiter
MARKER_PATTERN = re.compile("\x00([SNR])([0-9]+)\x00")

# Escape sequences permitted inside quoted strings
STRING_ESCAPES = {
    '\\': '\\',
    "'": "'",
    '"': '"',
    '/': '/',
    'n': '\n',
    't': '\t',
    'r': '\r',
}


class PatMatchLiteralKind(Enum):
    """Kinds of literal lifted out of pattern text."""
    STRING = "S"
    NUMBER = "N"
    REGEX = "R"


@dataclass(frozen=True)
class PatMatchLiteral:
    """A literal extracted from pattern text."""
    kind: PatMatchLiteralKind
    value: Union[str, int, float]
    raw_text: str
    position: int
    ignore_case: bool = False


@dataclass(frozen=True)
class PatMatchEscapedPattern:
    """
    Result of escaping a pattern string.

    Attributes:
        template: Pattern text with every literal replaced by a marker
        literals: Extracted literals, marker index N refers to literals[N - 1]
        condition_offset: Offset in the template of a top-level `when`, if any
        source_offsets: Position in the original text of each template character
    """
    template: str
    literals: Tuple[PatMatchLiteral, ...]
    condition_offset: int | None = None
    source_offsets: Tuple[int, ...] = ()

    def literal(self, index: int) -> PatMatchLiteral:
        """
        Look up a literal by its 1-based marker index.

        Args:
            index: Marker index

        Returns:
            The literal the marker stands for
        """
        return self.literals[index - 1]


class PatMatchEscaperState(Enum):
    """Scanner states of the literal escaper."""
    OUTSIDE = auto()
    SINGLE_QUOTED = auto()
    SINGLE_QUOTED_ESCAPED = auto()
    DOUBLE_QUOTED = auto()
    DOUBLE_QUOTED_ESCAPED = auto()
    REGEX = auto()
    REGEX_ESCAPED = auto()
    NUMBER = auto()


class PatMatchEscaper:
    """
    Single pass state machine that lifts literals out of pattern text.

    Strings may be single or double quoted and normalize to the same literal
    kind.  Numbers start at a digit, or at a sign directly followed by a digit,
    as long as they do not continue an identifier.  Regular expressions are
    delimited by slashes and may carry a trailing `i` flag.

    Once a whitespace-delimited `when` has been seen the rest of the text is a
    condition, and only quoted strings are extracted from it so that `/`, `+`
    and `-` keep their arithmetic meaning.
    """

    _IDENTIFIER_CHARS = set("0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
    _DIGIT_CHARS = set("0123456789")
    _NUMBER_CHARS = set("0123456789.eE+-")

    _INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
    _FLOAT_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

    def __init__(self) -> None:
        self._source = ""
        self._template: List[str] = []
        self._template_length = 0
        self._offsets: List[int] = []
        self._literals: List[PatMatchLiteral] = []
        self._state = PatMatchEscaperState.OUTSIDE
        self._literal_start = 0
        self._buffer: List[str] = []
        self._word: List[str] = []
        self._word_start = 0
        self._word_after_space = True
        self._last_emitted = " "
        self._condition_offset: int | None = None

        self._handlers: Dict[PatMatchEscaperState, Callable[[int], int]] = {
            PatMatchEscaperState.OUTSIDE: self._scan_outside,
            PatMatchEscaperState.SINGLE_QUOTED: self._scan_single_quoted,
            PatMatchEscaperState.SINGLE_QUOTED_ESCAPED: self._scan_single_quoted_escaped,
            PatMatchEscaperState.DOUBLE_QUOTED: self._scan_double_quoted,
            PatMatchEscaperState.DOUBLE_QUOTED_ESCAPED: self._scan_double_quoted_escaped,
            PatMatchEscaperState.REGEX: self._scan_regex,
            PatMatchEscaperState.REGEX_ESCAPED: self._scan_regex_escaped,
            PatMatchEscaperState.NUMBER: self._scan_number,
        }

    def escape(self, source: str) -> PatMatchEscapedPattern:
        """
        Escape all literals in a pattern string.

        Args:
            source: Raw pattern text, optionally followed by a `when` condition

        Returns:
            The marked template and the extracted literals

        Raises:
            PatMatchInvalidPatternError: If a literal is unterminated or malformed
        """
        self._reset(source)

        position = 0
        while position < len(source):
            position = self._handlers[self._state](position)

        self._finish()

        return PatMatchEscapedPattern(
            template="".join(self._template),
            literals=tuple(self._literals),
            condition_offset=self._condition_offset,
            source_offsets=tuple(self._offsets)
        )

    def _reset(self, source: str) -> None:
        """Prepare the scanner for a new input string."""
        self._source = source
        self._template = []
        self._template_length = 0
        self._offsets = []
        self._literals = []
        self._state = PatMatchEscaperState.OUTSIDE
        self._literal_start = 0
        self._buffer = []
        self._word = []
        self._word_start = 0
        self._word_after_space = True
        self._last_emitted = " "
        self._condition_offset = None

    def _in_condition(self) -> bool:
        return self._condition_offset is not None

    def _scan_outside(self, position: int) -> int:
        ch = self._source[position]

        if ch == MARKER_DELIMITER:
            raise PatMatchInvalidPatternError(
                message="Invalid control character in pattern: \\u0000",
                position=position,
                received="NUL character",
                suggestion="Remove the NUL character from the pattern text"
            )

        if ch not in self._IDENTIFIER_CHARS:
            self._end_word(ch)

        if ch == "'":
            self._begin_literal(PatMatchEscaperState.SINGLE_QUOTED, position)
            return position + 1

        if ch == '"':
            self._begin_literal(PatMatchEscaperState.DOUBLE_QUOTED, position)
            return position + 1

        if not self._in_condition():
            if ch == '/':
                self._begin_literal(PatMatchEscaperState.REGEX, position)
                return position + 1

            if self._is_number_start(position):
                self._begin_literal(PatMatchEscaperState.NUMBER, position)
                self._buffer.append(ch)
                return position + 1

        self._emit(ch, position)
        return position + 1

    def _scan_single_quoted(self, position: int) -> int:
        return self._scan_quoted(position, "'", PatMatchEscaperState.SINGLE_QUOTED_ESCAPED)

    def _scan_double_quoted(self, position: int) -> int:
        return self._scan_quoted(position, '"', PatMatchEscaperState.DOUBLE_QUOTED_ESCAPED)

    def _scan_single_quoted_escaped(self, position: int) -> int:
        return self._scan_quoted_escape(position, PatMatchEscaperState.SINGLE_QUOTED)

    def _scan_double_quoted_escaped(self, position: int) -> int:
        return self._scan_quoted_escape(position, PatMatchEscaperState.DOUBLE_QUOTED)

    def _scan_quoted(self, position: int, quote: str, escaped_state: PatMatchEscaperState) -> int:
        """Scan one character inside a quoted string."""
        ch = self._source[position]

        if ch == '\\':
            self._state = escaped_state
            return position + 1

        if ch == quote:
            raw_text = self._source[self._literal_start:position + 1]
            self._add_literal(PatMatchLiteralKind.STRING, "".join(self._buffer), raw_text)
            return position + 1

        self._buffer.append(ch)
        return position + 1

    def _scan_quoted_escape(self, position: int, return_state: PatMatchEscaperState) -> int:
        """Decode the character following a backslash inside a quoted string."""
        ch = self._source[position]
        if ch not in STRING_ESCAPES:
            raise PatMatchInvalidPatternError(
                message=f"Invalid escape sequence: \\{ch}",
                position=position - 1,
                received=f"Escape sequence: \\{ch}",
                expected="Valid escape: \\\\, \\', \\\", \\/, \\n, \\t or \\r",
                example="'it\\'s' or \"say \\\"hi\\\"\"",
                suggestion="Use a valid escape sequence or remove the backslash"
            )

        self._buffer.append(STRING_ESCAPES[ch])
        self._state = return_state
        return position + 1

    def _scan_regex(self, position: int) -> int:
        ch = self._source[position]

        if ch == '\\':
            self._buffer.append(ch)
            self._state = PatMatchEscaperState.REGEX_ESCAPED
            return position + 1

        if ch == '/':
            end = position + 1
            ignore_case = end < len(self._source) and self._source[end] == 'i'
            if ignore_case:
                end += 1

            raw_text = self._source[self._literal_start:end]
            self._add_literal(PatMatchLiteralKind.REGEX, "".join(self._buffer), raw_text, ignore_case)
            return end

        self._buffer.append(ch)
        return position + 1

    def _scan_regex_escaped(self, position: int) -> int:
        # Regex escapes are kept verbatim for the regex engine
        self._buffer.append(self._source[position])
        self._state = PatMatchEscaperState.REGEX
        return position + 1

    def _scan_number(self, position: int) -> int:
        ch = self._source[position]
        if ch in self._NUMBER_CHARS:
            self._buffer.append(ch)
            return position + 1

        # The terminating character belongs to the outside state
        self._finish_number()
        return position

    def _finish_number(self) -> None:
        """Convert the buffered numeric text into a number literal."""
        text = "".join(self._buffer)
        value: int | float
        if self._INTEGER_PATTERN.fullmatch(text):
            value = int(text)

        elif self._FLOAT_PATTERN.fullmatch(text):
            value = float(text)

        else:
            raise PatMatchInvalidPatternError(
                message=f"Malformed numeric literal: {text}",
                position=self._literal_start,
                received=f"Numeric literal: {text}",
                expected="Integer or decimal number, optionally with an exponent",
                example="42, -7, 3.14, 1e-3"
            )

        self._add_literal(PatMatchLiteralKind.NUMBER, value, text)

    def _finish(self) -> None:
        """Handle end of input in whatever state the scanner is in."""
        if self._state == PatMatchEscaperState.OUTSIDE:
            self._end_word("")
            return

        if self._state == PatMatchEscaperState.NUMBER:
            self._finish_number()
            return

        snippet = self._source[self._literal_start:self._literal_start + 10]
        if self._state in (PatMatchEscaperState.REGEX, PatMatchEscaperState.REGEX_ESCAPED):
            raise PatMatchInvalidPatternError(
                message="Unterminated regular expression literal",
                position=self._literal_start,
                received=f"Regular expression starting with: {snippet}...",
                expected="Closing / at the end of the regular expression",
                example="Correct: /[0-9]+/\nIncorrect: /[0-9]+",
                suggestion="Add a closing / (escape a literal slash as \\/)"
            )

        raise PatMatchInvalidPatternError(
            message="Unterminated string literal",
            position=self._literal_start,
            received=f"String starting with: {snippet}...",
            expected="Closing quote at the end of the string",
            example="Correct: 'member'\nIncorrect: 'member",
            suggestion="Add the matching closing quote"
        )

    def _is_number_start(self, position: int) -> bool:
        """Check whether a numeric literal starts at a position in the outside state."""
        if self._last_emitted in self._IDENTIFIER_CHARS:
            return False

        ch = self._source[position]
        if ch in self._DIGIT_CHARS:
            return True

        next_position = position + 1
        return ch in '+-' and next_position < len(self._source) and self._source[next_position] in self._DIGIT_CHARS

    def _begin_literal(self, state: PatMatchEscaperState, position: int) -> None:
        self._state = state
        self._literal_start = position
        self._buffer = []

    def _add_literal(
        self,
        kind: PatMatchLiteralKind,
        value: Union[str, int, float],
        raw_text: str,
        ignore_case: bool = False
    ) -> None:
        """Record a literal and emit its marker into the template."""
        self._literals.append(PatMatchLiteral(kind, value, raw_text, self._literal_start, ignore_case))
        marker = f"{MARKER_DELIMITER}{kind.value}{len(self._literals)}{MARKER_DELIMITER}"
        self._template.append(marker)
        self._template_length += len(marker)
        self._offsets.extend([self._literal_start] * len(marker))
        self._last_emitted = MARKER_DELIMITER
        self._word_after_space = False
        self._state = PatMatchEscaperState.OUTSIDE

    def _emit(self, ch: str, position: int) -> None:
        """Copy a character from the outside state into the template."""
        if ch in self._IDENTIFIER_CHARS:
            if not self._word:
                self._word_start = self._template_length
                self._word_after_space = self._last_emitted.isspace()

            self._word.append(ch)

        self._template.append(ch)
        self._template_length += 1
        self._offsets.append(position)
        self._last_emitted = ch

    def _end_word(self, following: str) -> None:
        """Close the current identifier word, noting a whitespace-delimited `when`."""
        if not self._word:
            return

        word = "".join(self._word)
        self._word = []
        if self._in_condition() or word != "when":
            return

        if self._word_after_space and self._word_start > 0 and following.isspace():
            self._condition_offset = self._word_start
