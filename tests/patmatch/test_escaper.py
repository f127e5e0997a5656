"""Tests for the literal escaper."""

import pytest

from patmatch import PatMatchEscaper, PatMatchInvalidPatternError, PatMatchLiteralKind


class TestEscaper:
    """Test literal extraction and marker generation."""

    def test_no_literals(self):
        """Test that text without literals passes through unchanged."""
        escaped = PatMatchEscaper().escape("[a, b | rest]")
        assert escaped.template == "[a, b | rest]"
        assert escaped.literals == ()
        assert escaped.condition_offset is None

    def test_single_and_double_quotes_normalize(self):
        """Test that both quote styles produce the same string literal kind."""
        escaped = PatMatchEscaper().escape("['a', \"b\"]")
        assert escaped.template == "[\x00S1\x00, \x00S2\x00]"
        assert [literal.kind for literal in escaped.literals] == [PatMatchLiteralKind.STRING] * 2
        assert [literal.value for literal in escaped.literals] == ["a", "b"]
        assert escaped.literals[0].raw_text == "'a'"
        assert escaped.literals[1].raw_text == '"b"'

    @pytest.mark.parametrize("source,expected", [
        ("'it\\'s'", "it's"),
        ('"say \\"hi\\""', 'say "hi"'),
        ("'back\\\\slash'", "back\\slash"),
        ("'line\\nbreak'", "line\nbreak"),
        ("'tab\\there'", "tab\there"),
        ("'a]b'", "a]b"),
        ("'when'", "when"),
    ])
    def test_string_escapes(self, source, expected):
        """Test that escape sequences in strings are decoded."""
        escaped = PatMatchEscaper().escape(source)
        assert escaped.literals[0].value == expected

    @pytest.mark.parametrize("source,expected", [
        ("42", 42),
        ("-7", -7),
        ("+3", 3),
        ("3.14", 3.14),
        ("1e3", 1000.0),
        ("-2.5E-1", -0.25),
        ("0", 0),
    ])
    def test_numbers(self, source, expected):
        """Test numeric literal extraction and conversion."""
        escaped = PatMatchEscaper().escape(source)
        assert escaped.template == "\x00N1\x00"
        assert escaped.literals[0].kind == PatMatchLiteralKind.NUMBER
        assert escaped.literals[0].value == expected
        assert type(escaped.literals[0].value) is type(expected)

    def test_number_terminator_is_not_consumed(self):
        """Test that the character ending a number is kept in the template."""
        escaped = PatMatchEscaper().escape("[1,2]")
        assert escaped.template == "[\x00N1\x00,\x00N2\x00]"
        assert [literal.value for literal in escaped.literals] == [1, 2]

    def test_digits_inside_identifiers_are_not_numbers(self):
        """Test that digits continuing an identifier stay part of it."""
        escaped = PatMatchEscaper().escape("[x1, item_2]")
        assert escaped.template == "[x1, item_2]"
        assert escaped.literals == ()

    def test_regex_literal(self):
        """Test regex extraction with and without the case-insensitive flag."""
        escaped = PatMatchEscaper().escape("[/ab+c/, /x\\/y/i]")
        assert escaped.template == "[\x00R1\x00, \x00R2\x00]"

        first, second = escaped.literals
        assert first.kind == PatMatchLiteralKind.REGEX
        assert first.value == "ab+c"
        assert first.ignore_case is False
        assert second.value == "x\\/y"
        assert second.ignore_case is True
        assert second.raw_text == "/x\\/y/i"

    def test_double_quote_inside_regex(self):
        """Test that a double quote inside a regex never reaches the template."""
        escaped = PatMatchEscaper().escape('/say "[a-z]+"/')
        assert escaped.template == "\x00R1\x00"
        assert escaped.literals[0].value == 'say "[a-z]+"'

    def test_when_detection(self):
        """Test that the first whitespace-delimited when is recorded."""
        escaped = PatMatchEscaper().escape("k when k > 1")
        assert escaped.condition_offset == 2
        assert escaped.template[escaped.condition_offset:escaped.condition_offset + 4] == "when"

    @pytest.mark.parametrize("source", [
        "[whenever]",
        "{when_x = 1}",
        "'a when b'",
        "/x when y/",
        "x when",
    ])
    def test_when_not_detected(self, source):
        """Test that when inside literals, identifiers or at the end is not a separator."""
        assert PatMatchEscaper().escape(source).condition_offset is None

    def test_condition_keeps_arithmetic(self):
        """Test that slashes and signs after when are not treated as literals."""
        escaped = PatMatchEscaper().escape("[a, b] when a / 2 > -1 and b == 'x'")
        kinds = [literal.kind for literal in escaped.literals]
        assert kinds == [PatMatchLiteralKind.STRING]
        assert "/ 2 > -1" in escaped.template

    def test_source_offsets_map_back_to_text(self):
        """Test that every template character maps to its position in the source."""
        escaped = PatMatchEscaper().escape("['abc', x]")
        assert len(escaped.source_offsets) == len(escaped.template)
        x_index = escaped.template.index("x")
        assert escaped.source_offsets[x_index] == 8

    @pytest.mark.parametrize("source,message", [
        ("'unterminated", "Unterminated string literal"),
        ('["open', "Unterminated string literal"),
        ("/[0-9]+", "Unterminated regular expression literal"),
        ("'bad\\q'", "Invalid escape sequence"),
        ("1-2", "Malformed numeric literal"),
        ("1.2.3", "Malformed numeric literal"),
        ("1e", "Malformed numeric literal"),
        ("a\x00b", "Invalid control character"),
    ])
    def test_invalid_literals(self, source, message):
        """Test that unterminated and malformed literals are rejected."""
        with pytest.raises(PatMatchInvalidPatternError, match=message):
            PatMatchEscaper().escape(source)

    def test_unterminated_error_reports_position(self):
        """Test that an unterminated literal reports where it started."""
        with pytest.raises(PatMatchInvalidPatternError) as exc_info:
            PatMatchEscaper().escape("[a, 'b]")

        assert exc_info.value.position == 4
