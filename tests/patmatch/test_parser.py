"""Tests for pattern compilation: tokenizing, parsing and the resulting trees."""

import pytest

from patmatch import (
    PatMatchBindVariable, PatMatchInvalidPatternError, PatMatchLiteralNumber, PatMatchLiteralString,
    PatMatchMappingPattern, PatMatchRegex, PatMatchRegexGroupBinding, PatMatchSequencePattern
)
from patmatch.patmatch_escaper import PatMatchEscaper
from patmatch.patmatch_token import PatMatchTokenType
from patmatch.patmatch_tokenizer import PatMatchTokenizer


class TestTokenizer:
    """Test tokenizing of escaped templates."""

    def test_structural_tokens(self):
        """Test that punctuation, identifiers and markers become tokens."""
        escaped = PatMatchEscaper().escape("{a = [x, 'y' | t]}")
        tokens = PatMatchTokenizer().tokenize(escaped.template, escaped.source_offsets)

        assert [token.type for token in tokens] == [
            PatMatchTokenType.LBRACE,
            PatMatchTokenType.IDENTIFIER,
            PatMatchTokenType.EQUALS,
            PatMatchTokenType.LBRACKET,
            PatMatchTokenType.IDENTIFIER,
            PatMatchTokenType.COMMA,
            PatMatchTokenType.LITERAL,
            PatMatchTokenType.PIPE,
            PatMatchTokenType.IDENTIFIER,
            PatMatchTokenType.RBRACKET,
            PatMatchTokenType.RBRACE,
        ]

    def test_literal_token_carries_index_and_source_position(self):
        """Test that literal markers resolve to their index and original position."""
        escaped = PatMatchEscaper().escape("['first', 'second']")
        tokens = PatMatchTokenizer().tokenize(escaped.template, escaped.source_offsets)

        literal_tokens = [token for token in tokens if token.type == PatMatchTokenType.LITERAL]
        assert [token.value for token in literal_tokens] == [1, 2]
        assert [token.position for token in literal_tokens] == [1, 10]

    @pytest.mark.parametrize("pattern,bad_char,suggestion", [
        ("{a: b}", ":", "Use '='"),
        ("(a, b)", "(", "square brackets"),
        ("$name", "$", "no sigil"),
        ("[a.b]", ".", "Numbers must start with a digit"),
    ])
    def test_invalid_characters(self, pattern, bad_char, suggestion):
        """Test that characters with no meaning in a pattern are rejected with a hint."""
        escaped = PatMatchEscaper().escape(pattern)
        with pytest.raises(PatMatchInvalidPatternError, match=f"Invalid character in pattern: \\{bad_char}") as exc_info:
            PatMatchTokenizer().tokenize(escaped.template, escaped.source_offsets)

        assert suggestion in exc_info.value.suggestion


class TestPatternTrees:
    """Test the pattern trees produced by the compiler."""

    def test_discard(self, patmatch):
        """Test that _ compiles to a discard variable."""
        tree = patmatch.compile("_").tree
        assert tree == PatMatchBindVariable("_")
        assert tree.is_discard
        assert tree.variable_names() == []

    def test_variable(self, patmatch):
        """Test that a bare identifier compiles to a binding variable."""
        assert patmatch.compile("  name  ").tree == PatMatchBindVariable("name")

    def test_literals(self, patmatch):
        """Test that string and numeric literals compile to literal nodes."""
        assert patmatch.compile("'member'").tree == PatMatchLiteralString("member")
        assert patmatch.compile('"member"').tree == PatMatchLiteralString("member")
        assert patmatch.compile("42").tree == PatMatchLiteralNumber(42)
        assert patmatch.compile("-1.5").tree == PatMatchLiteralNumber(-1.5)

    def test_sequence_with_tail(self, patmatch):
        """Test that a tail marker becomes the final tail variable."""
        tree = patmatch.compile("[a, b | rest]").tree
        assert tree == PatMatchSequencePattern((
            PatMatchBindVariable("a"),
            PatMatchBindVariable("b"),
            PatMatchBindVariable("rest", is_tail=True),
        ))
        assert tree.has_tail()
        assert tree.length() == 3
        assert tree.variable_names() == ["a", "b", "rest"]
        assert str(tree) == "[a, b | rest]"

    @pytest.mark.parametrize("pattern,expected", [
        ("[]", PatMatchSequencePattern(())),
        ("[| t]", PatMatchSequencePattern((PatMatchBindVariable("t", is_tail=True),))),
        ("[a, | t]", PatMatchSequencePattern((PatMatchBindVariable("a"), PatMatchBindVariable("t", is_tail=True)))),
        ("[[a]]", PatMatchSequencePattern((PatMatchSequencePattern((PatMatchBindVariable("a"),)),))),
    ])
    def test_sequence_shapes(self, patmatch, pattern, expected):
        """Test empty, tail-only, trailing-comma-before-tail and nested sequences."""
        assert patmatch.compile(pattern).tree == expected

    def test_mapping(self, patmatch):
        """Test that mapping entries keep their order and patterns."""
        tree = patmatch.compile("{type = 'member', name = n}").tree
        assert tree == PatMatchMappingPattern((
            ("type", PatMatchLiteralString("member")),
            ("name", PatMatchBindVariable("n")),
        ))
        assert tree.variable_names() == ["n"]
        assert str(tree) == "{type = 'member', name = n}"

    def test_mapping_string_keys(self, patmatch):
        """Test that quoted strings can be used as mapping keys."""
        tree = patmatch.compile("{'first name' = f, \"id\" = 7}").tree
        assert tree.entries == (
            ("first name", PatMatchBindVariable("f")),
            ("id", PatMatchLiteralNumber(7)),
        )
        assert str(tree) == "{'first name' = f, id = 7}"

    def test_empty_mapping(self, patmatch):
        """Test that an empty mapping pattern compiles."""
        assert patmatch.compile("{}").tree == PatMatchMappingPattern(())

    def test_regex(self, patmatch):
        """Test that a regex literal is pre-compiled with its flags."""
        tree = patmatch.compile("/abc/i").tree
        assert isinstance(tree, PatMatchRegex)
        assert tree.source == "abc"
        assert tree.ignore_case is True
        assert tree.full_match("ABC") is not None
        assert str(tree) == "/abc/i"

    def test_regex_group_binding(self, patmatch):
        """Test that a regex followed by a sequence binds capture groups."""
        tree = patmatch.compile("/([0-9]+) ([0-9 ]+)/ [_, area, number]").tree
        assert isinstance(tree, PatMatchRegexGroupBinding)
        assert tree.regex.source == "([0-9]+) ([0-9 ]+)"
        assert tree.group_pattern.variable_names() == ["area", "number"]

    def test_nested_variable_names(self, patmatch):
        """Test that variable names are collected in pattern order."""
        tree = patmatch.compile("[{name = n, tags = [first | more]}, _, /(x)/ [_, g]]").tree
        assert tree.variable_names() == ["n", "first", "more", "g"]

    def test_pattern_text_is_kept(self, patmatch):
        """Test that the compiled pattern records the text it came from."""
        compiled = patmatch.compile("[a] when a > 1")
        assert compiled.pattern_text == "[a] when a > 1"
        assert compiled.condition is not None
        assert compiled.condition.text == "a > 1"


class TestPatternSyntaxErrors:
    """Test rejection of malformed patterns."""

    @pytest.mark.parametrize("pattern,message", [
        ("", "Empty pattern"),
        ("   ", "Empty pattern"),
        ("[a, b", "Unterminated pattern - missing 1 closing bracket"),
        ("[{a = b", "Unterminated pattern - missing 2 closing brackets"),
        ("[a, b]]", "Unexpected token after complete pattern"),
        ("[a] b", "Unexpected token after complete pattern"),
        ("[a b]", "Missing comma between sequence elements"),
        ("[a,]", "Trailing comma in sequence pattern"),
        ("[a | t, b]", "Tail variable must be the last element of a sequence"),
        ("[a | t u]", "Tail variable must be the last element of a sequence"),
        ("[a |]", "Tail marker must be followed by a variable name"),
        ("[a | 'x']", "Tail marker must be followed by a variable name"),
        ("| t", "Unexpected token"),
        ("]", "Unexpected token"),
        ("{a = 1, a = 2}", "Duplicate mapping key: a"),
        ("{1 = a}", "Invalid mapping key: 1"),
        ("{a}", "Missing '=' after mapping key: a"),
        ("{a = 1 b = 2}", "Missing comma between mapping entries"),
        ("/[/", "Invalid regular expression"),
        ("/(a/ [_]", "Invalid regular expression"),
    ])
    def test_malformed_patterns(self, patmatch, pattern, message):
        """Test that structural errors raise invalid-pattern errors."""
        with pytest.raises(PatMatchInvalidPatternError, match=message):
            patmatch.compile(pattern)

    def test_error_position_refers_to_pattern_text(self, patmatch):
        """Test that positions account for literals lifted out of the text."""
        with pytest.raises(PatMatchInvalidPatternError) as exc_info:
            patmatch.compile("['long literal' x]")

        assert exc_info.value.position == 16

    def test_unterminated_error_names_pattern(self, patmatch):
        """Test that unterminated patterns report the opening bracket and the pattern."""
        with pytest.raises(PatMatchInvalidPatternError) as exc_info:
            patmatch.compile("[a, [b]")

        assert exc_info.value.position == 0
        assert exc_info.value.context == "Pattern: [a, [b]"

    def test_regex_error_reports_cause(self, patmatch):
        """Test that a regex compile failure carries the regex engine's message."""
        with pytest.raises(PatMatchInvalidPatternError) as exc_info:
            patmatch.compile("[x, /a{2,1}/]")

        assert exc_info.value.position == 4
        assert exc_info.value.context

    def test_non_string_pattern(self, patmatch):
        """Test that a pattern that is not a string is rejected."""
        with pytest.raises(PatMatchInvalidPatternError, match="Pattern must be a string"):
            patmatch.compile(["a"])
