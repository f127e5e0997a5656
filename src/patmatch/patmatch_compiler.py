"""Compiles PatMatch pattern strings into pattern trees and conditions."""

import logging

from patmatch.patmatch_cache import PatMatchPatternCache
from patmatch.patmatch_condition import PatMatchCondition
from patmatch.patmatch_condition_parser import PatMatchConditionParser, PatMatchConditionTokenizer
from patmatch.patmatch_error import PatMatchInvalidPatternError
from patmatch.patmatch_escaper import PatMatchEscaper
from patmatch.patmatch_parser import PatMatchParser
from patmatch.patmatch_pattern import PatMatchCompiledPattern
from patmatch.patmatch_tokenizer import PatMatchTokenizer


WHEN_KEYWORD = "when"


class PatMatchCompiler:
    """
    Turns pattern-condition strings into compiled patterns.

    The pipeline is: escape literals, split off the `when` condition,
    tokenize and parse the pattern, then parse the condition against the
    variables the pattern binds.  Results are memoized in a cache owned by
    the compiler.
    """

    def __init__(self, cache: PatMatchPatternCache | None = None) -> None:
        """
        Initialize compiler.

        Args:
            cache: Cache to memoize compiled patterns in.  A new one is created if omitted.
        """
        self.cache = cache if cache is not None else PatMatchPatternCache()
        self._logger = logging.getLogger("PatMatchCompiler")

    def compile(self, pattern_text: str) -> PatMatchCompiledPattern:
        """
        Compile a pattern string, using the cache.

        Args:
            pattern_text: Pattern, optionally followed by ` when <condition>`

        Returns:
            The compiled pattern.  Identical texts return the identical object.

        Raises:
            PatMatchInvalidPatternError: If the pattern or condition is malformed
        """
        if not isinstance(pattern_text, str):
            raise PatMatchInvalidPatternError(
                message="Pattern must be a string",
                received=f"{type(pattern_text).__name__}: {pattern_text!r}",
                example="patmatch.match('[a, b | rest]', [1, 2, 3])"
            )

        return self.cache.get_or_compile(pattern_text, self._compile_uncached)

    def _compile_uncached(self, pattern_text: str, fingerprint: str) -> PatMatchCompiledPattern:
        """Run the full compilation pipeline for a cache miss."""
        try:
            escaped = PatMatchEscaper().escape(pattern_text)

            pattern_end = len(escaped.template)
            condition_start: int | None = None
            if escaped.condition_offset is not None:
                pattern_end = escaped.condition_offset
                when_position = escaped.source_offsets[escaped.condition_offset]
                condition_start = when_position + len(WHEN_KEYWORD)

            tokens = PatMatchTokenizer().tokenize(escaped.template[:pattern_end], escaped.source_offsets)
            tree = PatMatchParser(tokens, escaped, pattern_text).parse()

            condition = None
            if condition_start is not None:
                # Condition literals are re-read from the pattern text itself
                condition_text = pattern_text[condition_start:]
                condition_tokens = PatMatchConditionTokenizer().tokenize(condition_text, condition_start)
                expr = PatMatchConditionParser(condition_tokens, condition_text, set(tree.variable_names())).parse()
                condition = PatMatchCondition(condition_text.strip(), expr)

        except PatMatchInvalidPatternError as e:
            self._logger.debug("Invalid pattern %r: %s", pattern_text, e.message)
            raise

        return PatMatchCompiledPattern(pattern_text, fingerprint, tree, condition)
