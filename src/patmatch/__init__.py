"""PatMatch - Erlang-style structural pattern matching for Python values."""

# Main API
from patmatch.patmatch import PatMatch

# Exceptions (for error handling)
from patmatch.patmatch_error import PatMatchError, PatMatchInvalidPatternError, PatMatchNoMatchError

# Pattern tree and compiled forms
from patmatch.patmatch_pattern import (
    PatMatchPatternNode, PatMatchLiteralString, PatMatchLiteralNumber, PatMatchRegex, PatMatchBindVariable,
    PatMatchRegexGroupBinding, PatMatchSequencePattern, PatMatchMappingPattern, PatMatchCompiledPattern
)
from patmatch.patmatch_condition import PatMatchCondition

# Lower-level components (for advanced usage)
from patmatch.patmatch_cache import PatMatchPatternCache, PatMatchCacheInfo
from patmatch.patmatch_compiler import PatMatchCompiler
from patmatch.patmatch_escaper import PatMatchEscaper, PatMatchEscapedPattern, PatMatchLiteral, PatMatchLiteralKind
from patmatch.patmatch_matcher import PatMatchMatcher, PatMatchScopePolicy


__all__ = [
    # Main API
    "PatMatch",

    # Exceptions
    "PatMatchError", "PatMatchInvalidPatternError", "PatMatchNoMatchError",

    # Pattern tree
    "PatMatchPatternNode", "PatMatchLiteralString", "PatMatchLiteralNumber", "PatMatchRegex",
    "PatMatchBindVariable", "PatMatchRegexGroupBinding", "PatMatchSequencePattern", "PatMatchMappingPattern",
    "PatMatchCompiledPattern", "PatMatchCondition",

    # Lower-level components
    "PatMatchPatternCache", "PatMatchCacheInfo", "PatMatchCompiler", "PatMatchEscaper", "PatMatchEscapedPattern",
    "PatMatchLiteral", "PatMatchLiteralKind", "PatMatchMatcher", "PatMatchScopePolicy"
]
