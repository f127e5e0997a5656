"""Structural matcher for PatMatch pattern trees."""

import re
from enum import Enum
from typing import Any, List, MutableMapping

from patmatch.patmatch_error import PatMatchInvalidPatternError, PatMatchNoMatchError
from patmatch.patmatch_pattern import (
    PatMatchPatternNode, PatMatchLiteralString, PatMatchLiteralNumber, PatMatchRegex,
    PatMatchBindVariable, PatMatchRegexGroupBinding, PatMatchSequencePattern, PatMatchMappingPattern
)
from patmatch.patmatch_value import (
    format_value, is_mapping, is_scalar, is_sequence, type_name, values_equal
)


class PatMatchScopePolicy(Enum):
    """How binding a variable treats an existing scope entry."""
    MUTABLE = "mutable"
    IMMUTABLE = "immutable"


class PatMatchMatcher:
    """
    Unifies a pattern tree with a source value, binding variables into a scope.

    Matching is depth-first and fail-fast: the first mismatch raises
    PatMatchNoMatchError and nothing is retried.  The source value is only
    ever read.
    """

    def __init__(self, policy: PatMatchScopePolicy = PatMatchScopePolicy.MUTABLE):
        """
        Initialize matcher.

        Args:
            policy: Scope policy, fixed for the lifetime of the matcher
        """
        self._policy = policy

    @property
    def policy(self) -> PatMatchScopePolicy:
        """The scope policy of this matcher."""
        return self._policy

    def match(self, tree: PatMatchPatternNode, source: Any, scope: MutableMapping[str, Any]) -> None:
        """
        Match a pattern tree against a source value.

        Args:
            tree: Pattern tree to match
            source: Value to match against
            scope: Scope that receives the bindings

        Raises:
            PatMatchNoMatchError: If the source does not match
            PatMatchInvalidPatternError: If the tree is structurally invalid
        """
        if isinstance(tree, PatMatchBindVariable):
            self._bind_variable(tree, source, scope)
            return

        if isinstance(tree, PatMatchSequencePattern):
            self._match_sequence(tree, source, scope)
            return

        if isinstance(tree, PatMatchMappingPattern):
            self._match_mapping(tree, source, scope)
            return

        if isinstance(tree, (PatMatchLiteralString, PatMatchLiteralNumber)):
            if not values_equal(tree.value, source):
                raise PatMatchNoMatchError(
                    message=f"Value does not match literal {tree.describe()}",
                    received=f"{format_value(source)} ({type_name(source)})",
                    expected=tree.describe()
                )

            return

        if isinstance(tree, PatMatchRegexGroupBinding):
            regex_match = self._match_regex(tree.regex, source)
            groups = ["" if group is None else group for group in regex_match.groups()]
            self._match_sequence(tree.group_pattern, [regex_match.group(0)] + groups, scope)
            return

        if isinstance(tree, PatMatchRegex):
            self._match_regex(tree, source)
            return

        raise PatMatchInvalidPatternError(
            message=f"Unsupported pattern node: {type(tree).__name__}",
            received=repr(tree)
        )

    def bind(self, scope: MutableMapping[str, Any], key: str, value: Any) -> None:
        """
        Bind a value in the scope according to the scope policy.

        Under the mutable policy, or when the key is not yet bound, the value
        is stored.  Under the immutable policy an existing entry must equal the
        new value: scalars by kind and value, sequences element by element.
        Mappings and other objects never compare equal.

        Args:
            scope: Scope to bind into
            key: Variable name
            value: Value to bind

        Raises:
            PatMatchNoMatchError: If the immutable policy rejects the binding
        """
        if self._policy == PatMatchScopePolicy.MUTABLE or key not in scope:
            scope[key] = value
            return

        self._verify_existing(key, scope[key], value)

    def _verify_existing(self, key: str, existing: Any, value: Any) -> None:
        """Check that a value equals an existing immutable binding."""
        if is_scalar(existing) and is_scalar(value):
            if not values_equal(existing, value):
                raise PatMatchNoMatchError(
                    message=f"Value for '{key}' does not match existing value",
                    received=format_value(value),
                    expected=format_value(existing),
                    context="Variables in an immutable scope cannot be rebound to a different value"
                )

            return

        existing_is_sequence = is_sequence(existing)
        value_is_sequence = is_sequence(value)
        if existing_is_sequence != value_is_sequence:
            raise PatMatchNoMatchError(
                message=f"Array/non-array mismatch for '{key}'",
                received=f"{format_value(value)} ({type_name(value)})",
                expected=f"{format_value(existing)} ({type_name(existing)})"
            )

        if existing_is_sequence:
            if len(existing) != len(value):
                raise PatMatchNoMatchError(
                    message=f"Array length mismatch for '{key}'",
                    received=f"{len(value)} elements: {format_value(value)}",
                    expected=f"{len(existing)} elements: {format_value(existing)}"
                )

            for index, (existing_item, item) in enumerate(zip(existing, value)):
                self._verify_existing(f"{key}[{index}]", existing_item, item)

            return

        raise PatMatchNoMatchError(
            message=f"Cannot rebind '{key}': complex values always considered non-matching",
            received=f"{format_value(value)} ({type_name(value)})",
            expected=f"{format_value(existing)} ({type_name(existing)})",
            context="Immutable scopes only compare scalars and sequences"
        )

    def _bind_variable(self, variable: PatMatchBindVariable, value: Any, scope: MutableMapping[str, Any]) -> None:
        if variable.is_discard:
            return

        self.bind(scope, variable.name, value)

    def _match_sequence(self, pattern: PatMatchSequencePattern, source: Any, scope: MutableMapping[str, Any]) -> None:
        """
        Match a sequence pattern, walking from the last position to the first.

        The last position is visited first, so a tail anywhere else is
        rejected before any element is matched.
        """
        if not is_sequence(source):
            raise PatMatchNoMatchError(
                message="Expected a sequence",
                received=f"{format_value(source)} ({type_name(source)})",
                expected=pattern.describe()
            )

        last = pattern.length() - 1
        for index in range(last, -1, -1):
            element = pattern.elements[index]

            if isinstance(element, PatMatchBindVariable) and element.is_tail:
                if index != last:
                    raise PatMatchInvalidPatternError(
                        message=f"Tail variable '{element.name}' must be the last element of a sequence",
                        received=pattern.describe(),
                        example="[first, second | rest]"
                    )

                tail: List[Any] = list(source[index:]) if len(source) > index else []
                self._bind_variable(element, tail, scope)
                continue

            if len(source) <= index:
                raise PatMatchNoMatchError(
                    message=f"Sequence too short: no element at index {index}",
                    received=f"{len(source)} elements: {format_value(source)}",
                    expected=f"At least {index + 1} elements: {pattern.describe()}"
                )

            self.match(element, source[index], scope)

    def _match_mapping(self, pattern: PatMatchMappingPattern, source: Any, scope: MutableMapping[str, Any]) -> None:
        """Match every key of a mapping pattern against a mapping or object."""
        if is_scalar(source) or is_sequence(source):
            raise PatMatchNoMatchError(
                message="Expected a mapping or object",
                received=f"{format_value(source)} ({type_name(source)})",
                expected=pattern.describe()
            )

        for key, element in pattern.entries:
            self.match(element, self._lookup(source, key, pattern), scope)

    def _lookup(self, source: Any, key: str, pattern: PatMatchMappingPattern) -> Any:
        """Fetch a key from a mapping, or an attribute from an object."""
        if is_mapping(source):
            try:
                return source[key]

            except KeyError as e:
                raise PatMatchNoMatchError(
                    message=f"Missing key: {key}",
                    received=f"Keys: {format_value(list(source))}",
                    expected=pattern.describe()
                ) from e

            except Exception as e:
                raise PatMatchNoMatchError(
                    message=f"Lookup of key {key} failed: {type(e).__name__}: {e}",
                    received=type_name(source),
                    expected=pattern.describe()
                ) from e

        try:
            return getattr(source, key)

        except AttributeError as e:
            raise PatMatchNoMatchError(
                message=f"Missing attribute: {key}",
                received=f"{format_value(source)} ({type_name(source)})",
                expected=pattern.describe()
            ) from e

        except Exception as e:
            raise PatMatchNoMatchError(
                message=f"Lookup of attribute {key} failed: {type(e).__name__}: {e}",
                received=type_name(source),
                expected=pattern.describe()
            ) from e

    def _match_regex(self, regex: PatMatchRegex, source: Any) -> re.Match:
        """Match a regex against the whole source string."""
        case = "case-insensitive" if regex.ignore_case else "case-sensitive"
        if not isinstance(source, str):
            raise PatMatchNoMatchError(
                message=f"Regular expression {regex.describe()} ({case}) requires a string",
                received=f"{format_value(source)} ({type_name(source)})",
                expected="string"
            )

        regex_match = regex.full_match(source)
        if regex_match is None:
            raise PatMatchNoMatchError(
                message=f"String does not match regular expression {regex.describe()} ({case})",
                received=format_value(source),
                expected=f"Whole string matching {regex.describe()}"
            )

        return regex_match
