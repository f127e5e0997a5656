"""Main PatMatch class: Erlang-style pattern matching for Python values."""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, MutableMapping, Tuple, Union

from patmatch.patmatch_cache import PatMatchCacheInfo
from patmatch.patmatch_compiler import PatMatchCompiler
from patmatch.patmatch_error import PatMatchInvalidPatternError, PatMatchNoMatchError
from patmatch.patmatch_matcher import PatMatchMatcher, PatMatchScopePolicy
from patmatch.patmatch_pattern import PatMatchCompiledPattern
from patmatch.patmatch_value import format_value


GuardClauses = Union[Mapping, Iterable[Any]]


class PatMatch:
    """
    Pattern matching engine with destructuring, assertions, guards and dispatch.

    Patterns are strings such as:
    - `[a, b | rest]` binds the first two elements and the remaining list
    - `{type = 'member', name = n}` asserts a key and binds another
    - `/([0-9]+) ([0-9 ]+)/ [_, area, number]` binds regex capture groups
    - `k when k > 1` adds a guard condition over the bound variables

    Each engine owns its own compiled pattern cache.  With a mutable scope,
    bindings overwrite existing scope entries; with an immutable scope, an
    existing entry must equal the newly matched value.
    """

    def __init__(self, mutable_scope: bool = True):
        """
        Initialize pattern matching engine.

        Args:
            mutable_scope: If False, variables already bound in a scope are
                compared against rather than overwritten
        """
        self._logger = logging.getLogger("PatMatch")
        self._compiler = PatMatchCompiler()
        self._matcher = PatMatchMatcher(self._policy(mutable_scope))

    @staticmethod
    def _policy(mutable_scope: bool) -> PatMatchScopePolicy:
        return PatMatchScopePolicy.MUTABLE if mutable_scope else PatMatchScopePolicy.IMMUTABLE

    @property
    def mutable_scope(self) -> bool:
        """True if bindings overwrite existing scope entries."""
        return self._matcher.policy == PatMatchScopePolicy.MUTABLE

    def set_mutable_scope(self, mutable_scope: bool) -> None:
        """
        Change the scope policy for subsequent matches.

        Args:
            mutable_scope: True to overwrite existing bindings, False to verify them
        """
        self._matcher = PatMatchMatcher(self._policy(mutable_scope))

    def compile(self, pattern: str) -> PatMatchCompiledPattern:
        """
        Compile a pattern without matching it.

        Args:
            pattern: Pattern text, optionally followed by ` when <condition>`

        Returns:
            The cached compiled pattern

        Raises:
            PatMatchInvalidPatternError: If the pattern or condition is malformed
        """
        return self._compiler.compile(pattern)

    def cache_info(self) -> PatMatchCacheInfo:
        """Return hit, miss and size counters of this engine's pattern cache."""
        return self._compiler.cache.info()

    def match(
        self,
        pattern: str,
        source: Any,
        scope: MutableMapping[str, Any] | None = None
    ) -> MutableMapping[str, Any]:
        """
        Match a source value against a pattern.

        Args:
            pattern: Pattern text, optionally followed by ` when <condition>`
            source: Value to match
            scope: Scope to bind variables into.  A new dict is used if omitted.

        Returns:
            The scope with the pattern's variables bound

        Raises:
            PatMatchNoMatchError: If the source does not match or the condition fails
            PatMatchInvalidPatternError: If the pattern or condition is malformed
        """
        compiled = self._compiler.compile(pattern)
        if scope is None:
            scope = {}

        if compiled.condition is None:
            self._matcher.match(compiled.tree, source, scope)
            return scope

        # Bind into a temporary scope so a failed condition leaves the caller's scope alone
        bindings: Dict[str, Any] = {} if self.mutable_scope else dict(scope)
        self._matcher.match(compiled.tree, source, bindings)

        if not compiled.condition.evaluate(bindings):
            matched = {name: bindings[name] for name in compiled.tree.variable_names() if name in bindings}
            raise PatMatchNoMatchError(
                message=f"Condition not met: {compiled.condition.text}",
                received=f"Bindings: {format_value(matched)}",
                context=f"Pattern: {pattern}"
            )

        scope.update(bindings)
        return scope

    def guard(self, source: Any, clauses: GuardClauses) -> Any:
        """
        Dispatch a source value to the first clause whose pattern matches.

        Clauses can be given as a mapping of pattern to action, a sequence of
        (pattern, action) pairs, or a flat list alternating patterns and actions.
        The matching action is called with the bound variables as keyword arguments.

        Args:
            source: Value to match
            clauses: Ordered patterns and actions

        Returns:
            The result of the first matching action, or None if no clause matched

        Raises:
            PatMatchInvalidPatternError: If the clauses or a tried pattern are malformed
        """
        for index, (pattern, action) in enumerate(self._normalize_clauses(clauses), 1):
            try:
                bindings = self.match(pattern, source)

            except PatMatchNoMatchError as e:
                self._logger.debug("Guard clause %d (%s) did not match: %s", index, pattern, e.message)
                continue

            self._logger.debug("Guard clause %d (%s) matched", index, pattern)
            return action(**bindings)

        return None

    def _normalize_clauses(self, clauses: GuardClauses) -> List[Tuple[str, Callable[..., Any]]]:
        """
        Validate guard clauses upfront and return them as (pattern, action) pairs.

        Raises:
            PatMatchInvalidPatternError: If the clause list is malformed
        """
        if isinstance(clauses, Mapping):
            pairs = list(clauses.items())

        else:
            items = list(clauses)
            if items and isinstance(items[0], str):
                if len(items) % 2 != 0:
                    raise PatMatchInvalidPatternError(
                        message="Guard clause list has an odd number of elements",
                        received=f"{len(items)} elements",
                        expected="Alternating patterns and actions: [pattern1, action1, pattern2, action2]",
                        suggestion="Every pattern needs an action"
                    )

                pairs = list(zip(items[0::2], items[1::2]))

            else:
                pairs = []
                for number, item in enumerate(items, 1):
                    if not isinstance(item, (tuple, list)) or len(item) != 2:
                        raise PatMatchInvalidPatternError(
                            message=f"Guard clause {number} must be a (pattern, action) pair",
                            received=f"Clause {number}: {format_value(item)}",
                            example="[('[x]', lambda x: x), ('_', lambda: None)]"
                        )

                    pairs.append((item[0], item[1]))

        for number, (pattern, action) in enumerate(pairs, 1):
            if not isinstance(pattern, str):
                raise PatMatchInvalidPatternError(
                    message=f"Guard clause {number} pattern must be a string",
                    received=f"Pattern: {format_value(pattern)}"
                )

            if not callable(action):
                raise PatMatchInvalidPatternError(
                    message=f"Guard clause {number} action must be callable",
                    received=f"Action for {pattern}: {format_value(action)}",
                    suggestion="Wrap constant results in a lambda: lambda: value"
                )

        return pairs
