"""Tests for guard multi-clause dispatch."""

import pytest

from patmatch import PatMatchInvalidPatternError


def classify(patmatch, value):
    return patmatch.guard(value, [
        ("n when n < 0", lambda n: "negative"),
        ("n when n == 0", lambda n: "zero"),
        ("[_ | _]", lambda: "sequence"),
        ("_", lambda: "other"),
    ])


class TestGuardDispatch:
    """Test clause selection and action invocation."""

    @pytest.mark.parametrize("value,expected", [
        (-5, "negative"),
        (0, "zero"),
        ([1, 2], "sequence"),
        (7, "other"),
        ("text", "other"),
    ])
    def test_first_matching_clause_wins(self, patmatch, value, expected):
        """Test that clauses are tried in order and the first match is used."""
        assert classify(patmatch, value) == expected

    def test_action_receives_bindings(self, patmatch):
        """Test that the matching action is called with the bound variables."""
        result = patmatch.guard([1, 2, 3], [
            ("[a, b | rest]", lambda a, b, rest: (a + b, rest)),
        ])
        assert result == (3, [3])

    def test_only_first_match_runs(self, patmatch):
        """Test that later matching clauses are not invoked."""
        calls = []
        patmatch.guard(1, [
            ("x", lambda x: calls.append("first")),
            ("y", lambda y: calls.append("second")),
        ])
        assert calls == ["first"]

    def test_mapping_clauses(self, patmatch):
        """Test that clauses can be given as an ordered mapping."""
        clauses = {
            "{type = 'member', name = n}": lambda n: f"member {n}",
            "{type = 'guest'}": lambda: "guest",
        }
        assert patmatch.guard({"type": "member", "name": "Ann"}, clauses) == "member Ann"
        assert patmatch.guard({"type": "guest"}, clauses) == "guest"

    def test_flat_clause_list(self, patmatch):
        """Test that clauses can alternate patterns and actions in a flat list."""
        clauses = [
            "['add', x, y]", lambda x, y: x + y,
            "['mul', x, y]", lambda x, y: x * y,
        ]
        assert patmatch.guard(["add", 2, 3], clauses) == 5
        assert patmatch.guard(["mul", 2, 3], clauses) == 6

    def test_no_clause_matches(self, patmatch):
        """Test that guard returns None when nothing matches."""
        assert patmatch.guard("text", [("[a]", lambda a: a), ("{k = v}", lambda v: v)]) is None

    def test_empty_clauses(self, patmatch):
        """Test that an empty clause list matches nothing."""
        assert patmatch.guard(1, []) is None
        assert patmatch.guard(1, {}) is None

    def test_action_may_return_none(self, patmatch):
        """Test that a matching action returning None is indistinguishable from no match."""
        assert patmatch.guard(1, [("x", lambda x: None)]) is None

    def test_each_clause_gets_a_fresh_scope(self, patmatch):
        """Test that bindings from a failed clause never reach a later action."""
        result = patmatch.guard([1, "x"], [
            ("[a, 2]", lambda a: "wrong"),
            ("[b, c]", lambda **bindings: bindings),
        ])
        assert result == {"b": 1, "c": "x"}

    def test_immutable_engine(self, patmatch_immutable):
        """Test that repeated variables must agree under an immutable scope."""
        clauses = [
            ("[x, x]", lambda x: "pair"),
            ("[x, y]", lambda x, y: "distinct"),
        ]
        assert patmatch_immutable.guard([1, 1], clauses) == "pair"
        assert patmatch_immutable.guard([1, 2], clauses) == "distinct"

    def test_failing_lookups_move_to_next_clause(self, patmatch):
        """Test that sources whose lookups raise fall through to later clauses."""
        class Unloaded:
            @property
            def name(self):
                raise ValueError("not loaded")

        class BrokenMapping(dict):
            def __getitem__(self, key):
                raise RuntimeError("backend unavailable")

        clauses = [
            ("{name = n}", lambda n: n),
            ("_", lambda: "fallback"),
        ]
        assert patmatch.guard(Unloaded(), clauses) == "fallback"
        assert patmatch.guard(BrokenMapping(name=1), clauses) == "fallback"

    def test_action_errors_propagate(self, patmatch):
        """Test that exceptions raised by an action are not swallowed."""
        def fail(x):
            raise ValueError(f"bad {x}")

        with pytest.raises(ValueError, match="bad 1"):
            patmatch.guard(1, [("x", fail), ("_", lambda: "fallback")])


class TestGuardErrors:
    """Test malformed clauses and patterns."""

    def test_invalid_pattern_propagates(self, patmatch):
        """Test that an invalid pattern aborts dispatch instead of being skipped."""
        with pytest.raises(PatMatchInvalidPatternError, match="Unterminated pattern"):
            patmatch.guard(1, [("[a", lambda a: a), ("_", lambda: "fallback")])

    def test_untried_pattern_is_not_compiled(self, patmatch):
        """Test that patterns after the matching clause are never compiled."""
        assert patmatch.guard(1, [("x", lambda x: x), ("[a", lambda a: a)]) == 1

    def test_odd_flat_list(self, patmatch):
        """Test that a flat list needs an action for every pattern."""
        with pytest.raises(PatMatchInvalidPatternError, match="odd number of elements"):
            patmatch.guard(1, ["x", lambda x: x, "_"])

    def test_clause_not_a_pair(self, patmatch):
        """Test that clause entries must be (pattern, action) pairs."""
        with pytest.raises(PatMatchInvalidPatternError, match="Guard clause 2 must be a \\(pattern, action\\) pair"):
            patmatch.guard(1, [("x", lambda x: x), ("_",)])

    def test_pattern_not_a_string(self, patmatch):
        """Test that clause patterns must be strings."""
        with pytest.raises(PatMatchInvalidPatternError, match="Guard clause 1 pattern must be a string"):
            patmatch.guard(1, [(42, lambda: None)])

    def test_action_not_callable(self, patmatch):
        """Test that clause actions must be callable, checked before matching."""
        with pytest.raises(PatMatchInvalidPatternError, match="Guard clause 2 action must be callable"):
            patmatch.guard(1, [("x", lambda x: x), ("_", "fallback")])
