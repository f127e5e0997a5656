"""Shared fixtures and utilities for PatMatch tests."""

from typing import Any, Dict

import pytest

from patmatch import PatMatch, PatMatchNoMatchError


@pytest.fixture
def patmatch():
    """Create a fresh PatMatch engine with a mutable scope for each test."""
    return PatMatch()


@pytest.fixture
def patmatch_immutable():
    """Create a fresh PatMatch engine with an immutable scope for each test."""
    return PatMatch(mutable_scope=False)


class PatMatchTestHelpers:
    """Helper utilities for PatMatch testing."""

    @staticmethod
    def assert_binds(engine: PatMatch, pattern: str, source: Any, expected: Dict[str, Any]) -> None:
        """Assert that matching binds exactly the expected variables in a fresh scope."""
        result = engine.match(pattern, source)
        assert dict(result) == expected, f"Expected bindings {expected!r} for {pattern!r}, got {dict(result)!r}"

    @staticmethod
    def assert_no_match(engine: PatMatch, pattern: str, source: Any) -> None:
        """Assert that matching fails with a no-match error."""
        with pytest.raises(PatMatchNoMatchError):
            engine.match(pattern, source)


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return PatMatchTestHelpers
