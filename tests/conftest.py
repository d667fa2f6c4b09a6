"""
conftest.py - Shared pytest fixtures for tokenprops tests

Provides common fixtures used across unit, conformance and functional tests:
- A fresh reference token and its account state
- An adapter wrapping the reference token
- Exploration settings small enough for a test run, and a wider variant
- An explorer over the reference token
"""

import pytest

from tokenprops import (
    AccountState,
    ExplorationSettings,
    Explorer,
    ReferenceToken,
    SubjectAdapter,
)


# Named addresses used throughout the tests.
ALICE = 0x10
BOB = 0x20
CAROL = 0x30
DAVE = 0x40


# =============================================================================
# SUBJECT FIXTURES
# =============================================================================

@pytest.fixture
def state():
    """Empty account state."""
    return AccountState()


@pytest.fixture
def token(state):
    """Reference token over the `state` fixture."""
    return ReferenceToken(state)


@pytest.fixture
def funded_token(token):
    """Reference token with ALICE=1000, BOB=500, supply 1500."""
    token.mint(ALICE, 1000)
    token.mint(BOB, 500)
    return token


@pytest.fixture
def adapter(token):
    return SubjectAdapter(token)


# =============================================================================
# EXPLORATION FIXTURES
# =============================================================================

@pytest.fixture
def fast_settings():
    """Deterministic, small search for test runs."""
    return ExplorationSettings(max_examples=60, time_budget=60.0, derandomize=True)


@pytest.fixture
def detection_settings():
    """Deterministic search wide enough to reach narrow preconditions."""
    return ExplorationSettings(max_examples=200, time_budget=60.0, derandomize=True)


@pytest.fixture
def explorer(fast_settings):
    """Explorer over fresh ReferenceToken instances."""
    return Explorer(ReferenceToken, fast_settings)
