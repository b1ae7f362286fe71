"""
Core Test Configuration and Fixtures

Fixtures shared across core tests (retry, reachability, state machine,
instance lock, logging).

To use pytest:
    pip install pytest
    pytest tests/core/
"""

import pytest


# =============================================================================
# TIMING FIXTURES
# =============================================================================

@pytest.fixture
def fake_sleep():
    """
    Provide a sleep replacement that records requested delays.

    Usage:
        def test_something(fake_sleep):
            retry(op, sleep=fake_sleep)
            assert fake_sleep.delays == [1.0, 1.0]
    """
    class FakeSleep:
        def __init__(self):
            self.delays = []

        def __call__(self, seconds):
            self.delays.append(seconds)

        @property
        def total(self) -> float:
            return sum(self.delays)

    return FakeSleep()


@pytest.fixture
def scripted():
    """
    Provide a factory for operations returning scripted results.

    Each call pops the next result; an Exception instance is raised.

    Usage:
        def test_flaky(scripted):
            op = scripted([False, False, True])
            assert retry(op)
            assert op.calls == 3
    """
    class Scripted:
        def __init__(self, results, default=False):
            self.results = list(results)
            self.default = default
            self.calls = 0

        def __call__(self):
            self.calls += 1
            result = self.results.pop(0) if self.results else self.default
            if isinstance(result, Exception):
                raise result
            return result

    return Scripted


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """
    Configure pytest with custom markers.

    Same markers as the other test packages for consistency.
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Unit integration tests")
    config.addinivalue_line("markers", "integration: Full integration tests")
    config.addinivalue_line("markers", "slow: Slow tests (use sparingly)")
