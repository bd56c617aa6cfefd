"""
Pytest configuration for the test suite.

Defines custom markers shared by the unit and integration tests.
"""


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: end-to-end pipeline runs with fake collaborators",
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as fast unit tests (no external dependencies)"
    )
