import pytest
from tests.test_utils import MatchScenario


@pytest.fixture
def scenario():
    """Factory fixture to create scenarios."""

    def _builder(params=None, rolls=None):
        return MatchScenario(params, rolls)

    return _builder
