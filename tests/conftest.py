import pytest
import packager


@pytest.fixture(autouse=True)
def reset_defaults():
    """Restore the process-wide default options after every test."""
    yield
    packager.initialize()
