import pytest

from sweet.config import get_config


@pytest.fixture(autouse=True)
def clear_config_cache():
    """get_config caches its results, start every test with a clean cache"""
    get_config.cache_clear()
    yield
    get_config.cache_clear()
