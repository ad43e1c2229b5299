import pytest
from django.core.cache import caches


@pytest.fixture(autouse=True)
def _clear_caches():
    """The cart mirror lives in the local-memory cache, which outlives a test's database."""
    for cache in caches.all():
        cache.clear()
    yield
