"""
Pytest fixtures and configuration for ModRepo tests
"""
import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

# Add app directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'app'))

API_TOKEN = 'test-token'


class FakeClock:
    """Controllable UTC clock"""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeMonotonic:
    """Controllable monotonic seconds counter"""

    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.error = MagicMock()
    logger.warning = MagicMock()
    logger.debug = MagicMock()
    return logger


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_clock():
    return FakeMonotonic()


@pytest.fixture
def query_cache(cache_clock):
    from query_cache import QueryCache
    return QueryCache(default_ttl=60, clock=cache_clock)


@pytest.fixture
def download_limiter(cache_clock):
    from rate_limiter import MemoryRateLimiter
    return MemoryRateLimiter(clock=cache_clock)


@pytest.fixture
def storage():
    """Blob store double returning deterministic links"""
    client = MagicMock()
    client.generate_download_link.side_effect = lambda key: f'https://cdn.example.com/{key}?signature=abc'
    return client


@pytest.fixture
def app(query_cache, download_limiter, storage, clock):
    """Application on an in-memory SQLite database"""
    from app import create_app
    from db import db

    _app = create_app(
        settings={
            'database': {'url': 'sqlite://', 'auto_create': True},
            'api': {'token': API_TOKEN},
        },
        config={'TESTING': True, 'RATELIMIT_ENABLED': False},
        cache=query_cache,
        rate_limiter=download_limiter,
        storage=storage,
        clock=clock,
    )

    with _app.app_context():
        yield _app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def service(app):
    return app.extensions['version_service']


@pytest.fixture
def auth_headers():
    return {'Authorization': f'Bearer {API_TOKEN}'}


@pytest.fixture
def make_version(app, clock):
    """Insert a version row directly, bypassing the creation checks"""
    from db import db
    from models.version import Version
    from utils import generate_unique_id

    def _make(mod_id='mod-a', version='1.0.0', created_at=None, **kwargs):
        values = {
            'approved': True,
            'denied': False,
            'stability': 'release',
            'downloads': 0,
            'key': f'/mod/{mod_id}/{version}.smod',
        }
        values.update(kwargs)
        item = Version(
            id=generate_unique_id(),
            mod_id=mod_id,
            version=version,
            created_at=created_at or clock(),
            **values,
        )
        db.session.add(item)
        db.session.commit()
        return item

    return _make
