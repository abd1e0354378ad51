"""
Tests for utility helpers
"""
from datetime import datetime, timedelta, timezone


class TestSanitizeSensitiveData:
    """Settings are logged without credentials"""

    def test_masks_token_and_url_passwords(self):
        from utils import sanitize_sensitive_data

        settings = {
            'database': {'url': 'postgresql://smr:hunter2@db:5432/smr'},
            'limits': {'redis_url': 'redis://:s3cret@redis:6379/0', 'http_default': ['300 per day']},
            'api': {'token': 'abcdef'},
        }

        sanitized = sanitize_sensitive_data(settings)

        assert sanitized['database']['url'] == 'postgresql://smr:***@db:5432/smr'
        assert sanitized['limits']['redis_url'] == 'redis://:***@redis:6379/0'
        assert sanitized['limits']['http_default'] == ['300 per day']
        assert sanitized['api']['token'] == '***'
        # The original is left untouched
        assert settings['api']['token'] == 'abcdef'

    def test_urls_without_password_are_kept(self):
        from utils import mask_url_password

        assert mask_url_password('sqlite:////data/modrepo.db') == 'sqlite:////data/modrepo.db'
        assert mask_url_password('redis://localhost:6379/0') == 'redis://localhost:6379/0'

    def test_unset_token_is_not_masked(self):
        from utils import sanitize_sensitive_data

        assert sanitize_sensitive_data({'token': None}) == {'token': None}


class TestIdentifiersAndTime:

    def test_unique_ids(self):
        from utils import generate_unique_id

        ids = {generate_unique_id() for _ in range(200)}
        assert len(ids) == 200
        assert all(len(i) == 14 and i.isalnum() for i in ids)

    def test_ensure_utc(self):
        from utils import ensure_utc

        naive = datetime(2026, 10, 18, 12, 0)
        assert ensure_utc(naive) == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

        offset = datetime(2026, 10, 18, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert ensure_utc(offset).hour == 12
        assert ensure_utc(None) is None
