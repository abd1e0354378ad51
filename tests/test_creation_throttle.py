"""
Tests for the rolling window creation throttle
"""
from datetime import timedelta

import pytest


@pytest.fixture
def throttle(service):
    return service.throttle


class TestRollingWindow:
    """Five versions per mod in any trailing 24 hours"""

    def test_four_recent_versions_admit(self, throttle, make_version, clock):
        for i in range(4):
            make_version(version=f'1.0.{i}', created_at=clock() - timedelta(hours=i + 1))

        assert throttle.check_and_admit('mod-a', '2.0.0') is None

    def test_five_recent_versions_reject(self, throttle, make_version, clock):
        from exceptions import RateLimitExceededException

        for i in range(5):
            make_version(version=f'1.0.{i}', created_at=clock() - timedelta(hours=i + 1))

        with pytest.raises(RateLimitExceededException) as exc_info:
            throttle.check_and_admit('mod-a', '2.0.0')

        # Oldest counted version was created 5h ago, it leaves the window in 19h
        assert exc_info.value.retry_after == timedelta(hours=19)
        assert exc_info.value.retry_after_minutes == 19 * 60
        assert exc_info.value.message == 'please wait 1140 minutes to post another version'

    def test_version_just_inside_window_counts(self, throttle, make_version, clock):
        from exceptions import RateLimitExceededException

        make_version(version='0.9.0', created_at=clock() - timedelta(hours=24) + timedelta(seconds=1))
        for i in range(4):
            make_version(version=f'1.0.{i}', created_at=clock() - timedelta(minutes=i + 1))

        with pytest.raises(RateLimitExceededException) as exc_info:
            throttle.check_and_admit('mod-a', '2.0.0')
        assert exc_info.value.retry_after == timedelta(seconds=1)
        assert exc_info.value.retry_after_minutes == 0

    def test_version_just_outside_window_does_not_count(self, throttle, make_version, clock):
        make_version(version='0.9.0', created_at=clock() - timedelta(hours=24) - timedelta(seconds=1))
        for i in range(4):
            make_version(version=f'1.0.{i}', created_at=clock() - timedelta(minutes=i + 1))

        assert throttle.check_and_admit('mod-a', '2.0.0') is None

    def test_window_rolls_with_time(self, throttle, make_version, clock):
        from exceptions import RateLimitExceededException

        for i in range(5):
            make_version(version=f'1.0.{i}', created_at=clock() - timedelta(hours=23, minutes=i))

        with pytest.raises(RateLimitExceededException):
            throttle.check_and_admit('mod-a', '2.0.0')

        # The oldest one (23h04m ago) leaves the window after 56 more minutes
        clock.advance(minutes=56)
        assert throttle.check_and_admit('mod-a', '2.0.0') is None

    def test_denied_and_unapproved_versions_count(self, throttle, make_version, clock):
        from exceptions import RateLimitExceededException

        make_version(version='1.0.0', denied=True)
        make_version(version='1.0.1', approved=False)
        make_version(version='1.0.2')
        make_version(version='1.0.3')
        make_version(version='1.0.4')

        with pytest.raises(RateLimitExceededException):
            throttle.check_and_admit('mod-a', '2.0.0')

    def test_quota_is_per_mod(self, throttle, make_version):
        for i in range(5):
            make_version(mod_id='mod-a', version=f'1.0.{i}')

        assert throttle.check_and_admit('mod-b', '1.0.0') is None


class TestDuplicateCheck:
    """Version strings are unique per mod among non denied versions"""

    def test_existing_name_is_rejected(self, throttle, make_version):
        from exceptions import DuplicateVersionException

        make_version(version='1.0.0')
        with pytest.raises(DuplicateVersionException):
            throttle.check_and_admit('mod-a', '1.0.0')

    def test_same_name_on_other_mod_is_admitted(self, throttle, make_version):
        make_version(mod_id='mod-a', version='1.0.0')
        assert throttle.check_and_admit('mod-b', '1.0.0') is None

    def test_denied_version_name_can_be_reused(self, throttle, make_version):
        make_version(version='1.0.0', denied=True)
        assert throttle.check_and_admit('mod-a', '1.0.0') is None

    def test_duplicate_is_checked_before_quota(self, throttle, make_version):
        from exceptions import DuplicateVersionException

        for i in range(5):
            make_version(version=f'1.0.{i}')

        with pytest.raises(DuplicateVersionException):
            throttle.check_and_admit('mod-a', '1.0.0')
