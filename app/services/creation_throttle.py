"""
Creation Throttle - admission checks run before a version is persisted
"""

from datetime import timedelta

import structlog

from exceptions import DuplicateVersionException, RateLimitExceededException
from metrics import version_creation_rejected_total
from repositories.versions_repository import VersionsRepository
from utils import ensure_utc, now_utc

logger = structlog.get_logger("throttle")


class CreationThrottle:
    """
    Rolling window quota on version creation per mod.

    A mod may receive at most `max_versions` versions in the `window`
    immediately preceding now. Every version counts, denied or unapproved
    included. Both checks read the database directly, never the cache.
    """

    def __init__(self, max_versions=5, window=timedelta(hours=24), clock=now_utc):
        self.max_versions = max_versions
        self.window = window
        self._clock = clock

    def check_and_admit(self, mod_id, version_name):
        """Raise DuplicateVersionException or RateLimitExceededException, else return None"""
        if VersionsRepository.count_by_name(mod_id, version_name) > 0:
            version_creation_rejected_total.labels(reason="duplicate").inc()
            logger.info("Version creation rejected, duplicate name", mod_id=mod_id, version=version_name)
            raise DuplicateVersionException(mod_id, version_name)

        now = self._clock()
        recent = VersionsRepository.get_created_since(mod_id, now - self.window)

        if len(recent) >= self.max_versions:
            # The oldest counted version is the first to leave the window
            retry_after = ensure_utc(recent[0].created_at) + self.window - now
            version_creation_rejected_total.labels(reason="rate_limited").inc()
            logger.warning(
                "Version creation rejected, quota reached",
                mod_id=mod_id,
                recent=len(recent),
                retry_after_seconds=int(retry_after.total_seconds()),
            )
            raise RateLimitExceededException(retry_after)
