"""
Download Service - download links and best-effort download counting
"""

from datetime import timedelta

import structlog
from sqlalchemy.exc import SQLAlchemyError

from metrics import version_download_count_failures_total, version_downloads_total
from repositories.versions_repository import VersionsRepository

logger = structlog.get_logger("downloads")

DOWNLOAD_ACTION = "download"


class DownloadService:
    """
    Issues download links and counts downloads at most once per client,
    version and window. Counting never prevents the link from being issued.
    """

    def __init__(self, rate_limiter, storage, window=timedelta(hours=4)):
        self.rate_limiter = rate_limiter
        self.storage = storage
        self.window = window

    def _admit(self, client_identity, version_id):
        try:
            return self.rate_limiter.try_admit(client_identity, DOWNLOAD_ACTION, f"version:{version_id}", self.window)
        except Exception as e:
            # Counting is telemetry, the download goes ahead regardless
            version_download_count_failures_total.labels(stage="limiter").inc()
            logger.warning("Download limiter check failed", version_id=version_id, error=str(e))
            return False

    def _increment(self, version_id):
        try:
            return VersionsRepository.increment_downloads(version_id) > 0
        except SQLAlchemyError as e:
            version_download_count_failures_total.labels(stage="increment").inc()
            logger.warning("Download counter increment dropped", version_id=version_id, error=str(e))
            return False

    def record_download(self, client_identity, version):
        """
        Return the artifact link, counting the download when admitted.

        Args:
            client_identity: Client key, usually the remote address
            version: Serialized version with at least `id` and `key`

        Returns:
            Time limited download URL

        The link is resolved first, a storage failure propagates and nothing
        is counted.
        """
        url = self.storage.generate_download_link(version["key"])

        counted = False
        if self._admit(client_identity, version["id"]):
            counted = self._increment(version["id"])

        version_downloads_total.labels(counted="true" if counted else "false").inc()
        logger.debug("Version download", version_id=version["id"], counted=counted)
        return url
