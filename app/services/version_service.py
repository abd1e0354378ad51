"""
Version Service - catalog reads through the query cache, creation and downloads
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from constants import STABILITY_RELEASE, VERSION_STABILITIES
from exceptions import DuplicateVersionException, NotFoundException, ValidationException
from metrics import versions_created_total
from query_cache import KIND_COUNT, KIND_VERSION, KIND_VERSIONS, QueryCache, make_cache_key
from rate_limiter import build_rate_limiter
from repositories.version_dependencies_repository import VersionDependenciesRepository
from repositories.versions_repository import VersionsRepository
from services.creation_throttle import CreationThrottle
from services.download_service import DownloadService
from storage import StorageClient
from utils import generate_unique_id, now_utc
from version_filter import VersionFilter

logger = structlog.get_logger("versions")

DRAFT_FIELDS = ("version", "changelog", "key", "hash", "size", "game_version", "stability", "metadata", "dependencies")


def _serialize(versions, fields=None):
    return [version.to_dict(fields) for version in versions]


def validate_draft(draft: Dict[str, Any]) -> Dict[str, Any]:
    """Check a version draft and return the column values to persist"""
    if not isinstance(draft, dict):
        raise ValidationException("version draft must be an object")

    unknown = [name for name in draft if name not in DRAFT_FIELDS]
    if unknown:
        raise ValidationException(f"unknown version fields: {', '.join(sorted(unknown))}")

    name = draft.get("version")
    if not isinstance(name, str) or not name.strip():
        raise ValidationException("version is required")

    key = draft.get("key")
    if not isinstance(key, str) or not key.strip():
        raise ValidationException("key is required")

    stability = draft.get("stability") or STABILITY_RELEASE
    if stability not in VERSION_STABILITIES:
        raise ValidationException(f"stability must be one of {', '.join(VERSION_STABILITIES)}")

    size = draft.get("size")
    if size is not None and (isinstance(size, bool) or not isinstance(size, int) or size < 0):
        raise ValidationException("size must be a non-negative integer")

    metadata = draft.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise ValidationException("metadata must be an object")

    dependencies = []
    for dependency in draft.get("dependencies") or []:
        if not isinstance(dependency, dict) or not dependency.get("mod_id") or not dependency.get("condition"):
            raise ValidationException("dependencies need a mod_id and a condition")
        dependencies.append({
            "mod_id": dependency["mod_id"],
            "condition": dependency["condition"],
            "optional": bool(dependency.get("optional", False)),
        })

    if len({d["mod_id"] for d in dependencies}) != len(dependencies):
        raise ValidationException("a mod can only be required once per version")

    return {
        "version": name.strip(),
        "changelog": draft.get("changelog"),
        "key": key.strip(),
        "hash": draft.get("hash"),
        "size": size,
        "game_version": draft.get("game_version"),
        "stability": stability,
        "extra_metadata": metadata,
        "dependencies": dependencies,
    }


class VersionService:
    """Catalog query and mutation entry point used by the HTTP layer"""

    def __init__(self, cache: QueryCache, throttle: CreationThrottle, downloads: DownloadService,
                 clock=now_utc, id_generator=generate_unique_id):
        self.cache = cache
        self.throttle = throttle
        self.downloads = downloads
        self._clock = clock
        self._id_generator = id_generator

    # ---- single version reads ----

    def get_version(self, version_id: str) -> Optional[Dict]:
        def compute():
            version = VersionsRepository.get_by_id(version_id)
            return version.to_dict() if version else None

        return self.cache.get_or_compute(make_cache_key("GetVersion", version_id), compute, KIND_VERSION)

    def get_mod_version(self, mod_id: str, version_id: str) -> Optional[Dict]:
        def compute():
            version = VersionsRepository.get_by_mod_and_id(mod_id, version_id)
            return version.to_dict() if version else None

        return self.cache.get_or_compute(make_cache_key("GetModVersion", mod_id, version_id), compute, KIND_VERSION)

    def get_version_by_name(self, mod_id: str, name: str) -> Optional[Dict]:
        def compute():
            version = VersionsRepository.get_by_name(mod_id, name)
            return version.to_dict() if version else None

        return self.cache.get_or_compute(make_cache_key("GetModVersionByName", mod_id, name), compute, KIND_VERSION)

    # ---- list reads ----

    def get_versions_by_ids(self, version_ids: List[str]) -> Optional[List[Dict]]:
        """All requested versions, or None when any of them does not exist"""
        wanted = set(version_ids)
        if not wanted:
            return []

        def compute():
            versions = VersionsRepository.get_by_ids(sorted(wanted))
            if len(versions) != len(wanted):
                return None
            return _serialize(versions)

        return self.cache.get_or_compute(make_cache_key("GetVersionsById", wanted), compute, KIND_VERSIONS)

    def get_latest_versions(self, mod_ids, unapproved: bool = False) -> List[Dict]:
        """
        Latest version per stability for one mod id or a list of mod ids
        """
        if isinstance(mod_ids, str):
            key = make_cache_key("GetModLatestVersions", mod_ids, unapproved)
            wanted = [mod_ids]
        else:
            wanted = sorted(set(mod_ids))
            if not wanted:
                return []
            key = make_cache_key("GetModsLatestVersions", wanted, unapproved)

        def compute():
            return _serialize(VersionsRepository.get_latest_per_stability(wanted, unapproved))

        return self.cache.get_or_compute(key, compute, KIND_VERSIONS)

    def get_mod_versions(self, mod_id: str, version_filter: Optional[VersionFilter] = None,
                         unapproved: bool = False) -> List[Dict]:
        key = make_cache_key("GetModVersions", mod_id, VersionFilter.hash(version_filter), unapproved)
        fields = version_filter.fields if version_filter else None

        def compute():
            return _serialize(VersionsRepository.get_filtered(version_filter, unapproved, mod_id=mod_id), fields)

        return self.cache.get_or_compute(key, compute, KIND_VERSIONS)

    def get_versions(self, version_filter: Optional[VersionFilter] = None, unapproved: bool = False) -> List[Dict]:
        key = make_cache_key("GetVersions", VersionFilter.hash(version_filter), unapproved)
        fields = version_filter.fields if version_filter else None

        def compute():
            return _serialize(VersionsRepository.get_filtered(version_filter, unapproved), fields)

        return self.cache.get_or_compute(key, compute, KIND_VERSIONS)

    def count_versions(self, version_filter: Optional[VersionFilter] = None, unapproved: bool = False) -> int:
        key = make_cache_key("GetVersionCount", VersionFilter.hash(version_filter), unapproved)

        def compute():
            return VersionsRepository.count_filtered(version_filter, unapproved)

        return self.cache.get_or_compute(key, compute, KIND_COUNT)

    def get_dependencies(self, version_id: str) -> List[Dict]:
        """Always read fresh from the database"""
        return [dependency.to_dict() for dependency in VersionDependenciesRepository.get_by_version_id(version_id)]

    # ---- mutations ----

    def create_version(self, mod_id: str, draft: Dict[str, Any]) -> Dict:
        """
        Validate, throttle and persist a new version of a mod.

        Raises ValidationException, DuplicateVersionException or
        RateLimitExceededException. The cache is neither read nor written.
        """
        values = validate_draft(draft)
        self.throttle.check_and_admit(mod_id, values["version"])

        try:
            version = VersionsRepository.create(
                id=self._id_generator(),
                mod_id=mod_id,
                created_at=self._clock(),
                approved=False,
                denied=False,
                downloads=0,
                **values,
            )
        except IntegrityError:
            # A concurrent creation won the race on (mod_id, version)
            logger.info("Version creation lost a uniqueness race", mod_id=mod_id, version=values["version"])
            raise DuplicateVersionException(mod_id, values["version"])

        versions_created_total.inc()
        logger.info("Version created", mod_id=mod_id, version_id=version.id, version=version.version)
        return version.to_dict()

    def download_version(self, version_id: str, client_identity: str) -> str:
        """Return the download URL of a version, counting the download when admitted"""
        version = self.get_version(version_id)
        if version is None:
            raise NotFoundException("version not found")
        return self.downloads.record_download(client_identity, version)


def build_version_service(settings, cache=None, rate_limiter=None, storage=None, clock=now_utc):
    """Wire a VersionService from merged settings; collaborators can be injected."""
    limits = settings["limits"]
    if cache is None:
        cache = QueryCache(default_ttl=settings["cache"]["ttl"])
    if rate_limiter is None:
        rate_limiter = build_rate_limiter(limits)
    if storage is None:
        storage = StorageClient.from_settings(settings["storage"])

    throttle = CreationThrottle(
        max_versions=limits["versions_per_window"],
        window=timedelta(hours=limits["version_window_hours"]),
        clock=clock,
    )
    downloads = DownloadService(rate_limiter, storage, window=timedelta(hours=limits["download_window_hours"]))
    return VersionService(cache, throttle, downloads, clock=clock)
