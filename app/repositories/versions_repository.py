"""
Repository for Versions database operations
"""

import logging
import time

from sqlalchemy import and_, false, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import load_only

from db import db, is_postgres
from metrics import track_db_query
from models.version import Version
from models.version_dependency import VersionDependency
from version_filter import search_terms, to_tsquery_text

logger = logging.getLogger("main")


def visibility_clause(unapproved):
    """
    Denied versions are never listed; unapproved ones only on request.

    unapproved=True widens the listing to every non denied version, it does
    not narrow it to the unapproved ones.
    """
    if unapproved:
        return Version.denied == False
    return and_(Version.approved == True, Version.denied == False)


def search_clause(search):
    if not search_terms(search):
        return None
    if is_postgres():
        tsquery = to_tsquery_text(search)
        if not tsquery:
            # Only operator characters were given
            return false()
        return func.to_tsvector(Version.version).op("@@")(func.to_tsquery(tsquery))
    return and_(*[Version.version.ilike(f"%{term}%") for term in search_terms(search)])


def apply_filter(query, version_filter):
    """Apply ordering, pagination, search and projection of a VersionFilter"""
    if version_filter is None:
        return query

    clause = search_clause(version_filter.search)
    if clause is not None:
        query = query.filter(clause)

    if version_filter.fields:
        columns = [getattr(Version, "extra_metadata" if f == "metadata" else f) for f in version_filter.fields]
        query = query.options(load_only(Version.id, *columns))

    sort_field = getattr(Version, version_filter.order_by)
    sort_field = sort_field.desc() if version_filter.order == "desc" else sort_field.asc()
    # Tie breaker keeps pages stable
    return query.order_by(sort_field, Version.id.asc()).limit(version_filter.limit).offset(version_filter.offset)


class VersionsRepository:
    """Repository for Version database operations"""

    @staticmethod
    @track_db_query("get_version")
    def get_by_id(version_id):
        """Get Version by primary key ID"""
        return db.session.get(Version, version_id)

    @staticmethod
    @track_db_query("get_mod_version")
    def get_by_mod_and_id(mod_id, version_id):
        return Version.query.filter(Version.mod_id == mod_id, Version.id == version_id).first()

    @staticmethod
    @track_db_query("get_version_by_name")
    def get_by_name(mod_id, name):
        """Get the non denied version of a mod with this version string"""
        return Version.query.filter(
            Version.mod_id == mod_id, Version.version == name, Version.denied == False
        ).first()

    @staticmethod
    @track_db_query("get_versions_by_id")
    def get_by_ids(version_ids):
        return Version.query.filter(Version.id.in_(version_ids)).order_by(Version.id).all()

    @staticmethod
    @track_db_query("get_latest_versions")
    def get_latest_per_stability(mod_ids, unapproved=False):
        """
        Most recent version for every (mod, stability) pair, newest first.

        Uses a window function so it runs on PostgreSQL and SQLite alike.
        """
        ranked = (
            select(
                Version.id.label("id"),
                func.row_number()
                .over(partition_by=(Version.mod_id, Version.stability), order_by=Version.created_at.desc())
                .label("rank"),
            )
            .where(Version.mod_id.in_(mod_ids), visibility_clause(unapproved))
            .subquery()
        )
        return (
            Version.query.join(ranked, ranked.c.id == Version.id)
            .filter(ranked.c.rank == 1)
            .order_by(Version.created_at.desc(), Version.mod_id, Version.stability)
            .all()
        )

    @staticmethod
    @track_db_query("get_versions")
    def get_filtered(version_filter, unapproved=False, mod_id=None):
        """
        List versions matching a filter, optionally for a single mod
        """
        query = Version.query.filter(visibility_clause(unapproved))
        if mod_id is not None:
            query = query.filter(Version.mod_id == mod_id)
        query = apply_filter(query, version_filter)

        start = time.time()
        try:
            result = query.all()
            duration = (time.time() - start) * 1000.0
            logger.debug(f"VersionsRepository.get_filtered: mod_id={mod_id} rows={len(result)} duration_ms={duration:.1f}")
            return result
        except SQLAlchemyError as e:
            duration = (time.time() - start) * 1000.0
            logger.error(f"VersionsRepository.get_filtered failed: mod_id={mod_id} duration_ms={duration:.1f} error={e}")
            raise

    @staticmethod
    @track_db_query("count_versions")
    def count_filtered(version_filter, unapproved=False):
        """Count visible versions, honoring only the search part of a filter"""
        query = db.session.query(func.count(Version.id)).filter(visibility_clause(unapproved))
        if version_filter is not None:
            clause = search_clause(version_filter.search)
            if clause is not None:
                query = query.filter(clause)
        return query.scalar() or 0

    @staticmethod
    @track_db_query("count_versions_by_name")
    def count_by_name(mod_id, name):
        return (
            db.session.query(func.count(Version.id))
            .filter(Version.mod_id == mod_id, Version.version == name, Version.denied == False)
            .scalar()
        )

    @staticmethod
    @track_db_query("get_versions_created_since")
    def get_created_since(mod_id, since):
        """All versions of a mod created strictly after `since`, oldest first"""
        return (
            Version.query.filter(Version.mod_id == mod_id, Version.created_at > since)
            .order_by(Version.created_at.asc())
            .all()
        )

    @staticmethod
    @track_db_query("create_version")
    def create(dependencies=(), **kwargs):
        """Create a Version and its dependencies in one transaction"""
        try:
            item = Version(**kwargs)
            for dependency in dependencies:
                item.dependencies.append(VersionDependency(**dependency))
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError:
            db.session.rollback()
            raise

    @staticmethod
    @track_db_query("increment_version_downloads")
    def increment_downloads(version_id):
        """Atomic downloads = downloads + 1, returns the number of rows updated"""
        try:
            result = db.session.execute(
                update(Version)
                .where(Version.id == version_id)
                .values(downloads=Version.downloads + 1)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
            return result.rowcount
        except SQLAlchemyError:
            db.session.rollback()
            raise
