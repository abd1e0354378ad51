"""
Repository for VersionDependency database operations
"""

from metrics import track_db_query
from models.version_dependency import VersionDependency


class VersionDependenciesRepository:
    """Repository for VersionDependency database operations"""

    @staticmethod
    @track_db_query("get_version_dependencies")
    def get_by_version_id(version_id):
        """Dependencies declared by a version, ordered by required mod"""
        return (
            VersionDependency.query.filter(VersionDependency.version_id == version_id)
            .order_by(VersionDependency.mod_id)
            .all()
        )
