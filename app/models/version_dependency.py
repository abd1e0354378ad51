"""
Model: VersionDependency
Edge from a version to a required mod and version range. Immutable once created.
"""

from db import db, to_dict
from utils import now_utc, ensure_utc


class VersionDependency(db.Model):
    __tablename__ = "version_dependencies"

    version_id = db.Column(db.String(14), db.ForeignKey("versions.id", ondelete="CASCADE"), primary_key=True)
    mod_id = db.Column(db.String(14), primary_key=True)
    condition = db.Column(db.String(64), nullable=False)
    optional = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)

    __table_args__ = (db.Index("idx_version_dependencies_version", "version_id"),)

    def to_dict(self):
        result = to_dict(self)
        for name in ("created_at", "updated_at"):
            if result.get(name) is not None:
                result[name] = ensure_utc(result[name]).isoformat()
        return result
