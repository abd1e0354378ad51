"""
Model: Version
One release of a mod. Rows are never deleted, denial is a soft state.
"""

from sqlalchemy import inspect as sa_inspect

from db import db
from constants import VERSION_STABILITIES, STABILITY_RELEASE
from utils import now_utc, ensure_utc


class Version(db.Model):
    __tablename__ = "versions"

    id = db.Column(db.String(14), primary_key=True)
    mod_id = db.Column(db.String(14), nullable=False, index=True)
    version = db.Column(db.String(64), nullable=False)
    changelog = db.Column(db.Text)
    key = db.Column(db.String, nullable=False)  # Object key in the blob store
    hash = db.Column(db.String(64))
    size = db.Column(db.BigInteger)
    game_version = db.Column(db.String(32))
    stability = db.Column(
        db.Enum(*VERSION_STABILITIES, name="version_stability"), nullable=False, default=STABILITY_RELEASE
    )
    approved = db.Column(db.Boolean, nullable=False, default=False)
    denied = db.Column(db.Boolean, nullable=False, default=False)
    downloads = db.Column(db.BigInteger, nullable=False, default=0)
    # "metadata" is reserved on declarative classes
    extra_metadata = db.Column("metadata", db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc)

    dependencies = db.relationship(
        "VersionDependency", backref="owner", lazy="select", cascade="all, delete-orphan"
    )

    __table_args__ = (
        # Version names are unique per mod among non denied versions
        db.Index(
            "uq_versions_mod_version_active",
            "mod_id",
            "version",
            unique=True,
            postgresql_where=db.text("denied = false"),
            sqlite_where=db.text("denied = 0"),
        ),
        # Rolling creation window lookups
        db.Index("idx_versions_mod_created", "mod_id", "created_at"),
        # Latest version per stability
        db.Index("idx_versions_mod_stability_created", "mod_id", "stability", "created_at"),
        db.Index("idx_versions_visibility", "approved", "denied"),
    )

    def to_dict(self, fields=None):
        """Serialize loaded columns, restricted to `fields` when a projection is given."""
        unloaded = sa_inspect(self).unloaded if fields else ()
        result = {}
        for attr in self.__mapper__.column_attrs:
            name = attr.columns[0].name
            if fields and (name not in fields and name != "id" or attr.key in unloaded):
                continue
            value = getattr(self, attr.key)
            if name in ("created_at", "updated_at") and value is not None:
                value = ensure_utc(value).isoformat()
            result[name] = value
        return result

    def __repr__(self):
        return f"<Version {self.id} {self.mod_id}@{self.version}>"
