"""create versions and version_dependencies tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "versions",
        sa.Column("id", sa.String(14), primary_key=True),
        sa.Column("mod_id", sa.String(14), nullable=False, index=True),
        sa.Column("version", sa.String(64), nullable=False),
        sa.Column("changelog", sa.Text(), nullable=True),
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("hash", sa.String(64), nullable=True),
        sa.Column("size", sa.BigInteger(), nullable=True),
        sa.Column("game_version", sa.String(32), nullable=True),
        sa.Column(
            "stability",
            sa.Enum("release", "beta", "alpha", name="version_stability"),
            nullable=False,
            server_default="release",
        ),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("denied", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("downloads", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "uq_versions_mod_version_active",
        "versions",
        ["mod_id", "version"],
        unique=True,
        postgresql_where=sa.text("denied = false"),
        sqlite_where=sa.text("denied = 0"),
    )
    op.create_index("idx_versions_mod_created", "versions", ["mod_id", "created_at"])
    op.create_index("idx_versions_mod_stability_created", "versions", ["mod_id", "stability", "created_at"])
    op.create_index("idx_versions_visibility", "versions", ["approved", "denied"])

    op.create_table(
        "version_dependencies",
        sa.Column(
            "version_id", sa.String(14), sa.ForeignKey("versions.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("mod_id", sa.String(14), primary_key=True),
        sa.Column("condition", sa.String(64), nullable=False),
        sa.Column("optional", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_version_dependencies_version", "version_dependencies", ["version_id"])


def downgrade():
    op.drop_index("idx_version_dependencies_version", table_name="version_dependencies")
    op.drop_table("version_dependencies")
    op.drop_index("idx_versions_visibility", table_name="versions")
    op.drop_index("idx_versions_mod_stability_created", table_name="versions")
    op.drop_index("idx_versions_mod_created", table_name="versions")
    op.drop_index("uq_versions_mod_version_active", table_name="versions")
    op.drop_table("versions")
    sa.Enum(name="version_stability").drop(op.get_bind(), checkfirst=True)
