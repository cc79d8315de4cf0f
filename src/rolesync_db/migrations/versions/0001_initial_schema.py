"""Initial role sync schema.

Notes:
- External identifiers (group ids, member ids, tier ids, ranks) are BIGINT.
- ``ranks.user_id`` carries no foreign key; ranks are recorded for every
  observed member.
- ``role_group_tiers`` keeps tier-to-role mappings unique per workspace.
"""

from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from alembic import op

from rolesync_db.types import UTCDateTime

# Revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision: Optional[str] = None
branch_labels: Optional[str] = None
depends_on: Optional[str] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "workspaces",
        sa.Column("group_id", sa.BigInteger(), autoincrement=False, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("group_id", name="pk_workspaces"),
    )

    op.create_table(
        "users",
        sa.Column("userid", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("picture", sa.Text(), nullable=True),
        sa.Column("is_owner", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("userid", name="pk_users"),
    )

    op.create_table(
        "roles",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("workspace_group_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_owner_role", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workspace_group_id"],
            ["workspaces.group_id"],
            name="fk_roles_workspace_group_id_workspaces",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_roles"),
    )
    op.create_index("ix_roles_workspace_group_id", "roles", ["workspace_group_id"])

    op.create_table(
        "role_group_tiers",
        sa.Column("role_id", sa.String(length=26), nullable=False),
        sa.Column("tier_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("workspace_group_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(
            ["role_id"],
            ["roles.id"],
            name="fk_role_group_tiers_role_id_roles",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["workspace_group_id"],
            ["workspaces.group_id"],
            name="fk_role_group_tiers_workspace_group_id_workspaces",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("role_id", "tier_id", name="pk_role_group_tiers"),
        sa.UniqueConstraint(
            "workspace_group_id",
            "tier_id",
            name="uq_role_group_tiers_workspace_tier",
        ),
    )

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("role_id", sa.String(length=26), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.userid"],
            name="fk_user_roles_user_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["role_id"],
            ["roles.id"],
            name="fk_user_roles_role_id_roles",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("user_id", "role_id", name="pk_user_roles"),
    )
    op.create_index("ix_user_roles_role_id", "user_roles", ["role_id"])

    op.create_table(
        "ranks",
        sa.Column("user_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("workspace_group_id", sa.BigInteger(), nullable=False),
        sa.Column("rank_id", sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workspace_group_id"],
            ["workspaces.group_id"],
            name="fk_ranks_workspace_group_id_workspaces",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("user_id", "workspace_group_id", name="pk_ranks"),
    )
    op.create_index("ix_ranks_workspace_group_id", "ranks", ["workspace_group_id"])

    op.create_table(
        "configs",
        sa.Column("id", sa.String(length=26), nullable=False),
        sa.Column("workspace_group_id", sa.BigInteger(), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workspace_group_id"],
            ["workspaces.group_id"],
            name="fk_configs_workspace_group_id_workspaces",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_configs"),
        sa.UniqueConstraint("workspace_group_id", "key", name="uq_configs_workspace_key"),
    )


def downgrade() -> None:
    op.drop_table("configs")
    op.drop_index("ix_ranks_workspace_group_id", table_name="ranks")
    op.drop_table("ranks")
    op.drop_index("ix_user_roles_role_id", table_name="user_roles")
    op.drop_table("user_roles")
    op.drop_table("role_group_tiers")
    op.drop_index("ix_roles_workspace_group_id", table_name="roles")
    op.drop_table("roles")
    op.drop_table("users")
    op.drop_table("workspaces")
