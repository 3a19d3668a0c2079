"""create_stats_tables

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2025-11-03 09:12:44.118206
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3f9a1c2b7d10"
down_revision = None
branch_labels = None
depends_on = None

CLASS_CATEGORY_VALUES = ("durability", "anaerobic", "momentum", "deload")


def upgrade() -> None:
    class_category_enum = postgresql.ENUM(
        *CLASS_CATEGORY_VALUES, name="class_category_enum", create_type=False
    )
    class_category_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "members",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("member_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_members_member_id", "members", ["member_id"], unique=True)

    op.create_table(
        "visits",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("visit_ref_no", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.String(), nullable=False),
        sa.Column("class_date", sa.Date(), nullable=False),
        sa.Column("class_time", sa.Time(), nullable=True),
        sa.Column("location_name", sa.String(), nullable=True),
        sa.Column("coach_first_name", sa.String(), nullable=True),
        sa.Column("coach_last_name", sa.String(), nullable=True),
        sa.Column("class_type", sa.String(), nullable=True),
        sa.Column("cancelled", sa.Boolean(), nullable=False),
        sa.Column("missed", sa.Boolean(), nullable=False),
        sa.Column("booked_at", sa.DateTime(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("visit_ref_no"),
    )
    op.create_index("ix_visits_member_id", "visits", ["member_id"])
    op.create_index("ix_visits_class_date", "visits", ["class_date"])
    op.create_index("ix_visits_member_date", "visits", ["member_id", "class_date"])
    op.create_index(
        "ix_visits_coach_date",
        "visits",
        ["coach_first_name", "coach_last_name", "class_date"],
    )
    op.create_index(
        "ix_visits_session", "visits", ["class_date", "class_time", "location_name"]
    )

    op.create_table(
        "class_types",
        sa.Column("class_date", sa.Date(), nullable=False),
        sa.Column("class_type", class_category_enum, nullable=False),
        sa.PrimaryKeyConstraint("class_date"),
    )


def downgrade() -> None:
    op.drop_table("class_types")
    op.drop_index("ix_visits_session", table_name="visits")
    op.drop_index("ix_visits_coach_date", table_name="visits")
    op.drop_index("ix_visits_member_date", table_name="visits")
    op.drop_index("ix_visits_class_date", table_name="visits")
    op.drop_index("ix_visits_member_id", table_name="visits")
    op.drop_table("visits")
    op.drop_index("ix_members_member_id", table_name="members")
    op.drop_table("members")
    op.execute("DROP TYPE IF EXISTS class_category_enum")
