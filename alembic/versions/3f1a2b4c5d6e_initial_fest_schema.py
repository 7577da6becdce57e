"""initial_fest_schema"""

revision = '3f1a2b4c5d6e'
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


USER_ROLES = ("user", "admin")
EVENT_CATEGORIES = ("Dance", "Music", "Fine Arts", "Literary", "Dramatics", "Informals")
PARTICIPATION_TYPES = ("solo", "group")
REGISTRATION_STATUSES = ("confirmed", "cancelled", "waitlisted")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=True),
        sa.Column("pid", sa.String(length=20), nullable=True),
        sa.Column("roll_number", sa.String(length=30), nullable=False),
        sa.Column("college", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("department", sa.String(length=150), nullable=True),
        sa.Column("year_of_study", sa.String(length=20), nullable=True),
        sa.Column("role", sa.Enum(*USER_ROLES, name="userrole"), nullable=False, server_default="user"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("roll_number", name="uq_users_roll_number"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_pid", "users", ["pid"], unique=True)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("theme", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("category", sa.Enum(*EVENT_CATEGORIES, name="eventcategory"), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("time", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("venue", sa.String(length=255), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("registered_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_listed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "participation_type",
            sa.Enum(*PARTICIPATION_TYPES, name="participationtype"),
            nullable=False,
            server_default="solo",
        ),
        sa.Column("team_size_min", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("team_size_max", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("image_key", sa.String(length=500), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("max_participants >= 1", name="ck_events_max_participants_positive"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pid", sa.String(length=20), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*REGISTRATION_STATUSES, name="registrationstatus"),
            nullable=False,
            server_default="confirmed",
        ),
        sa.Column("team_name", sa.String(length=255), nullable=True),
        sa.Column("tid", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "event_id", name="uq_registration_user_event"),
        sa.UniqueConstraint("tid", name="uq_registrations_tid"),
    )
    op.create_index("ix_registrations_id", "registrations", ["id"])
    op.create_index("ix_registrations_user_id", "registrations", ["user_id"])
    op.create_index("ix_registrations_event_id", "registrations", ["event_id"])

    op.create_table(
        "registration_team_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "registration_id",
            sa.Integer(),
            sa.ForeignKey("registrations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pid", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False, server_default=""),
        sa.Column("college", sa.String(length=255), nullable=False, server_default=""),
    )
    op.create_index(
        "ix_registration_team_members_registration_id", "registration_team_members", ["registration_id"]
    )
    op.create_index("ix_registration_team_members_pid", "registration_team_members", ["pid"])


def downgrade() -> None:
    op.drop_index("ix_registration_team_members_pid", table_name="registration_team_members")
    op.drop_index("ix_registration_team_members_registration_id", table_name="registration_team_members")
    op.drop_table("registration_team_members")
    op.drop_index("ix_registrations_event_id", table_name="registrations")
    op.drop_index("ix_registrations_user_id", table_name="registrations")
    op.drop_index("ix_registrations_id", table_name="registrations")
    op.drop_table("registrations")
    op.drop_index("ix_events_date", table_name="events")
    op.drop_index("ix_events_id", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_users_pid", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name in ("registrationstatus", "participationtype", "eventcategory", "userrole"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
