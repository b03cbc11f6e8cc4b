"""create users, tasks and task categories; seed default categories

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

TASK_STATUSES = ("pending", "in-progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high")

SYSTEM_USERNAME = "system"
DEFAULT_CATEGORIES = (
    ("Work", "#0070F3"),
    ("Personal", "#FF0080"),
    ("Learning", "#7928CA"),
    ("Health", "#50C878"),
)


def upgrade():
    users = op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("birthday", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    categories = op.create_table(
        "task_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=7), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.UniqueConstraint("user_id", "name", name="uq_task_categories_user_name"),
    )
    op.create_index("ix_task_categories_id", "task_categories", ["id"])
    op.create_index("ix_task_categories_user_id", "task_categories", ["user_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*TASK_STATUSES, name="task_status", native_enum=False, length=20, create_constraint=True),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "priority",
            sa.Enum(*TASK_PRIORITIES, name="task_priority", native_enum=False, length=20, create_constraint=True),
            nullable=False,
            server_default="medium",
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("task_categories.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_tasks_id", "tasks", ["id"])
    op.create_index("ix_tasks_user_id", "tasks", ["user_id"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])

    # system user owning the defaults; "!" is not a valid hash so it can't log in.
    # Its id comes from the database, then the categories point at it.
    op.bulk_insert(users, [{"username": SYSTEM_USERNAME, "password": "!"}])
    system_id = op.get_bind().execute(
        sa.select(users.c.id).where(users.c.username == SYSTEM_USERNAME)
    ).scalar_one()
    op.bulk_insert(
        categories,
        [{"name": name, "color": color, "user_id": system_id} for name, color in DEFAULT_CATEGORIES],
    )


def downgrade():
    op.drop_table("tasks")
    op.drop_table("task_categories")
    op.drop_table("users")
