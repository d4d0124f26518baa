"""abandoned cart recovery

Creates the two tables owned by the recovery subsystem. ``users``,
``products``, ``carts`` and ``cart_items`` belong to the host marketplace
schema and must already exist.

Revision ID: 3c9d1e2f4a5b
Revises:
Create Date: 2025-11-02 10:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c9d1e2f4a5b"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    abandonedcartstatus = postgresql.ENUM(
        "abandoned", "recovered", "expired", name="abandonedcartstatus", create_type=False
    )
    remindertype = postgresql.ENUM("first", "second", "final", name="remindertype", create_type=False)
    reminderstatus = postgresql.ENUM(
        "pending", "sending", "sent", "failed", "cancelled", name="reminderstatus", create_type=False
    )
    bind = op.get_bind()
    abandonedcartstatus.create(bind, checkfirst=True)
    remindertype.create(bind, checkfirst=True)
    reminderstatus.create(bind, checkfirst=True)

    op.create_table(
        "abandoned_carts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("cart_snapshot", sa.JSON(), nullable=False),
        sa.Column("total_value", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("item_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "status",
            abandonedcartstatus,
            nullable=False,
            server_default=sa.text("'abandoned'::abandonedcartstatus"),
        ),
        sa.Column("abandoned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("first_reminder_sent", sa.DateTime(timezone=True), nullable=True),
        sa.Column("second_reminder_sent", sa.DateTime(timezone=True), nullable=True),
        sa.Column("final_reminder_sent", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recovered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_abandoned_carts_user_id_status", "abandoned_carts", ["user_id", "status"], unique=False)

    op.create_table(
        "reminder_tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("abandoned_cart_id", sa.Integer(), nullable=False),
        sa.Column("reminder_type", remindertype, nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            reminderstatus,
            nullable=False,
            server_default=sa.text("'pending'::reminderstatus"),
        ),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["abandoned_cart_id"], ["abandoned_carts.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_reminder_tasks_abandoned_cart_id", "reminder_tasks", ["abandoned_cart_id"], unique=False)
    op.create_index(
        "ix_reminder_tasks_status_scheduled_for", "reminder_tasks", ["status", "scheduled_for"], unique=False
    )
    op.create_index("ix_reminder_tasks_user_id_status", "reminder_tasks", ["user_id", "status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_reminder_tasks_user_id_status", table_name="reminder_tasks")
    op.drop_index("ix_reminder_tasks_status_scheduled_for", table_name="reminder_tasks")
    op.drop_index("ix_reminder_tasks_abandoned_cart_id", table_name="reminder_tasks")
    op.drop_table("reminder_tasks")

    op.drop_index("ix_abandoned_carts_user_id_status", table_name="abandoned_carts")
    op.drop_table("abandoned_carts")

    bind = op.get_bind()
    postgresql.ENUM(name="reminderstatus").drop(bind, checkfirst=True)
    postgresql.ENUM(name="remindertype").drop(bind, checkfirst=True)
    postgresql.ENUM(name="abandonedcartstatus").drop(bind, checkfirst=True)
