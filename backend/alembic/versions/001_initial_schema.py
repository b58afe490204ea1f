"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16

Creates the Dimiplan MySQL schema:
- users: primary key is the 64-hex row key of the OAuth identifier
- userid: one counter row per user (plannerId, planId, roomId, chatId, folderId)
- folders, planner, plan, chat_rooms, chat: keyed by (owner, id)

Encrypted short values live in VARCHAR(2048), long payloads in TEXT. The
parent reference column keeps its legacy name `from`.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OWNER = sa.CHAR(64)
ENCRYPTED_NAME = sa.String(2048)
TABLE_OPTIONS = {"mysql_engine": "InnoDB", "mysql_charset": "utf8mb4"}


def timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", OWNER, nullable=False),
        sa.Column("name", ENCRYPTED_NAME, nullable=True),
        sa.Column("grade", sa.SmallInteger(), nullable=True),
        sa.Column("class", sa.SmallInteger(), nullable=True),
        sa.Column("email", ENCRYPTED_NAME, nullable=True),
        sa.Column("profile_image", sa.Text(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
        **TABLE_OPTIONS,
    )

    # ==========================================================================
    # USERID (COUNTER ROW) TABLE
    # ==========================================================================
    op.create_table(
        "userid",
        sa.Column("owner", OWNER, nullable=False),
        sa.Column("plannerId", sa.BigInteger(), server_default="1", nullable=False),
        sa.Column("planId", sa.BigInteger(), server_default="1", nullable=False),
        sa.Column("roomId", sa.BigInteger(), server_default="1", nullable=False),
        sa.Column("chatId", sa.BigInteger(), server_default="1", nullable=False),
        sa.Column("folderId", sa.BigInteger(), server_default="1", nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint("owner"),
        **TABLE_OPTIONS,
    )

    # ==========================================================================
    # FOLDERS TABLE
    # ==========================================================================
    op.create_table(
        "folders",
        sa.Column("owner", OWNER, nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("from", sa.BigInteger(), server_default="-1", nullable=False),
        sa.Column("name", ENCRYPTED_NAME, nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("owner", "id"),
        **TABLE_OPTIONS,
    )
    op.create_index("idx_folders_owner_parent", "folders", ["owner", "from"])

    # ==========================================================================
    # PLANNER TABLE
    # ==========================================================================
    op.create_table(
        "planner",
        sa.Column("owner", OWNER, nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("from", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("isDaily", sa.SmallInteger(), server_default="0", nullable=False),
        sa.Column("name", ENCRYPTED_NAME, nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("owner", "id"),
        **TABLE_OPTIONS,
    )
    op.create_index("idx_planner_owner_folder", "planner", ["owner", "from"])

    # ==========================================================================
    # PLAN TABLE
    # ==========================================================================
    op.create_table(
        "plan",
        sa.Column("owner", OWNER, nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("from", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("contents", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), server_default="1", nullable=False),
        sa.Column("isCompleted", sa.SmallInteger(), server_default="0", nullable=False),
        sa.Column("startDate", sa.Date(), nullable=True),
        sa.Column("dueDate", sa.Date(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("owner", "id"),
        **TABLE_OPTIONS,
    )
    op.create_index("idx_plan_owner_planner", "plan", ["owner", "from"])

    # ==========================================================================
    # CHAT_ROOMS TABLE
    # ==========================================================================
    op.create_table(
        "chat_rooms",
        sa.Column("owner", OWNER, nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("name", ENCRYPTED_NAME, nullable=True),
        sa.Column("isProcessing", sa.SmallInteger(), server_default="0", nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint("owner", "id"),
        **TABLE_OPTIONS,
    )

    # ==========================================================================
    # CHAT TABLE
    # ==========================================================================
    op.create_table(
        "chat",
        sa.Column("owner", OWNER, nullable=False),
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("from", sa.BigInteger(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("sender", sa.String(8), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint("owner", "id"),
        **TABLE_OPTIONS,
    )
    op.create_index("idx_chat_owner_room", "chat", ["owner", "from"])


def downgrade() -> None:
    op.drop_index("idx_chat_owner_room", table_name="chat")
    op.drop_table("chat")
    op.drop_table("chat_rooms")
    op.drop_index("idx_plan_owner_planner", table_name="plan")
    op.drop_table("plan")
    op.drop_index("idx_planner_owner_folder", table_name="planner")
    op.drop_table("planner")
    op.drop_index("idx_folders_owner_parent", table_name="folders")
    op.drop_table("folders")
    op.drop_table("userid")
    op.drop_table("users")
