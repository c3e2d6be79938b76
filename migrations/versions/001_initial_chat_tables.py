"""Create chats, messages and parsed_contents tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


def upgrade() -> None:
    op.create_table(
        "chats",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("pdf_storage_url", sa.Text, nullable=True),
        sa.Column("pdf_file_name", sa.Text, nullable=True),
        sa.Column("parsed_content_id", UUID(as_uuid=True), nullable=True),
        sa.Column("processing_state", sa.Text, nullable=False, server_default="idle"),
        sa.Column("audio_info", sa.Text, nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("idx_chats_updated_at", "chats", ["updated_at"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "chat_id",
            sa.Text,
            sa.ForeignKey("chats.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("role", sa.Text, nullable=False),
        _timestamp("timestamp"),
    )
    op.create_index("idx_messages_chat_id_timestamp", "messages", ["chat_id", "timestamp"])

    op.create_table(
        "parsed_contents",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "chat_id",
            sa.Text,
            sa.ForeignKey("chats.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("job_id", sa.Text, nullable=True),
        sa.Column("result", JSONB, nullable=True),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("page_count", sa.Integer, nullable=True),
        sa.Column("document_type", sa.Text, nullable=True),
        sa.Column("processing_time_ms", sa.Integer, nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "idx_parsed_contents_chat_id_status", "parsed_contents", ["chat_id", "status"]
    )


def downgrade() -> None:
    op.drop_index("idx_parsed_contents_chat_id_status", table_name="parsed_contents")
    op.drop_table("parsed_contents")
    op.drop_index("idx_messages_chat_id_timestamp", table_name="messages")
    op.drop_table("messages")
    op.drop_index("idx_chats_updated_at", table_name="chats")
    op.drop_table("chats")
