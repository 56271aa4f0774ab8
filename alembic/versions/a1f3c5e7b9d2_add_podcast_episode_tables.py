"""Add podcasts, media_files, podcast_episodes and download_tasks tables.

Revision ID: a1f3c5e7b9d2
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision: str = "a1f3c5e7b9d2"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "podcasts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("url", name="uq_podcasts_url"),
    )

    op.create_table(
        "media_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("mime", sa.String(), nullable=True),
        sa.Column("track_title", sa.String(), nullable=True),
        sa.Column("artist_name", sa.String(), nullable=True),
        sa.Column("album_title", sa.String(), nullable=True),
        sa.Column("length", sa.String(), nullable=True),
        sa.Column("filesize", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bit_rate", sa.Integer(), nullable=True),
        sa.Column("sample_rate", sa.Integer(), nullable=True),
        sa.Column("import_status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("filepath", sa.String(), nullable=True),
        sa.Column(
            "file_exists", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column("hidden", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("mtime", sa.DateTime(timezone=True), nullable=True),
        sa.Column("utime", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "podcast_episodes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("podcast_id", sa.Integer(), nullable=False),
        sa.Column("file_id", sa.Integer(), nullable=True),
        sa.Column("download_url", sa.String(), nullable=False),
        sa.Column("episode_guid", sa.String(), nullable=False),
        sa.Column("publication_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("episode_title", sa.String(), nullable=True),
        sa.Column("episode_description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["podcast_id"], ["podcasts.id"], name="fk_podcast_episodes_podcast"
        ),
        sa.ForeignKeyConstraint(
            ["file_id"], ["media_files.id"], name="fk_podcast_episodes_file"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_podcast_episodes_episode_guid",
        "podcast_episodes",
        ["episode_guid"],
        unique=True,
    )
    op.create_index("ix_podcast_episodes_podcast_id", "podcast_episodes", ["podcast_id"])
    op.create_index("ix_podcast_episodes_file_id", "podcast_episodes", ["file_id"])
    op.create_index(
        "ix_podcast_episodes_publication_date", "podcast_episodes", ["publication_date"]
    )

    op.create_table(
        "download_tasks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("task_name", sa.String(), nullable=False),
        sa.Column("episode_id", sa.Integer(), nullable=False),
        sa.Column("download_url", sa.String(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "SUCCESS", "FAILURE", name="downloadtaskstatus"),
            nullable=False,
        ),
        sa.Column("error", sa.String(), nullable=True),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_download_tasks_task_id", "download_tasks", ["task_id"], unique=True
    )
    op.create_index("ix_download_tasks_episode_id", "download_tasks", ["episode_id"])
    op.create_index("ix_download_tasks_status", "download_tasks", ["status"])


def downgrade() -> None:
    op.drop_index("ix_download_tasks_status", table_name="download_tasks")
    op.drop_index("ix_download_tasks_episode_id", table_name="download_tasks")
    op.drop_index("ix_download_tasks_task_id", table_name="download_tasks")
    op.drop_table("download_tasks")
    sa.Enum(name="downloadtaskstatus").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_podcast_episodes_publication_date", table_name="podcast_episodes")
    op.drop_index("ix_podcast_episodes_file_id", table_name="podcast_episodes")
    op.drop_index("ix_podcast_episodes_podcast_id", table_name="podcast_episodes")
    op.drop_index("ix_podcast_episodes_episode_guid", table_name="podcast_episodes")
    op.drop_table("podcast_episodes")

    op.drop_table("media_files")

    op.drop_table("podcasts")
