"""Create releases and release_tracking tables

Revision ID: 001_releases_and_tracking
Revises:
Create Date: 2026-10-19

Creates the release store:
- releases: one row per uploaded bundle copy and runtime version
- release_tracking: one row per manifest served for a release
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_releases_and_tracking'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column() -> sa.Column:
    return sa.Column(
        'uuid',
        postgresql.UUID(as_uuid=True).with_variant(
            sa.LargeBinary(16), 'sqlite'
        ),
        nullable=False
    )


def upgrade() -> None:
    """
    Create releases and release_tracking tables.

    releases columns:
    - id: Primary key (internal)
    - uuid: UUIDv7 for external identification (GUID: rel_xxx)
    - runtime_version: Client compatibility tag
    - path: Blob storage key of the archive (unique)
    - timestamp: Upload time (UTC)
    - commit_hash / commit_message / release_notes: Provenance and display text
    - update_id: UUID derived from the archive's metadata.json
    """
    op.create_table(
        'releases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('runtime_version', sa.String(length=100), nullable=False),
        sa.Column('path', sa.String(length=1024), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('commit_hash', sa.String(length=100), nullable=False),
        sa.Column('commit_message', sa.Text(), nullable=False),
        sa.Column('release_notes', sa.Text(), nullable=True),
        sa.Column('update_id', sa.String(length=36), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('path'),
        sa.UniqueConstraint('uuid')
    )
    op.create_index('ix_releases_uuid', 'releases', ['uuid'], unique=True)
    op.create_index('ix_releases_runtime_version', 'releases', ['runtime_version'])
    op.create_index('ix_releases_update_id', 'releases', ['update_id'])
    op.create_index(
        'ix_releases_runtime_version_timestamp',
        'releases',
        ['runtime_version', 'timestamp']
    )

    op.create_table(
        'release_tracking',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('release_id', sa.Integer(), nullable=False),
        sa.Column('platform', sa.String(length=10), nullable=False),
        sa.Column('download_timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['release_id'], ['releases.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid')
    )
    op.create_index('ix_release_tracking_uuid', 'release_tracking', ['uuid'], unique=True)
    op.create_index('ix_release_tracking_release_id', 'release_tracking', ['release_id'])
    op.create_index(
        'ix_release_tracking_release_platform',
        'release_tracking',
        ['release_id', 'platform']
    )


def downgrade() -> None:
    """Drop release_tracking and releases tables."""
    op.drop_index('ix_release_tracking_release_platform', table_name='release_tracking')
    op.drop_index('ix_release_tracking_release_id', table_name='release_tracking')
    op.drop_index('ix_release_tracking_uuid', table_name='release_tracking')
    op.drop_table('release_tracking')

    op.drop_index('ix_releases_runtime_version_timestamp', table_name='releases')
    op.drop_index('ix_releases_update_id', table_name='releases')
    op.drop_index('ix_releases_runtime_version', table_name='releases')
    op.drop_index('ix_releases_uuid', table_name='releases')
    op.drop_table('releases')
