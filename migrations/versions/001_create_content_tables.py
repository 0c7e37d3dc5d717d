"""Create trending, coming soon, media, journal and rating tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, UUID

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the content tables.

    Creates:
    - trendings, with indexes on created_at (expired sweep), is_active
      (inactive sweep) and expires_at (deactivation)
    - coming_soons
    - media and journal_entries
    - user_ratings
    """
    op.create_table(
        'trendings',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('tmdb_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(10), nullable=False, server_default='movie'),
        sa.Column('platform', sa.String(50), nullable=True),
        sa.Column('overview', sa.Text(), nullable=True),
        sa.Column('poster_path', sa.String(500), nullable=True),
        sa.Column('backdrop_path', sa.String(500), nullable=True),
        sa.Column('release_date', sa.Date(), nullable=True),
        sa.Column('genres', ARRAY(sa.String()), nullable=False, server_default='{}'),
        sa.Column('tmdb_rating', sa.Float(), nullable=True),
        sa.Column('tmdb_vote_count', sa.Integer(), nullable=True),
        sa.Column('popularity', sa.Float(), nullable=True),
        sa.Column('runtime', sa.Integer(), nullable=True),
        sa.Column('certification', sa.String(20), nullable=True),
        sa.Column('trailer_url', sa.String(500), nullable=True),
        sa.Column('trending_rank', sa.Integer(), nullable=True),
        sa.Column('trending_score', sa.Float(), nullable=True),
        sa.Column('trending_since', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_ephemeral', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tmdb_id', 'type', name='uq_trendings_tmdb_id_type'),
    )
    op.create_index('ix_trendings_tmdb_id', 'trendings', ['tmdb_id'])
    op.create_index('ix_trendings_platform', 'trendings', ['platform'])
    op.create_index('ix_trendings_is_active', 'trendings', ['is_active'])
    op.create_index('ix_trendings_expires_at', 'trendings', ['expires_at'])
    op.create_index('ix_trendings_created_at', 'trendings', ['created_at'])
    op.create_index('ix_trendings_rank_score', 'trendings', ['trending_rank', 'trending_score'])

    op.create_table(
        'coming_soons',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('tmdb_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(10), nullable=False, server_default='movie'),
        sa.Column('platform', sa.String(50), nullable=True),
        sa.Column('overview', sa.Text(), nullable=True),
        sa.Column('poster_path', sa.String(500), nullable=True),
        sa.Column('backdrop_path', sa.String(500), nullable=True),
        sa.Column('release_date', sa.Date(), nullable=False),
        sa.Column('genres', ARRAY(sa.String()), nullable=False, server_default='{}'),
        sa.Column('status', sa.String(20), nullable=False, server_default='announced'),
        sa.Column('tmdb_rating', sa.Float(), nullable=True),
        sa.Column('tmdb_vote_count', sa.Integer(), nullable=True),
        sa.Column('popularity', sa.Float(), nullable=True),
        sa.Column('anticipation_score', sa.Float(), nullable=True),
        sa.Column('anticipation_rank', sa.Integer(), nullable=True),
        sa.Column('trailer_url', sa.String(500), nullable=True),
        sa.Column('language', sa.String(10), nullable=True),
        sa.Column('runtime', sa.Integer(), nullable=True),
        sa.Column('director', sa.String(255), nullable=True),
        sa.Column('cast', ARRAY(sa.String()), nullable=False, server_default='{}'),
        sa.Column('production_companies', ARRAY(sa.String()), nullable=False, server_default='{}'),
        sa.Column('budget', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tmdb_id', 'type', name='uq_coming_soons_tmdb_id_type'),
    )
    op.create_index('ix_coming_soons_tmdb_id', 'coming_soons', ['tmdb_id'])
    op.create_index('ix_coming_soons_release_date', 'coming_soons', ['release_date'])
    op.create_index('ix_coming_soons_is_active', 'coming_soons', ['is_active'])
    # Genre filter uses array containment
    op.execute("CREATE INDEX ix_coming_soons_genres ON coming_soons USING gin (genres);")

    op.create_table(
        'media',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('tmdb_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('overview', sa.Text(), nullable=True),
        sa.Column('release_date', sa.Date(), nullable=True),
        sa.Column('poster_url', sa.String(500), nullable=True),
        sa.Column('backdrop_url', sa.String(500), nullable=True),
        sa.Column('genres', sa.String(500), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('runtime', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tmdb_id', 'type', name='uq_media_tmdb_id_type'),
    )
    op.create_index('ix_media_tmdb_id', 'media', ['tmdb_id'])

    op.create_table(
        'journal_entries',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('media_id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('watched_on', sa.Date(), nullable=True),
        sa.Column('tags', ARRAY(sa.String()), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['media_id'], ['media.id'],
            name='fk_journal_entries_media_id',
            ondelete='CASCADE'
        ),
    )
    op.create_index('ix_journal_entries_user_id', 'journal_entries', ['user_id'])
    op.create_index('ix_journal_entries_media_id', 'journal_entries', ['media_id'])

    op.create_table(
        'user_ratings',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('tmdb_id', sa.Integer(), nullable=False),
        sa.Column('content_type', sa.String(20), nullable=False),
        sa.Column('media_type', sa.String(10), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('is_notable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_unfavorable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_watchlisted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('mood_rating', sa.String(20), nullable=True),
        sa.Column('anticipation_level', sa.Integer(), nullable=True),
        sa.Column('tags', ARRAY(sa.String()), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'tmdb_id', 'content_type', 'media_type',
            name='uq_user_ratings_user_title'
        ),
        sa.CheckConstraint('rating BETWEEN 1 AND 10', name='ck_user_ratings_rating_range'),
    )
    op.create_index('ix_user_ratings_user_id', 'user_ratings', ['user_id'])
    op.create_index('ix_user_ratings_tmdb_id', 'user_ratings', ['tmdb_id'])
    op.create_index('ix_user_ratings_updated_at', 'user_ratings', ['updated_at'])


def downgrade() -> None:
    """Drop all content tables in reverse dependency order."""
    op.drop_table('user_ratings')
    op.drop_table('journal_entries')
    op.drop_table('media')
    op.execute("DROP INDEX IF EXISTS ix_coming_soons_genres;")
    op.drop_table('coming_soons')
    op.drop_table('trendings')
