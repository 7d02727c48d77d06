"""Initial plant flashcards schema

Revision ID: 0001_initial_schema
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Accounts
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('oauth_provider', sa.String(50), nullable=True),
        sa.Column('oauth_subject', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_oauth_subject', 'users', ['oauth_subject'])

    op.create_table(
        'refresh_token',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token_hash', sa.String(255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_refresh_token_user_id', 'refresh_token', ['user_id'])
    op.create_index('ix_refresh_token_token_hash', 'refresh_token', ['token_hash'])

    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('website', sa.String(500), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('show_admin_plants', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('show_admin_collections', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('show_admin_sightings', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Catalog
    op.create_table(
        'plants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('scientific_name', sa.String(255), nullable=False),
        sa.Column('common_name', sa.String(255), nullable=True),
        sa.Column('family', sa.String(100), nullable=True),
        sa.Column('genus', sa.String(100), nullable=True),
        sa.Column('specific_epithet', sa.String(100), nullable=True),
        sa.Column('infraspecies_rank', sa.String(20), nullable=True),
        sa.Column('infraspecies_epithet', sa.String(100), nullable=True),
        sa.Column('variety', sa.String(100), nullable=True),
        sa.Column('forma', sa.String(100), nullable=True),
        sa.Column('cultivar', sa.String(100), nullable=True),
        sa.Column('hybrid_marker', sa.String(5), nullable=True),
        sa.Column('hybrid_marker_position', sa.String(30), nullable=True),
        sa.Column('native_to', sa.String(255), nullable=True),
        sa.Column('bloom_period', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin_plant', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_plants_id', 'plants', ['id'])
    op.create_index('ix_plants_slug', 'plants', ['slug'], unique=True)
    op.create_index('ix_plants_scientific_name', 'plants', ['scientific_name'])
    op.create_index('ix_plants_is_published', 'plants', ['is_published'])
    op.create_index('ix_plants_user_id', 'plants', ['user_id'])

    # At most one primary image per plant is kept by the image endpoints
    op.create_table(
        'plant_images',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('path', sa.String(500), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_plant_images_id', 'plant_images', ['id'])
    op.create_index('ix_plant_images_plant_id', 'plant_images', ['plant_id'])

    op.create_table(
        'collections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin_collection', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_collections_id', 'collections', ['id'])
    op.create_index('ix_collections_user_id', 'collections', ['user_id'])

    op.create_table(
        'collection_plants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('collection_id', sa.Integer(), sa.ForeignKey('collections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('collection_id', 'plant_id', name='uq_collection_plant')
    )
    op.create_index('ix_collection_plants_collection_id', 'collection_plants', ['collection_id'])
    op.create_index('ix_collection_plants_plant_id', 'collection_plants', ['plant_id'])

    # Study activity
    op.create_table(
        'favorites',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'plant_id', name='uq_favorite_user_plant')
    )
    op.create_index('ix_favorites_user_id', 'favorites', ['user_id'])

    op.create_table(
        'sightings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('observed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_testable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sightings_user_id', 'sightings', ['user_id'])
    op.create_index('ix_sightings_plant_id', 'sightings', ['plant_id'])

    op.create_table(
        'flashcard_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_flashcard_answers_user_id', 'flashcard_answers', ['user_id'])
    op.create_index('ix_flashcard_answers_plant_id', 'flashcard_answers', ['plant_id'])
    op.create_index('ix_flashcard_answers_session_id', 'flashcard_answers', ['session_id'])
    op.create_index('ix_flashcard_answers_answered_at', 'flashcard_answers', ['answered_at'])

    op.create_table(
        'study_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('last_studied_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'plant_id', name='uq_study_user_plant')
    )
    op.create_index('ix_study_sessions_user_id', 'study_sessions', ['user_id'])

    # Audit log
    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('plant_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('diff_json', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])
    op.create_index('ix_audit_log_timestamp', 'audit_log', ['timestamp'])
    op.create_index('ix_audit_log_plant_id', 'audit_log', ['plant_id'])


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('study_sessions')
    op.drop_table('flashcard_answers')
    op.drop_table('sightings')
    op.drop_table('favorites')
    op.drop_table('collection_plants')
    op.drop_table('collections')
    op.drop_table('plant_images')
    op.drop_table('plants')
    op.drop_table('profiles')
    op.drop_table('refresh_token')
    op.drop_table('users')
