"""initial_schema

Revision ID: 3f9c2a7d1e40
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum labels are the Python member names, as SQLAlchemy stores them
user_role_enum = postgresql.ENUM('FARMER', 'BUYER', name='user_role_enum', create_type=False)
record_status_enum = postgresql.ENUM(
    'ACTIVE', 'INACTIVE', 'DELETED', name='record_status_enum', create_type=False
)
availability_enum = postgresql.ENUM(
    'MORNING', 'EVENING', 'BOTH', name='availability_enum', create_type=False
)
farm_feature_enum = postgresql.ENUM(
    'ORGANIC',
    'GRASS_FED',
    'A2_MILK',
    'HOME_DELIVERY',
    'BULK_ORDERS',
    'PASTEURIZED',
    'RAW_MILK',
    'ECO_FRIENDLY',
    name='farm_feature_enum',
    create_type=False,
)

_ENUMS = (user_role_enum, record_status_enum, availability_enum, farm_feature_enum)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS postgis')

    bind = op.get_bind()
    # record_status_enum is shared by three tables, so types are created up front
    for enum_type in _ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', user_role_enum, nullable=False),
        sa.Column('avatar', sa.String(length=500), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('address', sa.String(length=200), nullable=True),
        sa.Column('city', sa.String(length=50), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('country', sa.String(length=50), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('status', record_status_enum, nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deactivation_reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'farms',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('address', sa.String(length=200), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=100), nullable=False),
        sa.Column('country', sa.String(length=100), nullable=False),
        sa.Column('pincode', sa.String(length=20), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('contact_phone', sa.String(length=30), nullable=False),
        sa.Column('contact_whatsapp', sa.String(length=30), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('daily_production', sa.Float(), nullable=True),
        sa.Column('available_quantity', sa.Float(), nullable=True),
        sa.Column('rating_average', sa.Float(), nullable=False),
        sa.Column('rating_count', sa.Integer(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('featured', sa.Boolean(), nullable=False),
        sa.Column('status', record_status_enum, nullable=False),
        sa.Column('views', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_farms_owner_id', 'farms', ['owner_id'])
    op.create_index('ix_farms_price', 'farms', ['price'])
    op.create_index('ix_farms_rating_average', 'farms', ['rating_average'])
    op.create_index('ix_farms_status', 'farms', ['status'])
    op.create_index('ix_farms_created_at', 'farms', ['created_at'])
    # Spatial index backing the ST_DWithin radius filter
    op.execute(
        'CREATE INDEX ix_farms_geography ON farms USING GIST '
        '((ST_SetSRID(ST_MakePoint(longitude, latitude), 4326)::geography))'
    )

    op.create_table(
        'farm_images',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('farm_id', sa.Uuid(), nullable=False),
        sa.Column('url', sa.String(length=500), nullable=False),
        sa.Column('alt', sa.String(length=200), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_farm_images_farm_id', 'farm_images', ['farm_id'])

    op.create_table(
        'farm_availability',
        sa.Column('farm_id', sa.Uuid(), nullable=False),
        sa.Column('slot', availability_enum, nullable=False),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('farm_id', 'slot'),
    )

    op.create_table(
        'farm_features',
        sa.Column('farm_id', sa.Uuid(), nullable=False),
        sa.Column('tag', farm_feature_enum, nullable=False),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('farm_id', 'tag'),
    )

    op.create_table(
        'reviews',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('buyer_id', sa.Uuid(), nullable=False),
        sa.Column('farm_id', sa.Uuid(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.String(length=500), nullable=True),
        sa.Column('aspect_quality', sa.Integer(), nullable=True),
        sa.Column('aspect_service', sa.Integer(), nullable=True),
        sa.Column('aspect_value', sa.Integer(), nullable=True),
        sa.Column('aspect_cleanliness', sa.Integer(), nullable=True),
        sa.Column('response_text', sa.String(length=1000), nullable=True),
        sa.Column('responder_id', sa.Uuid(), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('status', record_status_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id']),
        sa.ForeignKeyConstraint(['responder_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('buyer_id', 'farm_id', name='uq_reviews_buyer_farm'),
    )
    op.create_index('ix_reviews_buyer_id', 'reviews', ['buyer_id'])
    op.create_index('ix_reviews_farm_id', 'reviews', ['farm_id'])
    op.create_index('ix_reviews_created_at', 'reviews', ['created_at'])

    op.create_table(
        'review_votes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('review_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('is_helpful', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['review_id'], ['reviews.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('review_id', 'user_id', name='uq_review_votes_review_user'),
    )
    op.create_index('ix_review_votes_review_id', 'review_votes', ['review_id'])

    op.create_table(
        'wishlists',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('buyer_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('buyer_id'),
    )

    op.create_table(
        'wishlist_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('wishlist_id', sa.Uuid(), nullable=False),
        sa.Column('farm_id', sa.Uuid(), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('notes', sa.String(length=200), nullable=False),
        sa.ForeignKeyConstraint(['wishlist_id'], ['wishlists.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wishlist_id', 'farm_id', name='uq_wishlist_items_wishlist_farm'),
    )
    op.create_index('ix_wishlist_items_wishlist_id', 'wishlist_items', ['wishlist_id'])
    op.create_index('ix_wishlist_items_farm_id', 'wishlist_items', ['farm_id'])
    op.create_index('ix_wishlist_items_added_at', 'wishlist_items', ['added_at'])


def downgrade() -> None:
    op.drop_table('wishlist_items')
    op.drop_table('wishlists')
    op.drop_table('review_votes')
    op.drop_table('reviews')
    op.drop_table('farm_features')
    op.drop_table('farm_availability')
    op.drop_table('farm_images')
    op.execute('DROP INDEX IF EXISTS ix_farms_geography')
    op.drop_table('farms')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in reversed(_ENUMS):
        enum_type.drop(bind, checkfirst=True)
