"""create_gallery_images_and_links

Revision ID: 3c1d9a7e52b4
Revises:
Create Date: 2026-10-16 10:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d9a7e52b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'gallery_images',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('src', sa.String(), nullable=False),
        sa.Column('alt', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(length=16), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('width', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('src'),
        sa.CheckConstraint('width BETWEEN 1 AND 7', name='ck_gallery_images_width'),
        sa.CheckConstraint("category IN ('finished', 'wip')", name='ck_gallery_images_category'),
    )
    op.create_index(op.f('ix_gallery_images_category'), 'gallery_images', ['category'], unique=False)
    op.create_index(op.f('ix_gallery_images_order'), 'gallery_images', ['order'], unique=False)

    op.create_table(
        'links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('text', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_links_id'), 'links', ['id'], unique=False)
    op.create_index(op.f('ix_links_order'), 'links', ['order'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_links_order'), table_name='links')
    op.drop_index(op.f('ix_links_id'), table_name='links')
    op.drop_table('links')
    op.drop_index(op.f('ix_gallery_images_order'), table_name='gallery_images')
    op.drop_index(op.f('ix_gallery_images_category'), table_name='gallery_images')
    op.drop_table('gallery_images')
