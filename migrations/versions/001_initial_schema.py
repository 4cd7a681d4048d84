"""Initial schema

Revision ID: initial_schema
Revises:
Create Date: 2026-10-18

Adds tables for:
- users, user_profiles (onboarding state machine)
- linkedin_profiles, linkedin_posts, post_embeddings
- style_profiles
- chats, chat_messages
- long_term_memory
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'user_profiles',
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('onboarding_status', sa.String(32), nullable=False, server_default='linkedin_url_pending'),
        sa.Column('linkedin_url', sa.String(512), nullable=True),
        sa.Column('goals_json', postgresql.JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'linkedin_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('headline', sa.String(512), nullable=True),
        sa.Column('about', sa.Text, nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('experience_json', postgresql.JSONB, nullable=True),
        sa.Column('raw_json', postgresql.JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'linkedin_posts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('raw_text', sa.Text, nullable=True),
        sa.Column('text', sa.Text, nullable=True),
        sa.Column('posted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('likes_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('comments_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('shares_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('impressions_count', sa.Integer, nullable=True),
        sa.Column('engagement_score', sa.Float, nullable=False, server_default='0'),
        sa.Column('is_high_performing', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('topic_hint', sa.String(255), nullable=True),
        sa.Column('raw_json', postgresql.JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_linkedin_posts_user_score', 'linkedin_posts', ['user_id', 'engagement_score'])

    op.create_table(
        'post_embeddings',
        sa.Column('post_id', sa.String(36), sa.ForeignKey('linkedin_posts.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, index=True),
        sa.Column('vector', postgresql.JSONB, nullable=False),
        sa.Column('dimension', sa.Integer, nullable=False),
        sa.Column('text_hash', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'style_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('style_json', postgresql.JSONB, nullable=False),
        sa.Column('data_confidence_level', sa.String(10), nullable=False),
        sa.Column('posts_analyzed', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'chats',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('chat_id', sa.String(36), sa.ForeignKey('chats.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('metadata', postgresql.JSONB, nullable=True, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_chat_messages_chat_created', 'chat_messages', ['chat_id', 'created_at'])

    op.create_table(
        'long_term_memory',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('summary_type', sa.String(32), nullable=False),
        sa.Column('content', postgresql.JSONB, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'summary_type', name='uq_long_term_memory_user_type'),
    )


def downgrade():
    op.drop_table('long_term_memory')
    op.drop_index('idx_chat_messages_chat_created', table_name='chat_messages')
    op.drop_table('chat_messages')
    op.drop_table('chats')
    op.drop_table('style_profiles')
    op.drop_table('post_embeddings')
    op.drop_index('idx_linkedin_posts_user_score', table_name='linkedin_posts')
    op.drop_table('linkedin_posts')
    op.drop_table('linkedin_profiles')
    op.drop_table('user_profiles')
    op.drop_table('users')
