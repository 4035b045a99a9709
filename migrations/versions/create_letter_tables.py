"""Create user, business, recipient and draft tables

Revision ID: create_letter_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'create_letter_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=120), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=256)),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('phone', sa.String(length=20)),
        sa.Column('verify_account', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_held', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.Column('last_login', sa.DateTime()),
    )

    op.create_table(
        'business',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('phone', sa.String(length=40)),
        sa.Column('email', sa.String(length=120)),
        sa.Column('website', sa.String(length=255)),
        sa.Column('header_image', sa.String(length=1024)),
        sa.Column('footer_image', sa.String(length=1024)),
        sa.Column('seal_url', sa.String(length=1024)),
        *_timestamps(),
    )
    op.create_index('ix_business_user_id', 'business', ['user_id'])

    op.create_table(
        'recipient',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('contact_person', sa.String(length=200)),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('email', sa.String(length=120)),
        sa.Column('phone', sa.String(length=40)),
        *_timestamps(),
    )
    op.create_index('ix_recipient_user_id', 'recipient', ['user_id'])

    op.create_table(
        'draft',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('business_id', sa.Integer(), sa.ForeignKey('business.id', ondelete='SET NULL')),
        sa.Column('recipient_id', sa.Integer(), sa.ForeignKey('recipient.id', ondelete='SET NULL')),
        sa.Column('ref_no', sa.String(length=100)),
        sa.Column('date', sa.Date()),
        sa.Column('subject', sa.String(length=500)),
        sa.Column('content', sa.Text()),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='DRAFT'),
        sa.Column('include_seal', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('layout', sa.JSON()),
        *_timestamps(),
    )
    op.create_index('ix_draft_user_id', 'draft', ['user_id'])


def downgrade():
    op.drop_index('ix_draft_user_id', table_name='draft')
    op.drop_table('draft')
    op.drop_index('ix_recipient_user_id', table_name='recipient')
    op.drop_table('recipient')
    op.drop_index('ix_business_user_id', table_name='business')
    op.drop_table('business')
    op.drop_table('user')
