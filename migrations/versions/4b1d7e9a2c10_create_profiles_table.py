"""create_profiles_table

Revision ID: 4b1d7e9a2c10
Revises:
Create Date: 2026-09-28 10:14:52.318204

"""
from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b1d7e9a2c10'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the profiles table with referral columns."""
    op.create_table('profiles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), server_default='', nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('referral_code', sa.String(length=32), nullable=False),
        sa.Column('referred_by', sa.UUID(), nullable=True),
        sa.Column('referral_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('qr_code_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('referral_count >= 0', name='ck_profiles_referral_count_non_negative'),
        sa.CheckConstraint(
            'referred_by IS NULL OR referred_by <> id',
            name='ck_profiles_no_self_referral',
        ),
        sa.ForeignKeyConstraint(['id'], ['auth.users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_by'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referral_code'),
    )
    op.create_index('ix_profiles_referred_by', 'profiles', ['referred_by'], unique=False)
    op.create_index('ix_profiles_referral_count', 'profiles', ['referral_count'], unique=False)
    # Codes are matched case-insensitively
    op.create_index(
        'ux_profiles_referral_code_lower',
        'profiles',
        [sa.text('lower(referral_code)')],
        unique=True,
    )


def downgrade() -> None:
    """Drop the profiles table."""
    op.drop_index('ux_profiles_referral_code_lower', table_name='profiles')
    op.drop_index('ix_profiles_referral_count', table_name='profiles')
    op.drop_index('ix_profiles_referred_by', table_name='profiles')
    op.drop_table('profiles')
