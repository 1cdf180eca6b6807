"""baseline_schema

Revision ID: 5c1d7e93a0b2
Revises: 
Create Date: 2026-10-19 10:12:44.120318

Users, profiles, interactions, matches, plans, subscriptions and processed
payment events.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1d7e93a0b2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_STATUS_SQL = sa.text("status IN ('pending', 'active')")


def create_profile_table(table_name: str, *extra_columns: sa.Column) -> None:
    op.create_table(table_name,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('sport_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        *extra_columns,
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f(f'ix_{table_name}_id'), table_name, ['id'], unique=False)
    op.create_index(op.f(f'ix_{table_name}_user_id'), table_name, ['user_id'], unique=True)
    op.create_index(op.f(f'ix_{table_name}_sport_id'), table_name, ['sport_id'], unique=False)
    op.create_index(op.f(f'ix_{table_name}_location_id'), table_name, ['location_id'], unique=False)


def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    create_profile_table('athlete',
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('position', sa.String(), nullable=True),
    )
    create_profile_table('agent',
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('agency', sa.String(), nullable=True),
    )
    create_profile_table('team',
        sa.Column('website', sa.String(), nullable=True),
    )

    op.create_table('interactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('swiper_id', sa.Integer(), nullable=False),
        sa.Column('swiped_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('swiper_id <> swiped_id', name='chk_interaction_no_self'),
        sa.ForeignKeyConstraint(['swiper_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['swiped_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('swiper_id', 'swiped_id', name='uq_interaction_pair')
    )
    op.create_index(op.f('ix_interactions_id'), 'interactions', ['id'], unique=False)
    op.create_index(op.f('ix_interactions_swiper_id'), 'interactions', ['swiper_id'], unique=False)
    op.create_index(op.f('ix_interactions_swiped_id'), 'interactions', ['swiped_id'], unique=False)
    op.create_index('idx_interaction_swiper_created', 'interactions', ['swiper_id', 'created_at'], unique=False)

    op.create_table('matches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_lo', sa.Integer(), nullable=False),
        sa.Column('user_hi', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('user_lo < user_hi', name='chk_match_canonical_pair'),
        sa.ForeignKeyConstraint(['user_lo'], ['users.id'], ),
        sa.ForeignKeyConstraint(['user_hi'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_lo', 'user_hi', name='uq_match_pair')
    )
    op.create_index(op.f('ix_matches_id'), 'matches', ['id'], unique=False)
    op.create_index(op.f('ix_matches_user_lo'), 'matches', ['user_lo'], unique=False)
    op.create_index(op.f('ix_matches_user_hi'), 'matches', ['user_hi'], unique=False)
    op.create_index(op.f('ix_matches_created_at'), 'matches', ['created_at'], unique=False)

    op.create_table('plans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=True),
        sa.Column('stripe_price_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_plans_id'), 'plans', ['id'], unique=False)

    op.create_table('subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('plan_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('stripe_session_id', sa.String(), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(), nullable=True),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_subscriptions_id'), 'subscriptions', ['id'], unique=False)
    op.create_index(op.f('ix_subscriptions_user_id'), 'subscriptions', ['user_id'], unique=False)
    op.create_index(op.f('ix_subscriptions_status'), 'subscriptions', ['status'], unique=False)
    op.create_index(op.f('ix_subscriptions_end_date'), 'subscriptions', ['end_date'], unique=False)
    op.create_index(op.f('ix_subscriptions_stripe_session_id'), 'subscriptions', ['stripe_session_id'], unique=False)
    op.create_index(op.f('ix_subscriptions_stripe_subscription_id'), 'subscriptions', ['stripe_subscription_id'], unique=False)
    op.create_index(
        'uq_subscription_user_open', 'subscriptions', ['user_id'], unique=True,
        postgresql_where=OPEN_STATUS_SQL,
        sqlite_where=OPEN_STATUS_SQL,
    )

    op.create_table('payment_events',
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('applied', sa.Boolean(), nullable=False),
        sa.Column('received_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('event_id')
    )
    op.create_index(op.f('ix_payment_events_event_type'), 'payment_events', ['event_type'], unique=False)


def downgrade() -> None:
    op.drop_table('payment_events')
    op.drop_index('uq_subscription_user_open', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_table('plans')
    op.drop_table('matches')
    op.drop_table('interactions')
    op.drop_table('team')
    op.drop_table('agent')
    op.drop_table('athlete')
    op.drop_table('users')
