"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

Tables:
- Inventory: rooms, vehicles, transfer_vehicles
- Reservations: reservations
- Chat: conversations, conversation_participants, messages
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _unit_columns():
    """Columns shared by every inventory table"""
    return [
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('provider_id', sa.String(36), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='available'),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('country', sa.String(100), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all database tables."""

    # ===========================================
    # 1. INVENTORY
    # ===========================================
    op.create_table(
        'rooms',
        *_unit_columns(),
        sa.Column('property_name', sa.String(200), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('room_type', sa.String(50), nullable=False, server_default='double'),
        sa.Column('amenities', sa.Text, nullable=True),
        sa.Column('total_rooms', sa.Integer, nullable=False, server_default='1'),
        sa.Column('max_adults', sa.Integer, nullable=False, server_default='2'),
        sa.Column('max_children', sa.Integer, nullable=False, server_default='0'),
        sa.Column('min_stay', sa.Integer, nullable=False, server_default='1'),
        sa.Column('max_stay', sa.Integer, nullable=True),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('cleaning_fee', sa.Numeric(10, 2), nullable=False, server_default='0'),
    )
    op.create_index('ix_rooms_provider_id', 'rooms', ['provider_id'])
    op.create_index('ix_room_search', 'rooms', ['city', 'status', 'room_type'])

    op.create_table(
        'vehicles',
        *_unit_columns(),
        sa.Column('make', sa.String(50), nullable=False),
        sa.Column('model', sa.String(50), nullable=False),
        sa.Column('year', sa.Integer, nullable=True),
        sa.Column('category', sa.String(20), nullable=False, server_default='economy'),
        sa.Column('transmission', sa.String(20), nullable=False, server_default='automatic'),
        sa.Column('seats', sa.Integer, nullable=False, server_default='5'),
        sa.Column('features', sa.Text, nullable=True),
        sa.Column('fleet_size', sa.Integer, nullable=False, server_default='1'),
        sa.Column('daily_rate', sa.Numeric(10, 2), nullable=False),
        sa.Column('weekly_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('monthly_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('insurance_fee', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('deposit', sa.Numeric(10, 2), nullable=False, server_default='0'),
    )
    op.create_index('ix_vehicles_provider_id', 'vehicles', ['provider_id'])
    op.create_index('ix_vehicle_search', 'vehicles', ['city', 'status', 'category'])

    op.create_table(
        'transfer_vehicles',
        *_unit_columns(),
        sa.Column('make', sa.String(50), nullable=False),
        sa.Column('model', sa.String(50), nullable=False),
        sa.Column('category', sa.String(20), nullable=False, server_default='sedan'),
        sa.Column('passengers', sa.Integer, nullable=False, server_default='3'),
        sa.Column('luggage', sa.Integer, nullable=False, server_default='2'),
        sa.Column('airport', sa.String(10), nullable=True),
        sa.Column('features', sa.Text, nullable=True),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('price_per_km', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('airport_surcharge', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('night_surcharge', sa.Numeric(10, 2), nullable=False, server_default='0'),
    )
    op.create_index('ix_transfer_vehicles_provider_id', 'transfer_vehicles', ['provider_id'])
    op.create_index('ix_transfer_vehicle_search', 'transfer_vehicles', ['city', 'status', 'category'])

    # ===========================================
    # 2. RESERVATIONS
    # ===========================================
    op.create_table(
        'reservations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('unit_kind', sa.String(20), nullable=False),
        sa.Column('unit_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('start_at', sa.DateTime, nullable=False),
        sa.Column('end_at', sa.DateTime, nullable=False),
        sa.Column('guests', sa.Integer, nullable=False, server_default='1'),
        sa.Column('guest_name', sa.String(200), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=True),
        sa.Column('guest_phone', sa.String(30), nullable=True),
        sa.Column('special_requests', sa.Text, nullable=True),
        sa.Column('total_price', sa.Numeric(12, 2), server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('details', sa.Text, nullable=True),
        sa.Column('cancellation_reason', sa.Text, nullable=True),
        sa.Column('cancelled_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_reservations_user_id', 'reservations', ['user_id'])
    op.create_index(
        'ix_reservation_unit_window', 'reservations',
        ['unit_kind', 'unit_id', 'status', 'start_at', 'end_at']
    )
    op.create_index('ix_reservation_status_end', 'reservations', ['status', 'end_at'])

    # ===========================================
    # 3. CHAT
    # ===========================================
    op.create_table(
        'conversations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('is_group', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('direct_key', sa.String(80), nullable=True, unique=True),
        sa.Column('last_message_id', sa.String(36), nullable=True),
        sa.Column('last_message_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_conversation_last_message_at', 'conversations', ['last_message_at'])

    op.create_table(
        'conversation_participants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('conversation_id', sa.String(36), sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('joined_at', sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint('conversation_id', 'user_id', name='uq_participant_conversation_user'),
    )
    op.create_index('ix_conversation_participants_user_id', 'conversation_participants', ['user_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('conversation_id', sa.String(36), sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sender_id', sa.String(36), nullable=False),
        sa.Column('text', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_message_conversation_created', 'messages', ['conversation_id', 'created_at'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('messages')
    op.drop_table('conversation_participants')
    op.drop_table('conversations')
    op.drop_table('reservations')
    op.drop_table('transfer_vehicles')
    op.drop_table('vehicles')
    op.drop_table('rooms')
