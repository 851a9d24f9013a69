"""
Initial schema: users, members with billing cycles, payment history and
activity log, expenses, inquiries

Revision ID: 001
Revises:
Create Date: 2024-01-01
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

PAYMENT_STATUS = ('Paid', 'Pending', 'Free Trial')


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, server_default='0')


def _timestamps() -> list:
    return [
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    ]


def upgrade() -> None:
    """Create GymDesk tables."""
    payment_status = sa.Enum(*PAYMENT_STATUS, name='paymentstatus')

    op.create_table(
        'users',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_admin', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'members',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True, index=True),
        sa.Column('phone', sa.String(50), nullable=False, index=True),
        sa.Column('dob', sa.Date, nullable=True),
        sa.Column('gender', sa.Enum('Male', 'Female', 'Other', name='gender'), nullable=False, server_default='Male'),
        sa.Column('address', sa.Text, nullable=True),
        sa.Column('emergency_name', sa.String(200), nullable=True),
        sa.Column('emergency_phone', sa.String(50), nullable=True),
        sa.Column('health_notes', sa.Text, nullable=True),
        sa.Column('profile_pic', sa.String(500), nullable=True),
        sa.Column('membership_type', sa.String(100), nullable=False, server_default='Basic'),
        sa.Column('personal_trainer', sa.Enum('Not Assigned', 'Assigned', name='personaltrainer'), nullable=False, server_default='Not Assigned'),
        sa.Column('assigned_trainer', sa.String(200), nullable=True),
        sa.Column('duration', sa.String(20), nullable=False, server_default='1 Month'),
        _money('fee'),
        sa.Column('registration_date', sa.Date, nullable=False),
        sa.Column('start_date', sa.Date, nullable=False, index=True),
        sa.Column('inactive_since', sa.DateTime(timezone=True), nullable=True),
        sa.Column('member_status', sa.Enum('Active', 'Inactive', name='memberstatus'), nullable=False, server_default='Active', index=True),
        sa.Column('reminder_status', sa.Enum('None', 'Promised', name='reminderstatus'), nullable=False, server_default='None'),
        sa.Column('promised_payment_date', sa.Date, nullable=True),
        _money('paid_amount'),
        _money('remaining_amount'),
        sa.Column('payment_status', payment_status, nullable=False, server_default='Pending', index=True),
        sa.Column('created_by_id', sa.String(15), nullable=True),
        sa.Column('created_by_name', sa.String(200), nullable=True),
        sa.Column('updated_by_id', sa.String(15), nullable=True),
        sa.Column('updated_by_name', sa.String(200), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'payment_cycles',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('member_id', sa.String(15), sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer, nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('cycle_months', sa.Integer, nullable=False, server_default='1'),
        _money('fee'),
        _money('paid_amount'),
        _money('remaining_amount'),
        sa.Column('status', payment_status, nullable=False, server_default='Pending'),
        sa.Column('payments', sa.JSON, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'payment_entries',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('member_id', sa.String(15), sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer, nullable=False),
        _money('amount'),
        _money('unapplied_amount'),
        sa.Column('type', sa.Enum('payment', 'adjustment', name='entrytype'), nullable=False, server_default='payment'),
        _money('fee'),
        _money('paid_amount'),
        _money('remaining_amount'),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.Column('by_id', sa.String(15), nullable=True),
        sa.Column('by_name', sa.String(200), nullable=True),
        sa.Column('at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('note', sa.Text, nullable=True),
        sa.Column('payment_month', sa.String(50), nullable=True),
        sa.Column('payment_mode', sa.String(50), nullable=True),
        sa.Column('promise_date', sa.Date, nullable=True),
        sa.Column('allocations', sa.JSON, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'member_activities',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('member_id', sa.String(15), sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer, nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('by_id', sa.String(15), nullable=True),
        sa.Column('by_name', sa.String(200), nullable=True),
        sa.Column('at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('changes', sa.JSON, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'expenses',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        _money('amount'),
        sa.Column('date', sa.Date, nullable=False, index=True),
        sa.Column('note', sa.Text, nullable=True),
        sa.Column('created_by_id', sa.String(15), nullable=True),
        sa.Column('created_by_name', sa.String(200), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'inquiries',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False, index=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('source', sa.String(100), nullable=True),
        sa.Column('status', sa.Enum('New', 'Contacted', 'Interested', 'Not Interested', 'Joined', 'Follow Up', name='inquirystatus'), nullable=False, server_default='New', index=True),
        sa.Column('next_follow_up_date', sa.Date, nullable=True),
        sa.Column('last_contacted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('note', sa.Text, nullable=True),
        sa.Column('follow_ups', sa.JSON, nullable=False),
        sa.Column('created_by_id', sa.String(15), nullable=True),
        sa.Column('created_by_name', sa.String(200), nullable=True),
        sa.Column('updated_by_id', sa.String(15), nullable=True),
        sa.Column('updated_by_name', sa.String(200), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop GymDesk tables."""
    op.drop_table('inquiries')
    op.drop_table('expenses')
    op.drop_table('member_activities')
    op.drop_table('payment_entries')
    op.drop_table('payment_cycles')
    op.drop_table('members')
    op.drop_table('users')

    for enum_name in (
        'inquirystatus', 'entrytype', 'paymentstatus', 'reminderstatus',
        'memberstatus', 'personaltrainer', 'gender'
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
