"""initial maintenance schema

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('tg_id', sa.BigInteger(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_tg_id'), 'users', ['tg_id'], unique=True)
    op.create_index(op.f('ix_users_created_by'), 'users', ['created_by'], unique=False)

    # Buildings
    op.create_table('buildings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_buildings_created_by'), 'buildings', ['created_by'], unique=False)

    # Units
    op.create_table('units',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('building_id', sa.String(length=36), nullable=False),
        sa.Column('unit_number', sa.String(), nullable=False),
        sa.Column('occupant_name', sa.String(), nullable=True),
        sa.Column('occupant_type', sa.String(), nullable=True),
        sa.Column('occupant_start_date', sa.Date(), nullable=True),
        sa.Column('occupant_end_date', sa.Date(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_units_building_id'), 'units', ['building_id'], unique=False)

    # Components
    op.create_table('components',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('building_id', sa.String(length=36), nullable=False),
        sa.Column('unit_id', sa.String(length=36), nullable=True),
        sa.Column('unit_number', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('parent_category', sa.String(), nullable=False),
        sa.Column('sub_category', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('brand', sa.String(), nullable=True),
        sa.Column('model_number', sa.String(), nullable=True),
        sa.Column('serial_number', sa.String(), nullable=True),
        sa.Column('installation_date', sa.Date(), nullable=True),
        sa.Column('warranty_end_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ),
        sa.ForeignKeyConstraint(['unit_id'], ['units.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_components_building_id'), 'components', ['building_id'], unique=False)
    op.create_index(op.f('ix_components_unit_id'), 'components', ['unit_id'], unique=False)

    # Maintenance tasks (masters, one-time tasks and generated instances)
    op.create_table('maintenance_tasks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('building_id', sa.String(length=36), nullable=False),
        sa.Column('component_id', sa.String(length=36), nullable=True),
        sa.Column('component_name', sa.String(), nullable=True),
        sa.Column('unit_id', sa.String(length=36), nullable=True),
        sa.Column('unit_number', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('specialty', sa.String(), nullable=False),
        sa.Column('recurrence', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('cost', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('provider_id', sa.String(length=36), nullable=True),
        sa.Column('task_date', sa.Date(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('recurring_task_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ),
        sa.ForeignKeyConstraint(['component_id'], ['components.id'], ),
        sa.ForeignKeyConstraint(['unit_id'], ['units.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_maintenance_tasks_building_id'), 'maintenance_tasks', ['building_id'], unique=False)
    op.create_index(op.f('ix_maintenance_tasks_component_id'), 'maintenance_tasks', ['component_id'], unique=False)
    op.create_index(op.f('ix_maintenance_tasks_unit_id'), 'maintenance_tasks', ['unit_id'], unique=False)
    op.create_index(op.f('ix_maintenance_tasks_task_date'), 'maintenance_tasks', ['task_date'], unique=False)
    op.create_index(op.f('ix_maintenance_tasks_recurring_task_id'), 'maintenance_tasks', ['recurring_task_id'], unique=False)
    op.create_index('ix_tasks_building_status', 'maintenance_tasks', ['building_id', 'status'], unique=False)

    # Service providers
    op.create_table('service_providers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('specialty', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('website', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('business_owner', sa.String(), nullable=True),
        sa.Column('contact_person', sa.String(), nullable=True),
        sa.Column('logo_url', sa.String(), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_service_providers_user_id'), 'service_providers', ['user_id'], unique=False)
    op.create_index(op.f('ix_service_providers_created_by'), 'service_providers', ['created_by'], unique=False)

    # Service requests (no FKs: cascades delete them explicitly)
    op.create_table('service_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('task_id', sa.String(length=36), nullable=False),
        sa.Column('provider_id', sa.String(length=36), nullable=False),
        sa.Column('specialty', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('generated_email', sa.Text(), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=True),
        sa.Column('cost', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('is_urgent', sa.Boolean(), nullable=False),
        sa.Column('status_history', sa.JSON(), nullable=False),
        sa.Column('comments', sa.JSON(), nullable=False),
        sa.Column('documents', sa.JSON(), nullable=False),
        sa.Column('building_id', sa.String(length=36), nullable=True),
        sa.Column('unit_id', sa.String(length=36), nullable=True),
        sa.Column('unit_number', sa.String(), nullable=True),
        sa.Column('component_name', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_service_requests_task_id'), 'service_requests', ['task_id'], unique=False)
    op.create_index(op.f('ix_service_requests_provider_id'), 'service_requests', ['provider_id'], unique=False)
    op.create_index(op.f('ix_service_requests_building_id'), 'service_requests', ['building_id'], unique=False)

    # Expenses
    op.create_table('expenses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('building_id', sa.String(length=36), nullable=False),
        sa.Column('building_name', sa.String(), nullable=False),
        sa.Column('component_id', sa.String(length=36), nullable=False),
        sa.Column('component_name', sa.String(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('cost', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_expenses_building_id'), 'expenses', ['building_id'], unique=False)

    # Contingency fund documents
    op.create_table('contingency_documents',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('uploaded_by', sa.String(), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Notifications
    op.create_table('notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('link_view', sa.String(), nullable=True),
        sa.Column('link_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('contingency_documents')
    op.drop_table('expenses')
    op.drop_table('service_requests')
    op.drop_table('service_providers')
    op.drop_table('maintenance_tasks')
    op.drop_table('components')
    op.drop_table('units')
    op.drop_table('buildings')
    op.drop_table('users')
