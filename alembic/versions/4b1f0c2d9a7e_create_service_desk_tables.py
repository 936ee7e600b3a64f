"""create service desk tables

Revision ID: 4b1f0c2d9a7e
Revises:
Create Date: 2026-10-19 00:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = '4b1f0c2d9a7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOW = sa.text("(STRFTIME('%Y-%m-%d %H:%M:%f', 'now'))")


def upgrade() -> None:
    op.create_table(
        'Employees',
        sa.Column('Employee_ID', sa.String(32), primary_key=True),
        sa.Column('First_Name', sa.String(100), nullable=False, server_default=''),
        sa.Column('Last_Name', sa.String(100), nullable=False, server_default=''),
        sa.Column('Role', sa.String(20), nullable=False, server_default='Regular'),
        sa.Column('Email', sa.String(255), nullable=False),
        sa.Column('Phone', sa.String(50), nullable=False, server_default=''),
        sa.Column('Location', sa.String(255), nullable=False, server_default=''),
        sa.Column('Is_Disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('Password_Hash', sa.String(60), nullable=False),
    )
    op.create_index('ix_Employees_Email', 'Employees', ['Email'], unique=True)

    op.create_table(
        'Tickets',
        sa.Column('Ticket_ID', sa.String(32), primary_key=True),
        sa.Column('Title', sa.String(120), nullable=False),
        sa.Column('Description', sa.Text(), nullable=False, server_default=''),
        sa.Column('Ticket_Type', sa.String(20), nullable=False, server_default='Software'),
        sa.Column('Priority', sa.String(20), nullable=False, server_default='Medium'),
        sa.Column('Deadline', sa.String(23), nullable=True),
        sa.Column('Status', sa.String(20), nullable=False, server_default='Open'),
        sa.Column('Reported_By', sa.String(32), sa.ForeignKey('Employees.Employee_ID'), nullable=False),
        sa.Column('Assigned_To', sa.String(32), sa.ForeignKey('Employees.Employee_ID'), nullable=True),
        sa.Column('Version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('Created_Date', sa.String(23), nullable=False, server_default=NOW),
        sa.Column('LastModified', sa.String(23), nullable=False, server_default=NOW),
        sa.Column('LastModifiedBy', sa.String(32), nullable=True),
        sa.Column('Closed_Date', sa.String(23), nullable=True),
    )
    op.create_index('ix_tickets_reported_by', 'Tickets', ['Reported_By'])
    op.create_index('ix_tickets_assigned_to', 'Tickets', ['Assigned_To'])
    op.create_index('ix_tickets_status', 'Tickets', ['Status'])

    op.create_table(
        'Ticket_Handling',
        sa.Column('ID', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('Ticket_ID', sa.String(32), sa.ForeignKey('Tickets.Ticket_ID'), nullable=False),
        sa.Column('Employee_ID', sa.String(32), sa.ForeignKey('Employees.Employee_ID'), nullable=False),
        sa.Column('Handled_Date', sa.String(23), nullable=False, server_default=NOW),
    )
    op.create_index('ix_Ticket_Handling_Ticket_ID', 'Ticket_Handling', ['Ticket_ID'])
    op.create_index('ix_Ticket_Handling_Employee_ID', 'Ticket_Handling', ['Employee_ID'])


def downgrade() -> None:
    op.drop_index('ix_Ticket_Handling_Employee_ID', table_name='Ticket_Handling')
    op.drop_index('ix_Ticket_Handling_Ticket_ID', table_name='Ticket_Handling')
    op.drop_table('Ticket_Handling')
    op.drop_index('ix_tickets_status', table_name='Tickets')
    op.drop_index('ix_tickets_assigned_to', table_name='Tickets')
    op.drop_index('ix_tickets_reported_by', table_name='Tickets')
    op.drop_table('Tickets')
    op.drop_index('ix_Employees_Email', table_name='Employees')
    op.drop_table('Employees')
