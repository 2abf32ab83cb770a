"""create recovery journey tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Enrollment, per-day task instances, completion records and symptom reports.
The (patient_id, day_number, template_key) unique constraint lets
concurrent first reads of a day converge on one set of rows.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'recovery_enrollment',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('patient_id', sa.String(length=128), nullable=False),
        sa.Column('surgery_type', sa.Text(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('patient_id', name='uq_recovery_enrollment_patient'),
    )

    op.create_table(
        'recovery_task_instance',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('patient_id', sa.String(length=128), nullable=False),
        sa.Column('enrollment_id', sa.Uuid(), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('template_key', sa.Text(), nullable=False),
        sa.Column('surgery_type', sa.Text(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('estimated_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('difficulty_level', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['enrollment_id'], ['recovery_enrollment.id'], ),
        sa.UniqueConstraint('patient_id', 'day_number', 'template_key', name='uq_recovery_task_instance_patient_day_template'),
        sa.CheckConstraint('day_number >= 1', name='ck_recovery_task_instance_day_positive'),
        sa.CheckConstraint('difficulty_level BETWEEN 1 AND 5', name='ck_recovery_task_instance_difficulty'),
    )
    op.create_index('ix_recovery_task_instance_patient_day', 'recovery_task_instance', ['patient_id', 'day_number'])

    op.create_table(
        'recovery_task_completion',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('task_instance_id', sa.Uuid(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['task_instance_id'], ['recovery_task_instance.id'], ),
        sa.UniqueConstraint('task_instance_id', name='uq_recovery_task_completion_instance'),
    )

    op.create_table(
        'symptom_report',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('patient_id', sa.String(length=128), nullable=False),
        sa.Column('symptoms', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('severity_level', sa.Integer(), nullable=False),
        sa.Column('requires_emergency', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('doctor_notified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('severity_level BETWEEN 1 AND 5', name='ck_symptom_report_severity'),
    )
    op.create_index('ix_symptom_report_patient_created', 'symptom_report', ['patient_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_symptom_report_patient_created', table_name='symptom_report')
    op.drop_table('symptom_report')
    op.drop_table('recovery_task_completion')
    op.drop_index('ix_recovery_task_instance_patient_day', table_name='recovery_task_instance')
    op.drop_table('recovery_task_instance')
    op.drop_table('recovery_enrollment')
