"""initial clinic schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)
JSONB = postgresql.JSONB(astext_type=sa.Text())
MONEY = sa.Numeric(12, 2)
TS = sa.TIMESTAMP(timezone=True)


def _pk():
    return sa.Column('id', UUID, primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _timestamps():
    return [
        sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', TS, server_default=sa.text('now()'), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        _pk(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='receptionist'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', TS, nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role in ('admin','doctor','receptionist')", name='ck_users_role'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'patients',
        _pk(),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('gender', sa.String(10), nullable=False),
        sa.Column('identification', sa.String(20), nullable=False, unique=True),
        sa.Column('identification_type', sa.String(20), nullable=False, server_default='CEDULA'),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('province', sa.String(100), nullable=True),
        sa.Column('has_insurance', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('insurance_provider', sa.String(100), nullable=True),
        sa.Column('insurance_number', sa.String(50), nullable=True),
        sa.Column('occupation', sa.String(100), nullable=True),
        sa.Column('marital_status', sa.String(20), nullable=True),
        sa.Column('blood_type', sa.String(5), nullable=True),
        sa.Column('emergency_contact', JSONB, nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deleted_at', TS, nullable=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("gender in ('MALE','FEMALE','OTHER')", name='ck_patients_gender'),
        sa.CheckConstraint(
            "identification_type in ('CEDULA','PASSPORT','RUC')", name='ck_patients_identification_type'
        ),
    )
    op.create_index('ix_patients_last_name_first_name', 'patients', ['last_name', 'first_name'])
    op.create_index('ix_patients_deleted_at', 'patients', ['deleted_at'])

    op.create_table(
        'recurring_appointments',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('doctor_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('frequency', sa.String(20), nullable=False),
        sa.Column('interval', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('days_of_week', JSONB, nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('occurrences', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=True),
    )

    op.create_table(
        'appointments',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('doctor_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='CONSULTATION'),
        sa.Column('status', sa.String(20), nullable=False, server_default='SCHEDULED'),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('recurring_id', UUID, sa.ForeignKey('recurring_appointments.id'), nullable=True),
        sa.Column('cancelled_at', TS, nullable=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('duration >= 5 AND duration <= 480', name='ck_appointments_duration'),
        sa.CheckConstraint(
            "status in ('SCHEDULED','CONFIRMED','IN_PROGRESS','COMPLETED','CANCELLED','NO_SHOW')",
            name='ck_appointments_status',
        ),
    )
    op.create_index('ix_appointments_doctor_id_date', 'appointments', ['doctor_id', 'date'])
    op.create_index('ix_appointments_patient_id_date', 'appointments', ['patient_id', 'date'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])

    op.create_table(
        'work_schedules',
        _pk(),
        sa.Column('doctor_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('break_start', sa.String(5), nullable=True),
        sa.Column('break_end', sa.String(5), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('doctor_id', 'day_of_week', name='uq_work_schedules_doctor_day'),
        sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_work_schedules_day_of_week'),
    )

    op.create_table(
        'blocked_times',
        _pk(),
        sa.Column('doctor_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=True),
    )
    op.create_index('ix_blocked_times_doctor_id_date', 'blocked_times', ['doctor_id', 'date'])

    op.create_table(
        'odontograms',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('dentition_type', sa.String(20), nullable=False, server_default='PERMANENT'),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('is_current', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('teeth', JSONB, nullable=False),
        sa.Column('general_notes', sa.Text(), nullable=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('patient_id', 'version', name='uq_odontograms_patient_version'),
    )
    op.create_index('ix_odontograms_patient_id_is_current', 'odontograms', ['patient_id', 'is_current'])

    op.create_table(
        'medical_histories',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False, unique=True),
        sa.Column('allergies', JSONB, nullable=False, server_default='[]'),
        sa.Column('chronic_diseases', JSONB, nullable=False, server_default='[]'),
        sa.Column('current_medications', JSONB, nullable=False, server_default='[]'),
        sa.Column('previous_surgeries', JSONB, nullable=False, server_default='[]'),
        sa.Column('family_history', JSONB, nullable=False, server_default='[]'),
        sa.Column('last_dental_visit', sa.Date(), nullable=True),
        sa.Column('brushing_frequency', sa.Integer(), nullable=True),
        sa.Column('uses_floss', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('uses_mouthwash', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('smoking_habit', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('alcohol_consumption', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('bruxism', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('nail_biting', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_pregnant', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('gestation_weeks', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'cie10_codes',
        sa.Column('code', sa.String(10), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('chapter', sa.String(20), nullable=True),
    )

    op.create_table(
        'diagnoses',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('doctor_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('cie10_code', sa.String(10), sa.ForeignKey('cie10_codes.code'), nullable=False),
        sa.Column('cie10_name', sa.Text(), nullable=False),
        sa.Column('tooth_number', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('severity', sa.String(20), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_diagnoses_patient_id_date', 'diagnoses', ['patient_id', 'date'])
    op.create_index('ix_diagnoses_cie10_code', 'diagnoses', ['cie10_code'])

    op.create_table(
        'treatment_catalog',
        _pk(),
        sa.Column('code', sa.String(20), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('base_cost', MONEY, nullable=False),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        'treatments',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('doctor_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('diagnosis_id', UUID, sa.ForeignKey('diagnoses.id'), nullable=True),
        sa.Column('catalog_id', UUID, sa.ForeignKey('treatment_catalog.id'), nullable=False),
        sa.Column('tooth_number', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PLANNED'),
        sa.Column('cost', MONEY, nullable=False),
        sa.Column('paid', MONEY, nullable=False, server_default='0'),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column('planned_date', sa.Date(), nullable=True),
        sa.Column('completed_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status in ('PLANNED','IN_PROGRESS','COMPLETED','CANCELLED')", name='ck_treatments_status'
        ),
        sa.CheckConstraint('paid <= cost', name='ck_treatments_paid_le_cost'),
    )
    op.create_index('ix_treatments_patient_id', 'treatments', ['patient_id'])
    op.create_index('ix_treatments_diagnosis_id', 'treatments', ['diagnosis_id'])

    op.create_table(
        'treatment_plans',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('total_cost', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('approved_at', TS, nullable=True),
        sa.Column('pdf_url', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_treatment_plans_patient_id', 'treatment_plans', ['patient_id'])

    op.create_table(
        'transactions',
        _pk(),
        sa.Column('type', sa.String(10), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=True),
        sa.Column('appointment_id', UUID, sa.ForeignKey('appointments.id'), nullable=True),
        sa.Column('invoice_number', sa.String(50), nullable=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('deleted_at', TS, nullable=True),
        sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint("type in ('INCOME','EXPENSE')", name='ck_transactions_type'),
        sa.CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
    )
    op.create_index('ix_transactions_date_type', 'transactions', ['date', 'type'])

    op.create_table(
        'payment_plans',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('treatment_id', UUID, sa.ForeignKey('treatments.id'), nullable=False),
        sa.Column('total_amount', MONEY, nullable=False),
        sa.Column('paid_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('balance', MONEY, nullable=False),
        sa.Column('total_installments', sa.Integer(), nullable=False),
        sa.Column('frequency', sa.String(20), nullable=False, server_default='MONTHLY'),
        sa.Column('first_due_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'total_installments >= 1 AND total_installments <= 60', name='ck_payment_plans_installments'
        ),
    )

    op.create_table(
        'installments',
        _pk(),
        sa.Column('payment_plan_id', UUID, sa.ForeignKey('payment_plans.id', ondelete='CASCADE'), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('paid_at', sa.Date(), nullable=True),
    )
    op.create_index('ix_installments_status_due_date', 'installments', ['status', 'due_date'])

    op.create_table(
        'patient_payments',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('treatment_id', UUID, sa.ForeignKey('treatments.id'), nullable=True),
        sa.Column('appointment_id', UUID, sa.ForeignKey('appointments.id'), nullable=True),
        sa.Column('installment_id', UUID, sa.ForeignKey('installments.id'), nullable=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('concept', sa.String(200), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('receipt_number', sa.String(50), nullable=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_patient_payments_amount_positive'),
    )
    op.create_index('ix_patient_payments_patient_id_date', 'patient_payments', ['patient_id', 'date'])

    op.create_table(
        'expenses',
        _pk(),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('supplier', sa.String(200), nullable=True),
        sa.Column('invoice_number', sa.String(50), nullable=True),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('deleted_at', TS, nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_expenses_amount_positive'),
    )
    op.create_index('ix_expenses_category_date', 'expenses', ['category', 'date'])

    op.create_table(
        'follow_ups',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('completed_at', TS, nullable=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("priority in ('LOW','MEDIUM','HIGH','URGENT')", name='ck_follow_ups_priority'),
        sa.CheckConstraint(
            "status in ('PENDING','IN_PROGRESS','COMPLETED','CANCELLED')", name='ck_follow_ups_status'
        ),
    )
    op.create_index('ix_follow_ups_status_due_date', 'follow_ups', ['status', 'due_date'])
    op.create_index('ix_follow_ups_patient_id', 'follow_ups', ['patient_id'])

    op.create_table(
        'patient_notes',
        _pk(),
        sa.Column('patient_id', UUID, sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('author_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(200), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_patient_notes_patient_id', 'patient_notes', ['patient_id'])

    op.create_table(
        'audit_logs',
        _pk(),
        sa.Column('actor_user_id', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('action_type', sa.String(50), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=True),
        sa.Column('target_id', UUID, nullable=True),
        sa.Column('status', sa.String(10), nullable=False, server_default='success'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', JSONB, nullable=True),
        sa.Column('created_at', TS, server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("status in ('success','failure')", name='ck_audit_logs_status'),
    )
    op.create_index('ix_audit_logs_actor_user_id_created_at', 'audit_logs', ['actor_user_id', 'created_at'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_logs_target', 'audit_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'audit_logs',
        'patient_notes',
        'follow_ups',
        'expenses',
        'patient_payments',
        'installments',
        'payment_plans',
        'transactions',
        'treatment_plans',
        'treatments',
        'treatment_catalog',
        'diagnoses',
        'cie10_codes',
        'medical_histories',
        'odontograms',
        'blocked_times',
        'work_schedules',
        'appointments',
        'recurring_appointments',
        'patients',
        'users',
    ):
        op.drop_table(table)
