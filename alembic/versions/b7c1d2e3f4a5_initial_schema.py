"""Initial schema: tenants, profiles, students, guardians, kiwify

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'b7c1d2e3f4a5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'TRIAL', 'SUSPENDED', name='tenantstatus'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('role', sa.Enum('STUDENT', 'ADMIN', 'SECRETARY', 'SUPER_ADMIN', name='userrole'), nullable=False),
        sa.Column('tenant_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=True)
    op.create_index(op.f('ix_profiles_tenant_id'), 'profiles', ['tenant_id'], unique=False)

    op.create_table(
        'courses',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('tenant_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_courses_tenant_id'), 'courses', ['tenant_id'], unique=False)

    op.create_table(
        'classes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('tenant_id', sa.String(36), nullable=False),
        sa.Column('course_id', sa.String(36), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('school_year', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_classes_tenant_id'), 'classes', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_classes_course_id'), 'classes', ['course_id'], unique=False)

    op.create_table(
        'students',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('tenant_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('registration_code', sa.String(32), nullable=False),
        sa.Column('school_year', sa.Integer(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('ACTIVE', 'INACTIVE', 'SUSPENDED', 'PRE_ENROLLED', name='studentstatus'),
            nullable=False,
        ),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('class_id', sa.String(36), nullable=True),
        sa.Column('course_id', sa.String(36), nullable=True),
        sa.Column('gender', sa.String(20), nullable=True),
        sa.Column('nationality', sa.String(100), nullable=True),
        sa.Column('naturality', sa.String(100), nullable=True),
        sa.Column('cpf', sa.String(20), nullable=True),
        sa.Column('rg', sa.String(30), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('address_street', sa.String(255), nullable=True),
        sa.Column('address_number', sa.String(20), nullable=True),
        sa.Column('address_neighborhood', sa.String(255), nullable=True),
        sa.Column('address_city', sa.String(255), nullable=True),
        sa.Column('address_state', sa.String(50), nullable=True),
        sa.Column('special_needs', sa.Text(), nullable=True),
        sa.Column('medication_use', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id']),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'registration_code', name='uq_students_tenant_registration_code'),
    )
    op.create_index(op.f('ix_students_tenant_id'), 'students', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_students_user_id'), 'students', ['user_id'], unique=False)
    op.create_index(op.f('ix_students_class_id'), 'students', ['class_id'], unique=False)
    op.create_index(op.f('ix_students_course_id'), 'students', ['course_id'], unique=False)

    op.create_table(
        'guardians',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('tenant_id', sa.String(36), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('relationship', sa.String(50), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('cpf', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_guardians_tenant_id'), 'guardians', ['tenant_id'], unique=False)

    op.create_table(
        'student_guardians',
        sa.Column('student_id', sa.String(36), nullable=False),
        sa.Column('guardian_id', sa.String(36), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['guardian_id'], ['guardians.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('student_id', 'guardian_id'),
    )

    op.create_table(
        'kiwify_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kiwify_product_id', sa.String(255), nullable=False),
        sa.Column('course_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_kiwify_products_id'), 'kiwify_products', ['id'], unique=False)
    op.create_index(op.f('ix_kiwify_products_kiwify_product_id'), 'kiwify_products', ['kiwify_product_id'], unique=True)
    op.create_index(op.f('ix_kiwify_products_course_id'), 'kiwify_products', ['course_id'], unique=False)

    op.create_table(
        'kiwify_purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(255), nullable=False),
        sa.Column('kiwify_product_id', sa.String(255), nullable=True),
        sa.Column('buyer_email', sa.String(255), nullable=True),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_kiwify_purchases_id'), 'kiwify_purchases', ['id'], unique=False)
    op.create_index(op.f('ix_kiwify_purchases_transaction_id'), 'kiwify_purchases', ['transaction_id'], unique=True)
    op.create_index(op.f('ix_kiwify_purchases_kiwify_product_id'), 'kiwify_purchases', ['kiwify_product_id'], unique=False)
    op.create_index(op.f('ix_kiwify_purchases_buyer_email'), 'kiwify_purchases', ['buyer_email'], unique=False)
    op.create_index(op.f('ix_kiwify_purchases_user_id'), 'kiwify_purchases', ['user_id'], unique=False)

    op.create_table(
        'student_courses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.String(36), nullable=False),
        sa.Column('course_id', sa.String(36), nullable=False),
        sa.Column('access_granted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'course_id', name='uq_student_courses_student_course'),
    )
    op.create_index(op.f('ix_student_courses_id'), 'student_courses', ['id'], unique=False)
    op.create_index(op.f('ix_student_courses_student_id'), 'student_courses', ['student_id'], unique=False)
    op.create_index(op.f('ix_student_courses_course_id'), 'student_courses', ['course_id'], unique=False)

    op.create_table(
        'webhook_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('transaction_id', sa.String(255), nullable=True),
        sa.Column('payload', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('status', sa.Enum('PROCESSED', 'FAILED', 'IGNORED', name='eventstatus'), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_webhook_events_id'), 'webhook_events', ['id'], unique=False)
    op.create_index(op.f('ix_webhook_events_event_type'), 'webhook_events', ['event_type'], unique=False)
    op.create_index(op.f('ix_webhook_events_transaction_id'), 'webhook_events', ['transaction_id'], unique=False)
    op.create_index(op.f('ix_webhook_events_received_at'), 'webhook_events', ['received_at'], unique=False)


def downgrade() -> None:
    op.drop_table('webhook_events')
    op.drop_table('student_courses')
    op.drop_table('kiwify_purchases')
    op.drop_table('kiwify_products')
    op.drop_table('student_guardians')
    op.drop_table('guardians')
    op.drop_table('students')
    op.drop_table('classes')
    op.drop_table('courses')
    op.drop_table('profiles')
    op.drop_table('tenants')
    sa.Enum(name='eventstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='studentstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='tenantstatus').drop(op.get_bind(), checkfirst=True)
