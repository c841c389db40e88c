"""Initial homeschool schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-11-01 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

token_purpose = sa.Enum('REFRESH', 'PASSWORD_RESET', 'EMAIL_VERIFICATION', name='tokenpurpose')
attendance_status = sa.Enum('PRESENT', 'ABSENT', 'LATE', 'EXCUSED', name='attendancestatus')
assignment_status = sa.Enum('NOT_STARTED', 'IN_PROGRESS', 'SUBMITTED', 'GRADED', name='assignmentstatus')
task_status = sa.Enum('PENDING', 'IN_PROGRESS', 'COMPLETED', name='taskstatus')
task_priority = sa.Enum('LOW', 'MEDIUM', 'HIGH', name='taskpriority')
payment_method = sa.Enum(
    'CASH', 'CREDIT_CARD', 'DEBIT_CARD', 'CHECK', 'BANK_TRANSFER', 'OTHER', name='paymentmethod'
)
share_permission = sa.Enum('VIEW', 'COPY', name='sharepermission')


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _teacher_fk():
    return sa.Column('teacher_id', sa.Uuid(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False)


def _indexes(table: str, *columns: str, unique: Sequence[str] = ()):
    for column in ('id', 'created_at', *columns):
        op.create_index(f'ix_{table}_{column}', table, [column], unique=column in unique)


def upgrade() -> None:
    op.create_table(
        'teachers',
        *_base_columns(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('profile_image_url', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
    )
    _indexes('teachers', 'email', unique=('email',))

    op.create_table(
        'auth_tokens',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('purpose', token_purpose, nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False, unique=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('user_agent', sa.String(255), nullable=True),
    )
    _indexes('auth_tokens', 'teacher_id', 'purpose')

    op.create_table(
        'students',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('grade_level', sa.String(2), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('profile_image_url', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    _indexes('students', 'teacher_id', 'grade_level', 'is_active')

    op.create_table(
        'subjects',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    _indexes('subjects', 'teacher_id', 'is_active')

    op.create_table(
        'event_types',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.UniqueConstraint('teacher_id', 'name', name='uq_event_types_teacher_name'),
    )
    _indexes('event_types', 'teacher_id')

    op.create_table(
        'calendar_events',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('event_type_id', sa.Uuid(), sa.ForeignKey('event_types.id', ondelete='SET NULL'), nullable=True),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('all_day', sa.Boolean(), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('recurrence_rule', sa.String(255), nullable=True),
        sa.Column('recurrence_end_date', sa.DateTime(), nullable=True),
        sa.Column(
            'parent_event_id', sa.Uuid(), sa.ForeignKey('calendar_events.id', ondelete='CASCADE'), nullable=True
        ),
        sa.Column('recurrence_id', sa.DateTime(), nullable=True),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False),
    )
    _indexes('calendar_events', 'teacher_id', 'event_type_id', 'subject_id', 'start_time', 'parent_event_id')

    op.create_table(
        'event_students',
        sa.Column(
            'event_id', sa.Uuid(), sa.ForeignKey('calendar_events.id', ondelete='CASCADE'), primary_key=True
        ),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'event_attendance',
        *_base_columns(),
        sa.Column('event_id', sa.Uuid(), sa.ForeignKey('calendar_events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('occurrence_start', sa.DateTime(), nullable=False),
        sa.Column('status', attendance_status, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.UniqueConstraint('event_id', 'student_id', 'occurrence_start', name='uq_event_attendance_occurrence'),
    )
    _indexes('event_attendance', 'event_id', 'student_id')

    op.create_table(
        'assignments',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('status', assignment_status, nullable=False),
        sa.Column('score', sa.Numeric(7, 2), nullable=True),
        sa.Column('max_score', sa.Numeric(7, 2), nullable=True),
        sa.Column('grade', sa.String(5), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    _indexes('assignments', 'teacher_id', 'student_id', 'subject_id', 'due_date', 'status')

    op.create_table(
        'assignment_attachments',
        *_base_columns(),
        sa.Column(
            'assignment_id', sa.Uuid(), sa.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_url', sa.String(500), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
    )
    _indexes('assignment_attachments', 'assignment_id')

    op.create_table(
        'tasks',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('priority', task_priority, nullable=False),
        sa.Column('status', task_status, nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    _indexes('tasks', 'teacher_id', 'student_id', 'due_date', 'status')

    op.create_table(
        'report_cards',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('academic_year', sa.String(9), nullable=False),
        sa.Column('term', sa.String(50), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('pdf_url', sa.String(500), nullable=True),
        sa.Column('generated_at', sa.DateTime(), nullable=True),
    )
    _indexes('report_cards', 'teacher_id', 'student_id', 'academic_year')

    op.create_table(
        'report_card_entries',
        *_base_columns(),
        sa.Column(
            'report_card_id', sa.Uuid(), sa.ForeignKey('report_cards.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id', ondelete='SET NULL'), nullable=True),
        sa.Column('subject_name', sa.String(100), nullable=False),
        sa.Column('grade', sa.String(5), nullable=True),
        sa.Column('score', sa.Numeric(7, 2), nullable=True),
        sa.Column('max_score', sa.Numeric(7, 2), nullable=True),
        sa.Column('credits', sa.Numeric(4, 2), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
    )
    _indexes('report_card_entries', 'report_card_id', 'subject_id')

    op.create_table(
        'expense_categories',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('budget', sa.Numeric(10, 2), nullable=True),
        sa.UniqueConstraint('teacher_id', 'name', name='uq_expense_categories_teacher_name'),
    )
    _indexes('expense_categories', 'teacher_id')

    op.create_table(
        'expenses',
        *_base_columns(),
        _teacher_fk(),
        sa.Column(
            'category_id', sa.Uuid(), sa.ForeignKey('expense_categories.id', ondelete='SET NULL'), nullable=True
        ),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id', ondelete='SET NULL'), nullable=True),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id', ondelete='SET NULL'), nullable=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('vendor', sa.String(100), nullable=True),
        sa.Column('payment_method', payment_method, nullable=True),
        sa.Column('receipt_url', sa.String(500), nullable=True),
        sa.Column('is_tax_deductible', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    _indexes('expenses', 'teacher_id', 'category_id', 'student_id', 'subject_id', 'expense_date')

    op.create_table(
        'lesson_plans',
        *_base_columns(),
        _teacher_fk(),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id', ondelete='SET NULL'), nullable=True),
        sa.Column(
            'copied_from_id', sa.Uuid(), sa.ForeignKey('lesson_plans.id', ondelete='SET NULL'), nullable=True
        ),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('grade_level', sa.String(2), nullable=True),
        sa.Column('objectives', sa.JSON(), nullable=False),
        sa.Column('materials', sa.JSON(), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
    )
    _indexes('lesson_plans', 'teacher_id', 'subject_id', 'title', 'grade_level', 'is_public')

    op.create_table(
        'lesson_plan_shares',
        *_base_columns(),
        sa.Column(
            'lesson_plan_id', sa.Uuid(), sa.ForeignKey('lesson_plans.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('shared_by_id', sa.Uuid(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('shared_with_email', sa.String(255), nullable=False),
        sa.Column('shared_with_id', sa.Uuid(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=True),
        sa.Column('permission', share_permission, nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
    )
    _indexes('lesson_plan_shares', 'lesson_plan_id', 'shared_with_email', 'shared_with_id')

    op.create_table(
        'lesson_plan_attachments',
        *_base_columns(),
        sa.Column(
            'lesson_plan_id', sa.Uuid(), sa.ForeignKey('lesson_plans.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_url', sa.String(500), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
    )
    _indexes('lesson_plan_attachments', 'lesson_plan_id')


def downgrade() -> None:
    for table in (
        'lesson_plan_attachments', 'lesson_plan_shares', 'lesson_plans',
        'expenses', 'expense_categories',
        'report_card_entries', 'report_cards',
        'tasks', 'assignment_attachments', 'assignments',
        'event_attendance', 'event_students', 'calendar_events', 'event_types',
        'subjects', 'students', 'auth_tokens', 'teachers',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in (
        share_permission, payment_method, task_priority, task_status, assignment_status,
        attendance_status, token_purpose,
    ):
        enum.drop(bind, checkfirst=True)
