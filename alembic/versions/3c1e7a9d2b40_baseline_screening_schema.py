"""baseline_screening_schema

Revision ID: 3c1e7a9d2b40
Revises: 
Create Date: 2026-10-18 09:12:44.518203

Creates users, job postings and the screening tables. Tables that already
exist are left untouched.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '3c1e7a9d2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('password_hash', sa.String(), nullable=False),
            sa.Column('role', sa.String(length=20), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('job_postings'):
        op.create_table('job_postings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('employer_id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=False),
            sa.Column('location', sa.String(), nullable=True),
            sa.Column('required_skills', sa.JSON(), nullable=False),
            sa.Column('nice_to_have_skills', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['employer_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_job_postings_employer_created', 'job_postings', ['employer_id', 'created_at'], unique=False)
        op.create_index(op.f('ix_job_postings_id'), 'job_postings', ['id'], unique=False)
        op.create_index(op.f('ix_job_postings_employer_id'), 'job_postings', ['employer_id'], unique=False)
        op.create_index(op.f('ix_job_postings_title'), 'job_postings', ['title'], unique=False)
        op.create_index(op.f('ix_job_postings_created_at'), 'job_postings', ['created_at'], unique=False)

    if not table_exists('screening_jobs'):
        op.create_table('screening_jobs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('employer_id', sa.Integer(), nullable=False),
            sa.Column('job_id', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('total_resumes', sa.Integer(), nullable=False),
            sa.Column('processed_count', sa.Integer(), nullable=False),
            sa.Column('failed_count', sa.Integer(), nullable=False),
            sa.Column('shortlisted_candidates', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.CheckConstraint('total_resumes >= 1 AND total_resumes <= 500', name='ck_screening_jobs_total_resumes'),
            sa.CheckConstraint('processed_count >= 0 AND processed_count <= total_resumes', name='ck_screening_jobs_processed'),
            sa.ForeignKeyConstraint(['employer_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['job_id'], ['job_postings.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_screening_jobs_employer_created', 'screening_jobs', ['employer_id', 'created_at'], unique=False)
        op.create_index(op.f('ix_screening_jobs_id'), 'screening_jobs', ['id'], unique=False)
        op.create_index(op.f('ix_screening_jobs_employer_id'), 'screening_jobs', ['employer_id'], unique=False)
        op.create_index(op.f('ix_screening_jobs_job_id'), 'screening_jobs', ['job_id'], unique=False)
        op.create_index(op.f('ix_screening_jobs_status'), 'screening_jobs', ['status'], unique=False)
        op.create_index(op.f('ix_screening_jobs_created_at'), 'screening_jobs', ['created_at'], unique=False)

    if not table_exists('screening_tasks'):
        op.create_table('screening_tasks',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('screening_job_id', sa.Integer(), nullable=False),
            sa.Column('filename', sa.String(), nullable=False),
            sa.Column('content', sa.LargeBinary(), nullable=True),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('attempts', sa.Integer(), nullable=False),
            sa.Column('error', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['screening_job_id'], ['screening_jobs.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_screening_tasks_job_status', 'screening_tasks', ['screening_job_id', 'status'], unique=False)
        op.create_index(op.f('ix_screening_tasks_id'), 'screening_tasks', ['id'], unique=False)
        op.create_index(op.f('ix_screening_tasks_screening_job_id'), 'screening_tasks', ['screening_job_id'], unique=False)
        op.create_index(op.f('ix_screening_tasks_status'), 'screening_tasks', ['status'], unique=False)

    if not table_exists('screening_results'):
        op.create_table('screening_results',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('screening_job_id', sa.Integer(), nullable=False),
            sa.Column('task_id', sa.Integer(), nullable=True),
            sa.Column('candidate_id', sa.String(), nullable=False),
            sa.Column('candidate_email', sa.String(), nullable=True),
            sa.Column('resume_filename', sa.String(), nullable=True),
            sa.Column('match_percentage', sa.Integer(), nullable=False),
            sa.Column('skills_matched', sa.JSON(), nullable=False),
            sa.Column('skills_missing', sa.JSON(), nullable=False),
            sa.Column('strengths', sa.JSON(), nullable=False),
            sa.Column('improvement_areas', sa.JSON(), nullable=False),
            sa.Column('recommendations', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.CheckConstraint('match_percentage >= 0 AND match_percentage <= 100', name='ck_screening_results_match'),
            sa.ForeignKeyConstraint(['screening_job_id'], ['screening_jobs.id'], ),
            sa.ForeignKeyConstraint(['task_id'], ['screening_tasks.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('screening_job_id', 'candidate_id', name='uq_screening_results_job_candidate')
        )
        op.create_index('idx_screening_results_job_match', 'screening_results', ['screening_job_id', 'match_percentage'], unique=False)
        op.create_index(op.f('ix_screening_results_id'), 'screening_results', ['id'], unique=False)
        op.create_index(op.f('ix_screening_results_screening_job_id'), 'screening_results', ['screening_job_id'], unique=False)
        op.create_index(op.f('ix_screening_results_candidate_id'), 'screening_results', ['candidate_id'], unique=False)
        op.create_index(op.f('ix_screening_results_match_percentage'), 'screening_results', ['match_percentage'], unique=False)
        op.create_index(op.f('ix_screening_results_created_at'), 'screening_results', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('screening_results')
    op.drop_table('screening_tasks')
    op.drop_table('screening_jobs')
    op.drop_table('job_postings')
    op.drop_table('users')
