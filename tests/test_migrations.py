"""
Tests for the Alembic baseline migration.
"""
from sqlalchemy import create_engine, inspect

from app.db.migrate import run_migrations


def test_run_migrations_creates_schema(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'migrated.db'}"

    run_migrations(database_url)
    # idempotent
    run_migrations(database_url)

    engine = create_engine(database_url)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    assert {"users", "job_postings", "screening_jobs", "screening_tasks", "screening_results", "alembic_version"} <= tables

    unique = inspector.get_unique_constraints("screening_results")
    assert any(set(c["column_names"]) == {"screening_job_id", "candidate_id"} for c in unique)
    engine.dispose()
