from app.db.session import engine
from app.db.base import Base
import app.db.models  # noqa: F401  registers every model on Base.metadata


def init_db(bind=None):
    """Create all tables directly; used for local SQLite development without Alembic."""
    Base.metadata.create_all(bind=bind or engine)
