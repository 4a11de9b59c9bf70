from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Models live in app.db.models and import Base from here; importing that
# package registers every table on Base.metadata (see init_db and alembic/env.py)
