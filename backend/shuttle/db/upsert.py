"""
Dialect-aware INSERT for idempotent writes (ON CONFLICT DO NOTHING / DO UPDATE).

Production runs on PostgreSQL; the test suite runs on SQLite. Both dialects expose the same
on_conflict_* API, so services build the statement once through insert_for().
"""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def insert_for(db: Session, model):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)
