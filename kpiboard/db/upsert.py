"""
Dialect-specific INSERT constructs for ON CONFLICT upserts.

Both supported backends (SQLite, PostgreSQL) expose the same
`on_conflict_do_update` / `on_conflict_do_nothing` / `excluded` API.
"""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def dialect_insert(db: Session, model):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upserts are not supported on dialect '{dialect}'")
