from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    Table,
    Text,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine

SNAPSHOT_ROW_ID = 1

metadata = MetaData()

ledger_snapshots = Table(
    "ledger_snapshots",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("payload", Text, nullable=False),
    Column("saved_at", DateTime, nullable=False, server_default=func.now()),
)


def init_storage(engine: Engine) -> None:
    metadata.create_all(engine)


def save_blob(engine: Engine, blob: str) -> None:
    """Replace the stored snapshot; the table holds at most one row."""
    with engine.begin() as conn:
        result = conn.execute(
            update(ledger_snapshots)
            .where(ledger_snapshots.c.id == SNAPSHOT_ROW_ID)
            .values(payload=blob, saved_at=func.now())
        )
        if result.rowcount == 0:
            conn.execute(insert(ledger_snapshots).values(id=SNAPSHOT_ROW_ID, payload=blob))


def load_blob(engine: Engine) -> str | None:
    with engine.begin() as conn:
        return conn.execute(
            select(ledger_snapshots.c.payload).where(ledger_snapshots.c.id == SNAPSHOT_ROW_ID)
        ).scalar_one_or_none()
