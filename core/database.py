"""
core/database.py -- Engine construction shared by every store.

Both UserStore and JobStore build their engine here so the connection policy
lives in one place:

  SQLite      check_same_thread=False (FastAPI runs sync routes in a thread
              pool), WAL journal mode, busy timeout = DB_TIMEOUT_SECONDS.
  PostgreSQL  connect_timeout and a server-side statement_timeout, plus
              pool_timeout for pool checkout and pool_pre_ping.

Every storage call is therefore bounded: a hung backend raises
OperationalError after the timeout instead of holding a worker thread forever.

Layer rule: no imports from api/, auth/, or jobs/.
"""

from __future__ import annotations

import math

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_store_engine(db_url: str, timeout_seconds: float = 3.0) -> Engine:
    """Return an Engine for db_url with per-call timeouts applied."""
    connect_args: dict = {}
    engine_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout_seconds
    elif db_url.startswith("postgresql"):
        connect_args["connect_timeout"] = max(1, math.ceil(timeout_seconds))
        connect_args["options"] = f"-c statement_timeout={int(timeout_seconds * 1000)}"
        engine_args["pool_timeout"] = timeout_seconds
        engine_args["pool_pre_ping"] = True

    engine = create_engine(db_url, connect_args=connect_args, **engine_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine
