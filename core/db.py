"""
core/db.py -- SQLAlchemy engine construction shared by every store.

auth/store.py and projects/store.py each own their tables but build their
engine here, so SQLite connection settings are identical for both.

Layer rule: core/ is the kernel. No imports from api/, auth/, or projects/.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import SingletonThreadPool


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _is_sqlite_memory(db_url: str) -> bool:
    return db_url.endswith(":memory:") or "mode=memory" in db_url


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url.

    check_same_thread=False because FastAPI runs sync routes in a threadpool;
    a request may land on a different thread than the one that opened the
    pooled connection.

    In-memory SQLite gets SingletonThreadPool: one connection per thread,
    held open so a shared-cache database outlives any single request. Only
    the named shared-cache form (file:name?mode=memory&cache=shared&uri=true)
    shows every thread the same data.
    """
    if not db_url.startswith("sqlite"):
        return create_engine(db_url)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if _is_sqlite_memory(db_url):
        kwargs["poolclass"] = SingletonThreadPool
    engine = create_engine(db_url, **kwargs)
    event.listen(engine, "connect", _set_wal_mode)
    return engine
