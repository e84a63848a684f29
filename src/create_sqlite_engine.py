import pathlib

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.load_secrets import sqlite_path

file_path = pathlib.Path(sqlite_path)
if not file_path.is_absolute():
    file_path = pathlib.Path(__file__).parents[1] / file_path
sqlite_url = f"sqlite+aiosqlite:///{file_path}"


def use_immediate_transactions(engine: AsyncEngine) -> AsyncEngine:
    """Make every transaction on ``engine`` take the SQLite write lock when it begins

    pysqlite defers BEGIN until the first write, so two transactions could read
    the same balance. With the driver's own transaction handling turned off,
    each transaction starts with BEGIN IMMEDIATE and concurrent writers queue up
    on the database lock instead.

    Args:
        engine (AsyncEngine): aiosqlite engine

    Returns:
        AsyncEngine: The same engine
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = use_immediate_transactions(create_async_engine(url=sqlite_url, echo=False))
