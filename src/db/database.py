# manages connection to the local sqlite file, provides helpers internal to db package
import os
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from utils.logger import get_logger

_logger = get_logger(__name__)

KV_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

_initialized: set[str] = set()


async def _init_db(conn: aiosqlite.Connection) -> None:
    await conn.executescript(KV_TABLE_DDL)
    await conn.commit()


@asynccontextmanager
async def connect(db_path: str) -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection to db_path.

    Creates the parent directory and the key-value table on first use.
    """
    parent = os.path.dirname(db_path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = Row

    # the DDL is idempotent, racing first connections are harmless
    if db_path not in _initialized:
        _logger.info(f"Initializing local storage at {db_path}...")
        await _init_db(conn)
        _initialized.add(db_path)
    try:
        yield conn
    finally:
        await conn.close()
