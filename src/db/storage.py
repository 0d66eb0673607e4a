from __future__ import annotations

import asyncio
from typing import Dict, Literal, Optional, Tuple

from db.database import connect
from utils.logger import get_logger

_logger = get_logger(__name__)

_Op = Tuple[Literal["set", "remove"], str, Optional[str]]


class PersistentStorage:
    """
    Durable key-value storage for client state.

    Writes are accepted synchronously (set_item / remove_item never await) and
    drained in order by a single writer task, so the stores can persist on
    every mutation without suspending. Reads happen once per key at startup
    through the async `load`.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._queue: asyncio.Queue[_Op] = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None
        self._cache: Dict[str, Optional[str]] = {}

    async def open(self) -> None:
        """Start the writer task. Safe to call more than once."""
        if self._writer is not None and not self._writer.done():
            return
        # touch the file so the table exists before the first read
        async with connect(self.db_path):
            pass
        self._writer = asyncio.create_task(self._drain(), name="storage-writer")

    async def close(self) -> None:
        if self._writer is None:
            return
        await self.flush()
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        self._writer = None

    async def flush(self) -> None:
        """Wait until every queued write has reached the database."""
        if self._writer is None or self._writer.done():
            return
        await self._queue.join()

    async def load(self, key: str) -> Optional[str]:
        """Read the raw value stored under key, or None."""
        if key in self._cache:
            return self._cache[key]
        async with connect(self.db_path) as conn:
            cur = await conn.execute("SELECT value FROM kv_store WHERE key = ?;", (key,))
            row = await cur.fetchone()
            await cur.close()
        value = row[0] if row else None
        self._cache[key] = value
        return value

    def set_item(self, key: str, value: str) -> None:
        self._cache[key] = value
        self._queue.put_nowait(("set", key, value))

    def remove_item(self, key: str) -> None:
        self._cache[key] = None
        self._queue.put_nowait(("remove", key, None))

    async def _drain(self) -> None:
        while True:
            op, key, value = await self._queue.get()
            try:
                async with connect(self.db_path) as conn:
                    if op == "set":
                        await conn.execute(
                            """
                            INSERT INTO kv_store(key, value, updated_at)
                            VALUES (?, ?, CURRENT_TIMESTAMP)
                            ON CONFLICT(key) DO UPDATE
                                SET value = excluded.value,
                                    updated_at = excluded.updated_at;
                            """,
                            (key, value),
                        )
                    else:
                        await conn.execute("DELETE FROM kv_store WHERE key = ?;", (key,))
                    await conn.commit()
                _logger.debug(f"storage {op} {key!r}")
            except Exception:
                # the in-memory state is still authoritative; next write retries the key
                _logger.exception(f"Failed to persist {op} for key {key!r}")
            finally:
                self._queue.task_done()
