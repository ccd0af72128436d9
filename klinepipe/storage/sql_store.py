"""Database-backed content store."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from urllib.parse import unquote

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from klinepipe.errors import StoreError
from klinepipe.storage.db import make_sessionmaker
from klinepipe.storage.models import KlinePayload

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _split_key(key: str) -> tuple[str, str]:
    # klines/<timeframe>/<symbol>.json
    parts = key.split("/")
    if len(parts) != 3:
        return "", key
    return unquote(parts[2].removesuffix(".json")), unquote(parts[1])


class SqlContentStore:
    """Stores payloads in ``kline_payloads`` with one row per key.

    Every write opens its own session, so concurrent tasks never share one.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = make_sessionmaker(engine)
        self._insert = _INSERTS.get(engine.dialect.name)
        if self._insert is None:
            raise ValueError(f"Unsupported database dialect for upsert: {engine.dialect.name}")

    async def write(self, key: str, data: bytes) -> None:
        symbol, timeframe = _split_key(key)
        stmt = self._insert(KlinePayload).values(
            key=key,
            symbol=symbol,
            timeframe=timeframe,
            payload=data,
            size_bytes=len(data),
            stored_at=datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={
                "payload": stmt.excluded.payload,
                "size_bytes": stmt.excluded.size_bytes,
                "stored_at": stmt.excluded.stored_at,
            },
        )
        try:
            async with self.session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database write failed for {key}: {e}", exc_info=True)
            raise StoreError(key, f"database write failed: {e}") from e
        logger.debug(f"Stored {len(data)} bytes at {key}")

    async def read(self, key: str) -> bytes | None:
        async with self.session_factory() as session:
            res = await session.execute(select(KlinePayload.payload).where(KlinePayload.key == key))
            return res.scalar_one_or_none()
