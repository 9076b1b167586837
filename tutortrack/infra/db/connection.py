from __future__ import annotations

import aiosqlite
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


@dataclass
class Database:
    db_path: str

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        async with aiosqlite.connect(self.db_path) as conn:
            await conn.execute(sql, params)
            await conn.commit()

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        async with aiosqlite.connect(self.db_path) as conn:
            conn.row_factory = aiosqlite.Row
            cur = await conn.execute(sql, params)
            return await cur.fetchone()

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        async with aiosqlite.connect(self.db_path) as conn:
            conn.row_factory = aiosqlite.Row
            cur = await conn.execute(sql, params)
            rows = await cur.fetchall()
            return list(rows)

    async def executescript(self, script: str) -> None:
        async with aiosqlite.connect(self.db_path) as conn:
            await conn.executescript(script)
            await conn.commit()

    async def init_schema(self) -> None:
        """Create the db folder and the tutors/students/sessions tables if missing."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        await self.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
