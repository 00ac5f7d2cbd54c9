"""Schema migration runner with a tracking table."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"

# Arbitrary constant shared by every server process; serializes startup migrations.
_ADVISORY_LOCK_KEY = 0x5741_4C4B


class MigrationRunner:
    """Apply ``versions/NNN_description.sql`` files in filename order.

    Applied versions are recorded in ``schema_migrations`` and never re-run.
    Each file runs in its own transaction under an advisory lock, so two
    server processes starting together apply it once.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, versions_dir: Path | None = None) -> None:
        self.pool = pool
        self.versions_dir = versions_dir or VERSIONS_DIR

    async def ensure_table(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    name       TEXT NOT NULL,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> set[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
            return {row["version"] for row in rows}

    def discover(self) -> list[Path]:
        """SQL files sorted by filename (the NNN_ prefix gives the order)."""
        return sorted(self.versions_dir.glob("*.sql"))

    async def run_pending(self) -> list[str]:
        """Apply every pending migration; returns the newly applied versions."""
        await self.ensure_table()
        applied = await self.get_applied()

        newly_applied: list[str] = []
        for sql_path in self.discover():
            version = sql_path.stem
            if version in applied:
                logger.debug(f"Migration {version} already applied, skipping")
                continue
            if await self._apply_one(version, sql_path.name, sql_path.read_text(encoding="utf-8")):
                newly_applied.append(version)

        if newly_applied:
            logger.info(f"Applied {len(newly_applied)} migration(s): {', '.join(newly_applied)}")
        else:
            logger.info("Database schema is up to date")
        return newly_applied

    async def _apply_one(self, version: str, name: str, sql: str) -> bool:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("SELECT pg_advisory_xact_lock($1)", _ADVISORY_LOCK_KEY)
                already = await conn.fetchval(
                    f"SELECT EXISTS(SELECT 1 FROM {self.TRACKING_TABLE} WHERE version = $1)",  # noqa: S608
                    version,
                )
                if already:
                    return False
                logger.info(f"Applying migration: {version}")
                await conn.execute(sql)
                await conn.execute(
                    f"INSERT INTO {self.TRACKING_TABLE} (version, name) VALUES ($1, $2)",  # noqa: S608
                    version,
                    name,
                )
        return True
