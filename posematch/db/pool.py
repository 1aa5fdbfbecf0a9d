"""
asyncpg pool lifecycle for photo persistence: init_db, close_db, get_pool, get_status.

Persistence is optional. Without `database.url` in config.json the pool stays
None: list/get calls answer empty, writes raise PersistenceDisabled.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import asyncpg

from posematch.config import DatabaseConfig, get_config
from posematch.errors import PersistenceDisabled

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None
_pool_lock = asyncio.Lock()
_init_error: Optional[str] = None
_logged_disabled = False

# Photos are stored inline as data URLs, one row per capture, always scoped by user_id.
_SCHEMA: Tuple[str, ...] = (
	"""
	CREATE TABLE IF NOT EXISTS gallery_photos (
		id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
		user_id       TEXT NOT NULL,
		photo_data    TEXT NOT NULL,
		pose_name     TEXT NOT NULL,
		match_score   INTEGER,
		capture_type  TEXT NOT NULL DEFAULT 'auto' CHECK (capture_type IN ('auto', 'manual')),
		created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
	);
	""",
	"CREATE INDEX IF NOT EXISTS gallery_photos_user_created ON gallery_photos (user_id, created_at DESC);",
	"""
	CREATE TABLE IF NOT EXISTS saved_photos (
		id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
		user_id       TEXT NOT NULL,
		photo_data    TEXT NOT NULL,
		pose_name     TEXT NOT NULL,
		match_score   INTEGER,
		created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
	);
	""",
	"CREATE INDEX IF NOT EXISTS saved_photos_user_created ON saved_photos (user_id, created_at DESC);",
)


def _dsn(cfg: DatabaseConfig) -> str:
	return (cfg.url or "").strip()


def _pool_bounds(cfg: DatabaseConfig) -> Tuple[int, int]:
	lo = max(1, int(cfg.pool_min_size))
	return lo, max(lo, int(cfg.pool_max_size))


def get_pool() -> Optional[asyncpg.Pool]:
	"""The shared pool, or None while persistence is disabled."""
	return _pool


def require_pool() -> asyncpg.Pool:
	"""Pool for write paths."""
	if _pool is None:
		raise PersistenceDisabled("Photo storage is not configured on this server.")
	return _pool


async def init_db() -> None:
	"""
	Open the pool and create the photo tables.
	A missing database.url is not an error; the app runs without a gallery.
	"""
	global _pool, _init_error, _logged_disabled
	cfg = get_config().database
	dsn = _dsn(cfg)
	if not dsn:
		_init_error = "database.url not set"
		if not _logged_disabled:
			logger.warning("[DB] no database.url configured; gallery and saved photos are disabled")
			_logged_disabled = True
		return

	async with _pool_lock:
		if _pool is None:
			min_size, max_size = _pool_bounds(cfg)
			try:
				_pool = await asyncpg.create_pool(dsn, min_size=min_size, max_size=max_size)
			except Exception as e:
				_init_error = repr(e)
				raise
			_init_error = None
			logger.info("[DB] pool ready (min=%d max=%d)", min_size, max_size)

	async with _pool.acquire() as conn:
		async with conn.transaction():
			for stmt in _SCHEMA:
				await conn.execute(stmt)


def get_status() -> Dict[str, Any]:
	"""Persistence health for /status."""
	dsn = _dsn(get_config().database)
	return {
		"enabled": bool(dsn),
		"pool_ready": _pool is not None,
		"pool_size": _pool.get_size() if _pool is not None else 0,
		"last_init_error": _init_error,
	}


async def close_db() -> None:
	global _pool
	pool, _pool = _pool, None
	if pool is not None:
		await pool.close()
		logger.info("[DB] pool closed")
