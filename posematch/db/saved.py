"""Saved reference poses: save_photo, list_saved_photos, get_saved_photo, delete_saved_photo."""
from typing import Any, Dict, List, Optional

import asyncpg

from posematch.db.helpers import parse_photo_id, saved_row_to_dict
from posematch.db.pool import get_pool, require_pool
from posematch.errors import SaveFailed

_COLUMNS = "id, photo_data, pose_name, match_score, created_at"


async def save_photo(user_id: str, pose_name: str, photo_data_url: str, score: int = 0) -> Dict[str, Any]:
	"""
	Save a reference photo that can later be used as a template.
	"""
	pool = require_pool()
	name = (pose_name or "").strip()
	if not name:
		raise ValueError("pose_name is required")
	if not (photo_data_url or "").startswith("data:image/"):
		raise ValueError("photo_data_url must be an image data URL")
	try:
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				INSERT INTO saved_photos (user_id, photo_data, pose_name, match_score)
				VALUES ($1, $2, $3, $4)
				RETURNING {_COLUMNS};
				""",
				str(user_id),
				photo_data_url,
				name,
				int(score),
			)
	except (asyncpg.PostgresError, OSError) as e:
		raise SaveFailed(f"Could not save photo: {e}") from e
	return saved_row_to_dict(row)


async def list_saved_photos(user_id: str) -> List[Dict[str, Any]]:
	pool = get_pool()
	if pool is None:
		return []
	async with pool.acquire() as conn:
		rows = await conn.fetch(
			f"""
			SELECT {_COLUMNS}
			FROM saved_photos
			WHERE user_id = $1
			ORDER BY created_at DESC;
			""",
			str(user_id),
		)
		return [saved_row_to_dict(r) for r in rows]


async def get_saved_photo(user_id: str, photo_id: str) -> Optional[Dict[str, Any]]:
	"""
	Get one saved photo for this user, or None.
	"""
	pool = get_pool()
	pid = parse_photo_id(photo_id)
	if pool is None or pid is None:
		return None
	async with pool.acquire() as conn:
		row = await conn.fetchrow(
			f"""
			SELECT {_COLUMNS}
			FROM saved_photos
			WHERE id = $1 AND user_id = $2;
			""",
			pid,
			str(user_id),
		)
		return saved_row_to_dict(row) if row else None


async def delete_saved_photo(user_id: str, photo_id: str) -> Dict[str, Any]:
	pool = require_pool()
	pid = parse_photo_id(photo_id)
	if pid is None:
		return {"deleted": False, "detail": f"Saved photo {photo_id} not found"}
	async with pool.acquire() as conn:
		status = await conn.execute(
			"DELETE FROM saved_photos WHERE id = $1 AND user_id = $2;",
			pid,
			str(user_id),
		)
	deleted = status.strip().endswith(" 1")
	if not deleted:
		return {"deleted": False, "detail": f"Saved photo {photo_id} not found"}
	return {"deleted": True, "id": str(pid)}
