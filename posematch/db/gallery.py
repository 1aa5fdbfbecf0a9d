"""Gallery photos: save_gallery_photo, list_gallery_photos, get_gallery_photo, delete_gallery_photo."""
import logging
from typing import Any, Dict, List, Optional

import asyncpg

from posematch.capture import CAPTURE_MANUAL, CapturedArtifact
from posematch.db.helpers import gallery_row_to_dict, parse_photo_id
from posematch.db.pool import get_pool, require_pool
from posematch.errors import SaveFailed

logger = logging.getLogger(__name__)

_COLUMNS = "id, photo_data, pose_name, match_score, capture_type, created_at"


async def save_gallery_photo(user_id: str, artifact: CapturedArtifact) -> Dict[str, Any]:
	"""
	Store a confirmed capture for this user. Database errors surface as SaveFailed.
	"""
	pool = require_pool()
	try:
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				INSERT INTO gallery_photos (user_id, photo_data, pose_name, match_score, capture_type, created_at)
				VALUES ($1, $2, $3, $4, $5, $6)
				RETURNING {_COLUMNS};
				""",
				str(user_id),
				artifact.data_url(),
				artifact.pose_name,
				int(artifact.score),
				"manual" if artifact.capture_type == CAPTURE_MANUAL else "auto",
				artifact.created_at,
			)
	except (asyncpg.PostgresError, OSError) as e:
		raise SaveFailed(f"Could not save photo: {e}") from e
	logger.info("[DB] gallery photo %s saved for user %s (%s)", row["id"], user_id, artifact.capture_type)
	return gallery_row_to_dict(row)


async def list_gallery_photos(user_id: str) -> List[Dict[str, Any]]:
	"""
	List this user's captures, newest first.
	"""
	pool = get_pool()
	if pool is None:
		return []
	async with pool.acquire() as conn:
		rows = await conn.fetch(
			f"""
			SELECT {_COLUMNS}
			FROM gallery_photos
			WHERE user_id = $1
			ORDER BY created_at DESC;
			""",
			str(user_id),
		)
		return [gallery_row_to_dict(r) for r in rows]


async def get_gallery_photo(user_id: str, photo_id: str) -> Optional[Dict[str, Any]]:
	pool = get_pool()
	pid = parse_photo_id(photo_id)
	if pool is None or pid is None:
		return None
	async with pool.acquire() as conn:
		row = await conn.fetchrow(
			f"""
			SELECT {_COLUMNS}
			FROM gallery_photos
			WHERE id = $1 AND user_id = $2;
			""",
			pid,
			str(user_id),
		)
		return gallery_row_to_dict(row) if row else None


async def delete_gallery_photo(user_id: str, photo_id: str) -> Dict[str, Any]:
	"""
	Delete one capture. Returns {deleted: bool, detail?}.
	"""
	pool = require_pool()
	pid = parse_photo_id(photo_id)
	if pid is None:
		return {"deleted": False, "detail": f"Photo {photo_id} not found"}
	async with pool.acquire() as conn:
		status = await conn.execute(
			"DELETE FROM gallery_photos WHERE id = $1 AND user_id = $2;",
			pid,
			str(user_id),
		)
	# asyncpg returns e.g. "DELETE 1"
	deleted = status.strip().endswith(" 1")
	if not deleted:
		return {"deleted": False, "detail": f"Photo {photo_id} not found"}
	return {"deleted": True, "id": str(pid)}
