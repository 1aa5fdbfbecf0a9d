"""Row -> API dict mapping shared by the gallery and saved-photo queries."""
import uuid
from datetime import date
from typing import Any, Dict, Optional

Row = Any  # asyncpg.Record or a plain dict in tests


def _field(row: Row, key: str) -> Any:
	try:
		return row[key]
	except (KeyError, IndexError):
		return None


def _timestamp(val: Any) -> Optional[str]:
	if isinstance(val, date):
		return val.isoformat()
	return None if val is None else str(val)


def _score(row: Row) -> int:
	try:
		return int(_field(row, "match_score") or 0)
	except (TypeError, ValueError):
		return 0


def parse_photo_id(photo_id: Any) -> Optional[uuid.UUID]:
	"""Photo ids are UUIDs; anything else can never match a row."""
	if isinstance(photo_id, uuid.UUID):
		return photo_id
	try:
		return uuid.UUID(str(photo_id).strip())
	except (TypeError, ValueError, AttributeError):
		return None


def _common(row: Row) -> Dict[str, Any]:
	return {
		"id": str(_field(row, "id")),
		"pose_name": str(_field(row, "pose_name") or ""),
		"photo_data_url": str(_field(row, "photo_data") or ""),
		"score": _score(row),
		"created_at": _timestamp(_field(row, "created_at")),
	}


def gallery_row_to_dict(row: Row) -> Dict[str, Any]:
	d = _common(row)
	d["capture_type"] = "manual" if _field(row, "capture_type") == "manual" else "auto"
	return d


def saved_row_to_dict(row: Row) -> Dict[str, Any]:
	return _common(row)
