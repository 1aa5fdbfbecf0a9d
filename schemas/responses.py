"""Pydantic response models for API docs (most routes return plain dicts)."""
from typing import Optional

from pydantic import BaseModel


class GalleryPhotoResponse(BaseModel):
	"""One confirmed capture from GET/POST /api/gallery."""

	id: str
	pose_name: str
	photo_data_url: str
	score: int
	capture_type: str
	created_at: Optional[str] = None


class SavedPhotoResponse(BaseModel):
	"""One saved reference photo from GET/POST /api/saved."""

	id: str
	pose_name: str
	photo_data_url: str
	score: int
	created_at: Optional[str] = None


class DeleteResponse(BaseModel):
	"""Response from DELETE /api/gallery/{id} and /api/saved/{id}."""

	deleted: bool
	id: Optional[str] = None
	detail: Optional[str] = None
