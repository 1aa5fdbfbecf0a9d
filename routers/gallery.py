"""Per-user photo routes. Routes: /api/gallery[/{photo_id}], /api/saved[/{photo_id}]."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from deps import get_user_id
from posematch import db
from routers.errors import to_http
from schemas.requests import SavedPhotoPayload
from schemas.responses import DeleteResponse, GalleryPhotoResponse, SavedPhotoResponse

router = APIRouter(tags=["gallery"])


@router.get("/api/gallery", response_model=List[GalleryPhotoResponse])
async def list_gallery_endpoint(user_id: str = Depends(get_user_id)):
	"""Confirmed captures for this user, newest first."""
	try:
		return await db.list_gallery_photos(user_id)
	except Exception as e:
		raise to_http(e, "Gallery")


@router.get("/api/gallery/{photo_id}", response_model=GalleryPhotoResponse)
async def get_gallery_endpoint(photo_id: str, user_id: str = Depends(get_user_id)):
	try:
		photo = await db.get_gallery_photo(user_id, photo_id)
		if photo is None:
			raise HTTPException(status_code=404, detail=f"Photo {photo_id} not found")
		return photo
	except HTTPException:
		raise
	except Exception as e:
		raise to_http(e, f"Photo {photo_id}")


@router.delete("/api/gallery/{photo_id}", response_model=DeleteResponse)
async def delete_gallery_endpoint(photo_id: str, user_id: str = Depends(get_user_id)):
	try:
		result = await db.delete_gallery_photo(user_id, photo_id)
		if not result.get("deleted"):
			raise HTTPException(status_code=404, detail=result.get("detail", f"Photo {photo_id} not found"))
		return result
	except HTTPException:
		raise
	except Exception as e:
		raise to_http(e, f"Photo {photo_id}")


@router.get("/api/saved", response_model=List[SavedPhotoResponse])
async def list_saved_endpoint(user_id: str = Depends(get_user_id)):
	"""Saved reference photos; any of them can be loaded as a template."""
	try:
		return await db.list_saved_photos(user_id)
	except Exception as e:
		raise to_http(e, "Saved photos")


@router.post("/api/saved", response_model=SavedPhotoResponse)
async def create_saved_endpoint(payload: SavedPhotoPayload, user_id: str = Depends(get_user_id)):
	try:
		return await db.save_photo(user_id, payload.pose_name, payload.photo_data_url, payload.score)
	except Exception as e:
		raise to_http(e, "Save photo")


@router.get("/api/saved/{photo_id}", response_model=SavedPhotoResponse)
async def get_saved_endpoint(photo_id: str, user_id: str = Depends(get_user_id)):
	try:
		photo = await db.get_saved_photo(user_id, photo_id)
		if photo is None:
			raise HTTPException(status_code=404, detail=f"Saved photo {photo_id} not found")
		return photo
	except HTTPException:
		raise
	except Exception as e:
		raise to_http(e, f"Saved photo {photo_id}")


@router.delete("/api/saved/{photo_id}", response_model=DeleteResponse)
async def delete_saved_endpoint(photo_id: str, user_id: str = Depends(get_user_id)):
	try:
		result = await db.delete_saved_photo(user_id, photo_id)
		if not result.get("deleted"):
			raise HTTPException(status_code=404, detail=result.get("detail", f"Saved photo {photo_id} not found"))
		return result
	except HTTPException:
		raise
	except Exception as e:
		raise to_http(e, f"Saved photo {photo_id}")
