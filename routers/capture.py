"""Capture routes. Routes: /capture/state, manual, confirm, retry, back, auto."""
from fastapi import APIRouter, Depends, HTTPException

from app_state import AppState
from deps import get_state, get_user_id
from posematch import db
from posematch.capture import CapturedArtifact
from routers.errors import to_http
from schemas.requests import AutoCapturePayload

router = APIRouter(tags=["capture"])


@router.get("/capture/state")
async def capture_state(state: AppState = Depends(get_state)):
	"""Full session snapshot: score, guidance, capture machine, letterbox box."""
	return state.session.status()


@router.post("/capture/manual")
async def capture_manual(state: AppState = Depends(get_state)):
	"""Take the picture now; skips hold and countdown."""
	artifact = state.session.manual_capture()
	if artifact is None:
		raise HTTPException(status_code=409, detail="Capture not possible right now")
	return {
		"detail": "Captured.",
		"photo_data_url": artifact.data_url(),
		"capture": state.session.capture.snapshot(),
	}


@router.post("/capture/confirm")
async def capture_confirm(
	state: AppState = Depends(get_state),
	user_id: str = Depends(get_user_id),
):
	"""
	Save the staged photo to the gallery and return to matching.
	Save failures do not block the user; the response reports saved=false.
	"""
	if not state.session.confirming:
		raise HTTPException(status_code=409, detail="No photo waiting for confirmation")

	async def persist(artifact: CapturedArtifact):
		return await db.save_gallery_photo(user_id, artifact)

	photo = await state.session.confirm(persist)
	return {
		"detail": "Saved to gallery." if photo else "Photo could not be saved.",
		"saved": photo is not None,
		"photo": photo,
		"status": state.session.status(),
	}


@router.post("/capture/retry")
async def capture_retry(state: AppState = Depends(get_state)):
	"""Discard the staged photo."""
	try:
		state.session.retry()
	except Exception as e:
		raise to_http(e, "Retry")
	return {"detail": "Discarded.", "status": state.session.status()}


@router.post("/capture/back")
async def capture_back(state: AppState = Depends(get_state)):
	"""Leave the camera step and pick another template."""
	try:
		state.session.back()
	except Exception as e:
		raise to_http(e, "Back")
	return {"detail": "Back to template selection.", "status": state.session.status()}


@router.post("/capture/auto")
async def capture_auto(payload: AutoCapturePayload, state: AppState = Depends(get_state)):
	state.session.set_auto_capture(payload.enabled)
	return {"detail": f"Auto-capture {'on' if payload.enabled else 'off'}.", "capture": state.session.capture.snapshot()}
