"""Template routes. Routes: /template (GET), /template/upload, preset/{pose_id}, saved/{saved_id}, start."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from app_state import AppState
from deps import get_state, get_user_id
from posematch import db
from routers.errors import to_http
from schemas.requests import TemplateUploadPayload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["template"])


def _loaded(state: AppState, result) -> dict:
	return {
		"detail": f"Template '{result.pose_name}' ready.",
		"template": result.to_dict(),
		"status": state.session.status(),
	}


@router.get("/template")
async def get_template(state: AppState = Depends(get_state)):
	"""Current template (None until one has been extracted)."""
	tpl = state.session.template
	return {"template": tpl.to_dict() if tpl is not None else None, "step": state.session.step}


@router.post("/template/upload")
async def upload_template(payload: TemplateUploadPayload, state: AppState = Depends(get_state)):
	"""Extract a template skeleton from an uploaded image. The user then starts matching."""
	try:
		result = await state.session.load_upload(payload.image_data_url, payload.pose_name)
		return _loaded(state, result)
	except Exception as e:
		logger.info("[Template] upload rejected: %r", e)
		raise to_http(e, "Template upload")


@router.post("/template/preset/{pose_id}")
async def preset_template(pose_id: str, state: AppState = Depends(get_state)):
	"""Load a built-in pose and go straight to the camera step."""
	try:
		return _loaded(state, await state.session.load_preset(pose_id))
	except Exception as e:
		raise to_http(e, f"Pose {pose_id}")


@router.post("/template/saved/{saved_id}")
async def saved_template(
	saved_id: str,
	state: AppState = Depends(get_state),
	user_id: str = Depends(get_user_id),
):
	"""Reuse one of the user's saved photos as the template."""

	async def fetch(sid: str):
		return await db.get_saved_photo(user_id, sid)

	try:
		return _loaded(state, await state.session.load_saved(saved_id, fetch))
	except Exception as e:
		raise to_http(e, f"Saved photo {saved_id}")


@router.post("/template/start")
async def start_matching(state: AppState = Depends(get_state)):
	"""Move from the upload step to the camera step."""
	if state.session.template is None:
		raise HTTPException(status_code=409, detail="Pick a template pose first")
	state.session.start_matching()
	return {"detail": "Matching started.", "status": state.session.status()}
