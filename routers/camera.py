"""Camera routes. Routes: /camera/start, stop, status, mjpeg, snapshot.jpg, controls."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response, StreamingResponse

from app_state import AppState
from deps import get_state
from posematch.stream import MEDIA_TYPE, preview_stream
from routers.errors import to_http
from schemas.requests import CameraControlsPayload, CameraStartPayload

router = APIRouter(tags=["camera"])

_NO_CACHE = {
	"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
	"Pragma": "no-cache",
}


@router.post("/camera/start")
async def camera_start(payload: Optional[CameraStartPayload] = None, state: AppState = Depends(get_state)):
	"""Open the camera and start the matching loop."""
	try:
		payload = payload or CameraStartPayload()
		st = await state.session.start_camera(payload.facing, payload.fps)
		return {"detail": "Camera started.", "camera": st}
	except Exception as e:
		raise to_http(e, "Camera start")


@router.post("/camera/stop")
async def camera_stop(state: AppState = Depends(get_state)):
	"""Stop the matching loop and release the device."""
	try:
		await state.session.stop_camera()
		cam = state.session.camera
		return {"detail": "Camera stopped.", "camera": cam.get_status() if cam is not None else None}
	except Exception as e:
		raise HTTPException(status_code=500, detail=f"Camera stop failed: {e!r}")


@router.get("/camera/status")
async def camera_status(state: AppState = Depends(get_state)):
	cam = state.session.camera
	return {
		"camera": cam.get_status() if cam is not None else None,
		"detector": state.channel.get_status() if state.channel is not None else None,
		"error": state.session.camera_error,
	}


@router.get("/camera/mjpeg")
async def camera_mjpeg(fps: float = Query(15.0, gt=0, le=60), state: AppState = Depends(get_state)):
	"""Annotated preview (letterbox, ghost, live skeleton) as MJPEG."""
	return StreamingResponse(
		preview_stream(state.session.get_latest_jpeg, fps=fps),
		media_type=MEDIA_TYPE,
		headers={**_NO_CACHE, "Connection": "keep-alive"},
	)


@router.get("/camera/snapshot.jpg")
async def camera_snapshot(state: AppState = Depends(get_state)):
	"""Return the latest annotated preview frame."""
	jpeg, _t = state.session.get_latest_jpeg()
	if jpeg is None:
		raise HTTPException(status_code=404, detail="No JPEG frame available yet")
	return Response(content=jpeg, media_type="image/jpeg", headers=_NO_CACHE)


@router.get("/camera/controls")
async def camera_controls(state: AppState = Depends(get_state)):
	"""Zoom / exposure availability; empty unless the profile exposes hardware controls."""
	cam = state.session.camera
	exposed = bool(state.session.profile.expose_camera_controls)
	return {
		"exposed": exposed,
		"controls": cam.controls() if (exposed and cam is not None) else {},
	}


@router.post("/camera/controls")
async def set_camera_controls(payload: CameraControlsPayload, state: AppState = Depends(get_state)):
	cam = state.session.camera
	if not state.session.profile.expose_camera_controls or cam is None:
		raise HTTPException(status_code=403, detail="Camera controls are not available in this mode")
	applied = {}
	if payload.zoom is not None:
		applied["zoom"] = cam.set_zoom(payload.zoom)
	if payload.exposure_compensation is not None:
		applied["exposure_compensation"] = cam.set_exposure_compensation(payload.exposure_compensation)
	return {"applied": applied, "controls": cam.controls()}
