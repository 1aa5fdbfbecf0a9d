import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app_state import AppState
from posematch import __version__, db
from posematch.camera import CameraFeed
from posematch.config import AppConfig, get_config
from posematch.detector import DetectorChannel
from posematch.errors import DetectorInitFailed
from posematch.pose.mediapipe_provider import MediaPipePoseProvider
from posematch.session import MatchSession
from routers import camera, capture, gallery, poses, template, ws
from routers.ws import manager

logger = logging.getLogger(__name__)


def _log_to_clients(message: str) -> None:
	"""
	Send a log line to all connected WebSocket clients.
	Fire-and-forget; safe to call from non-async code.
	"""
	logger.info(message)
	try:
		asyncio.get_running_loop().create_task(manager.broadcast_log(message))
	except RuntimeError:
		# No running loop yet; ignore
		pass


def _broadcast_status(status: Dict[str, Any]) -> None:
	try:
		asyncio.get_running_loop().create_task(manager.broadcast_status(status))
	except RuntimeError:
		pass


def build_state(cfg: Optional[AppConfig] = None) -> AppState:
	"""Wire detector channel, camera feed and match session from config."""
	cfg = cfg or get_config()
	channel = DetectorChannel(lambda: MediaPipePoseProvider(cfg.detector))
	camera_feed = CameraFeed(cfg.camera, facing=cfg.capture.default_facing)
	session = MatchSession(cfg, channel, camera=camera_feed, log_to_clients=_log_to_clients)
	session.on_status = _broadcast_status
	state = AppState(cfg=cfg, channel=channel, camera=camera_feed, session=session, manager=manager)
	state.log_to_clients = _log_to_clients
	return state


async def _start_detector(state: AppState) -> None:
	try:
		await state.channel.start()
		_log_to_clients("[Detector] Pose detector ready")
	except DetectorInitFailed as e:
		# Matching stays unavailable; template uploads answer 503 until restart.
		logger.warning("[Detector] %s", e)
		_log_to_clients(f"[Detector] {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
	state = build_state()
	app.state.state = state
	try:
		# Initialise database (if configured).
		try:
			await db.init_db()
		except Exception as e:
			# DB is optional; continue without persistence.
			logger.warning("[DB] init_db failed: %r", e)

		# Model load takes seconds; live frames are dropped until it is ready.
		state.detector_start_task = asyncio.create_task(_start_detector(state))
		yield
	finally:
		task = state.detector_start_task
		if task is not None and not task.done():
			task.cancel()
			try:
				await task
			except asyncio.CancelledError:
				pass
		await state.session.stop_camera()
		state.channel.close()
		await db.close_db()


app = FastAPI(title="PoseMatch", version=__version__, lifespan=lifespan)
app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.include_router(poses.router)
app.include_router(template.router)
app.include_router(camera.router)
app.include_router(capture.router)
app.include_router(gallery.router)
app.include_router(ws.router)

# Preset images referenced by /api/poses (image_url = /poses/<file>).
_PRESETS_DIR = Path(get_config().template.presets_dir)
if _PRESETS_DIR.is_dir():
	app.mount("/poses", StaticFiles(directory=str(_PRESETS_DIR)), name="poses")
else:
	logger.warning("[Presets] %s not found; preset poses answer 400 until the images are installed there", _PRESETS_DIR)


@app.get("/status")
async def status():
	"""Service health: version, database and detector readiness."""
	state: Optional[AppState] = getattr(app.state, "state", None)
	return {
		"version": __version__,
		"db": db.get_status(),
		"detector": state.channel.get_status() if state is not None else None,
		"ws_clients": manager.client_count,
	}


if __name__ == "__main__":
	import uvicorn

	logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
	uvicorn.run("server:app", host="0.0.0.0", port=8000)
