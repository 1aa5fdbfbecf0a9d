"""
Explicit app state: single source of truth for runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
from typing import Any, Callable, Optional

from posematch.camera import CameraFeed
from posematch.config import AppConfig
from posematch.detector import DetectorChannel
from posematch.session import MatchSession


class AppState:
	"""
	Holds all runtime objects for the app.
	Populated in server lifespan; tests build one by hand with fakes.
	"""
	# WebSocket manager (set at app load)
	manager: Any = None

	# Config
	cfg: Optional[AppConfig] = None

	# Pose matching (set in lifespan)
	channel: Optional[DetectorChannel] = None
	camera: Optional[CameraFeed] = None
	session: Optional[MatchSession] = None

	# Helpers (callables set in server after creation)
	log_to_clients: Optional[Callable[[str], None]] = None

	# Task refs (set in lifespan; used for cleanup)
	detector_start_task: Any = None

	def __init__(
		self,
		cfg: Optional[AppConfig] = None,
		channel: Optional[DetectorChannel] = None,
		camera: Optional[CameraFeed] = None,
		session: Optional[MatchSession] = None,
		manager: Any = None,
	) -> None:
		self.cfg = cfg
		self.channel = channel
		self.camera = camera
		self.session = session
		self.manager = manager
