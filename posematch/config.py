from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseConfig:
	# If empty, persistence is disabled (gallery/saved routes answer 503).
	url: str = ""
	pool_min_size: int = 1
	pool_max_size: int = 5


@dataclass(frozen=True)
class CameraConfig:
	# OpenCV device indices for each facing. Laptops usually only have 0.
	front_index: int = 0
	rear_index: int = 1
	# Tried in order until one opens and yields a frame.
	resolutions: Tuple[Tuple[int, int], ...] = ((1920, 1080), (1280, 720), (640, 480))
	preview_fps: float = 15.0


@dataclass(frozen=True)
class DetectorConfig:
	# 0 is the cheapest MediaPipe tier; live matching does not need more.
	model_complexity: int = 0
	smooth_landmarks: bool = True
	min_detection_confidence: float = 0.5
	min_tracking_confidence: float = 0.5


@dataclass(frozen=True)
class ScoringConfig:
	smoothing_alpha: float = 0.2
	max_distance: float = 0.42
	min_visible_landmarks: int = 5
	visibility_threshold: float = 0.5
	guidance_max_score: int = 50


@dataclass(frozen=True)
class CaptureProfile:
	"""
	One configuration surface for the camera page variants.

	selfie: front camera, mirrored stills, no hardware controls.
	rear:   rear camera, stills as seen by the sensor, zoom/exposure exposed.
	"""

	name: str = "selfie"
	success_threshold: int = 80
	hold_millis: float = 3000.0
	countdown_seconds: int = 3
	mirror_output: bool = True
	default_facing: str = "front"  # front / rear
	expose_camera_controls: bool = False
	auto_capture_enabled: bool = True
	jpeg_quality: int = 90


PROFILES: Dict[str, CaptureProfile] = {
	"selfie": CaptureProfile(),
	"rear": CaptureProfile(
		name="rear",
		mirror_output=False,
		default_facing="rear",
		expose_camera_controls=True,
	),
}


@dataclass(frozen=True)
class TemplateConfig:
	# Longest edge handed to the detector; the original size is kept for scoring.
	max_edge: int = 640
	presets_dir: str = str(Path("static") / "poses")


@dataclass(frozen=True)
class AppConfig:
	database: DatabaseConfig = field(default_factory=DatabaseConfig)
	camera: CameraConfig = field(default_factory=CameraConfig)
	detector: DetectorConfig = field(default_factory=DetectorConfig)
	scoring: ScoringConfig = field(default_factory=ScoringConfig)
	capture: CaptureProfile = field(default_factory=CaptureProfile)
	template: TemplateConfig = field(default_factory=TemplateConfig)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# posematch/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	Intended for tooling and tests; the server normally uses the default path.
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except (TypeError, ValueError):
		return int(default)


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except (TypeError, ValueError):
		return float(default)


def _parse_resolutions(obj: Any, default: Tuple[Tuple[int, int], ...]) -> Tuple[Tuple[int, int], ...]:
	"""Accept [[w,h], ...] or ["WxH", ...]; invalid entries are skipped."""
	if not isinstance(obj, list):
		return default
	out: list[Tuple[int, int]] = []
	for item in obj:
		try:
			if isinstance(item, (list, tuple)) and len(item) == 2:
				w, h = int(item[0]), int(item[1])
			elif isinstance(item, str) and "x" in item.lower():
				a, b = item.lower().replace(" ", "").split("x", 1)
				w, h = int(a), int(b)
			else:
				continue
		except (TypeError, ValueError):
			continue
		if w > 0 and h > 0:
			out.append((w, h))
	return tuple(out) or default


def _parse_capture(raw: Dict[str, Any]) -> CaptureProfile:
	name = _as_str(_deep_get(raw, ["capture", "profile"], "selfie"), "selfie").strip().lower()
	base = PROFILES.get(name)
	if base is None:
		logger.warning("[Config] unknown capture profile %r; using 'selfie'", name)
		base = PROFILES["selfie"]
	overrides = _deep_get(raw, ["capture", "overrides"], {})
	if not isinstance(overrides, dict) or not overrides:
		return base

	threshold = _as_int(overrides.get("success_threshold", base.success_threshold), base.success_threshold)
	hold_ms = _as_float(overrides.get("hold_millis", base.hold_millis), base.hold_millis)
	countdown = _as_int(overrides.get("countdown_seconds", base.countdown_seconds), base.countdown_seconds)
	facing = _as_str(overrides.get("default_facing", base.default_facing), base.default_facing).strip().lower()
	quality = _as_int(overrides.get("jpeg_quality", base.jpeg_quality), base.jpeg_quality)
	return replace(
		base,
		success_threshold=min(100, max(1, threshold)),
		hold_millis=max(0.0, hold_ms),
		countdown_seconds=max(1, countdown),
		mirror_output=_as_bool(overrides.get("mirror_output", base.mirror_output), base.mirror_output),
		default_facing=facing if facing in ("front", "rear") else base.default_facing,
		expose_camera_controls=_as_bool(
			overrides.get("expose_camera_controls", base.expose_camera_controls), base.expose_camera_controls
		),
		auto_capture_enabled=_as_bool(
			overrides.get("auto_capture_enabled", base.auto_capture_enabled), base.auto_capture_enabled
		),
		jpeg_quality=min(100, max(1, quality)),
	)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except (OSError, ValueError) as e:
		# If config is malformed, fail safe to defaults (but keep app running).
		logger.warning("[Config] could not read %s (%r); using defaults", p, e)
		return AppConfig()

	if not isinstance(raw, dict):
		return AppConfig()

	db_url = _as_str(_deep_get(raw, ["database", "url"], ""), "")
	pool_min = max(1, _as_int(_deep_get(raw, ["database", "pool_min_size"], 1), 1))
	pool_max = max(pool_min, _as_int(_deep_get(raw, ["database", "pool_max_size"], 5), 5))

	cam_defaults = CameraConfig()
	front_idx = _as_int(_deep_get(raw, ["camera", "front_index"], cam_defaults.front_index), cam_defaults.front_index)
	rear_idx = _as_int(_deep_get(raw, ["camera", "rear_index"], cam_defaults.rear_index), cam_defaults.rear_index)
	resolutions = _parse_resolutions(_deep_get(raw, ["camera", "resolutions"]), cam_defaults.resolutions)
	preview_fps = _as_float(_deep_get(raw, ["camera", "preview_fps"], cam_defaults.preview_fps), cam_defaults.preview_fps)

	det_complexity = _as_int(_deep_get(raw, ["detector", "model_complexity"], 0), 0)
	det_smooth = _as_bool(_deep_get(raw, ["detector", "smooth_landmarks"], True), True)
	det_min_det = _as_float(_deep_get(raw, ["detector", "min_detection_confidence"], 0.5), 0.5)
	det_min_trk = _as_float(_deep_get(raw, ["detector", "min_tracking_confidence"], 0.5), 0.5)

	sc_alpha = _as_float(_deep_get(raw, ["scoring", "smoothing_alpha"], 0.2), 0.2)
	sc_max_dist = _as_float(_deep_get(raw, ["scoring", "max_distance"], 0.42), 0.42)
	sc_min_vis = _as_int(_deep_get(raw, ["scoring", "min_visible_landmarks"], 5), 5)
	sc_vis_thr = _as_float(_deep_get(raw, ["scoring", "visibility_threshold"], 0.5), 0.5)
	sc_guidance = _as_int(_deep_get(raw, ["scoring", "guidance_max_score"], 50), 50)

	tpl_max_edge = _as_int(_deep_get(raw, ["template", "max_edge"], 640), 640)
	tpl_presets = _as_str(_deep_get(raw, ["template", "presets_dir"], TemplateConfig().presets_dir), "")

	return AppConfig(
		database=DatabaseConfig(url=db_url, pool_min_size=pool_min, pool_max_size=pool_max),
		camera=CameraConfig(
			front_index=front_idx,
			rear_index=rear_idx,
			resolutions=resolutions,
			preview_fps=preview_fps if preview_fps > 0.0 else cam_defaults.preview_fps,
		),
		detector=DetectorConfig(
			model_complexity=min(2, max(0, det_complexity)),
			smooth_landmarks=det_smooth,
			min_detection_confidence=min(1.0, max(0.0, det_min_det)),
			min_tracking_confidence=min(1.0, max(0.0, det_min_trk)),
		),
		scoring=ScoringConfig(
			smoothing_alpha=sc_alpha if 0.0 < sc_alpha <= 1.0 else 0.2,
			max_distance=sc_max_dist if sc_max_dist > 0.0 else 0.42,
			min_visible_landmarks=max(1, sc_min_vis),
			visibility_threshold=min(1.0, max(0.0, sc_vis_thr)),
			guidance_max_score=sc_guidance,
		),
		capture=_parse_capture(raw),
		template=TemplateConfig(
			max_edge=tpl_max_edge if tpl_max_edge > 0 else 640,
			presets_dir=tpl_presets or TemplateConfig().presets_dir,
		),
	)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE
