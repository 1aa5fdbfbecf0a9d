"""
Template acquisition: source image -> template skeleton + original image size.

Sources are an uploaded image (bytes or data URL), a built-in preset, or a
previously saved photo. The image is downscaled for the detector only; the
original pixel size is what scoring and rendering reason in.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from posematch.detector import DetectorChannel
from posematch.errors import InvalidTemplateImage, NoPoseDetected
from posematch.pose.types import ImageSize, Skeleton, skeleton_to_list
from posematch.presets import get_pose_by_id

logger = logging.getLogger(__name__)

DEFAULT_MAX_EDGE = 640
DEFAULT_POSE_NAME = "Custom Pose"

SOURCE_UPLOAD = "upload"
SOURCE_PRESET = "preset"
SOURCE_SAVED = "saved"


@dataclass(frozen=True)
class TemplateResult:
	skeleton: Skeleton
	image_size: ImageSize
	pose_name: str
	source: str
	source_id: Optional[str] = None
	detector_size: Optional[ImageSize] = None
	extra: Dict[str, Any] = field(default_factory=dict)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"pose_name": self.pose_name,
			"source": self.source,
			"source_id": self.source_id,
			"image_size": self.image_size.to_dict(),
			"detector_size": self.detector_size.to_dict() if self.detector_size else None,
			"landmarks": skeleton_to_list(self.skeleton),
		}


def decode_data_url(data_url: str) -> bytes:
	"""Accept `data:image/...;base64,<payload>` or a bare base64 payload."""
	s = (data_url or "").strip()
	if s.startswith("data:"):
		head, _, payload = s.partition(",")
		if ";base64" not in head:
			raise InvalidTemplateImage("Only base64 data URLs are supported")
		s = payload
	try:
		return base64.b64decode(s, validate=True)
	except (binascii.Error, ValueError) as e:
		raise InvalidTemplateImage(f"Invalid base64 image payload: {e}") from e


def decode_image(data: bytes) -> Image.Image:
	if not data:
		raise InvalidTemplateImage("Empty image")
	try:
		img = Image.open(BytesIO(data))
		img.load()
	except (UnidentifiedImageError, OSError) as e:
		raise InvalidTemplateImage(f"Unreadable image: {e}") from e
	# Honour camera orientation tags so width/height match what the user sees.
	return ImageOps.exif_transpose(img)


def downscaled_size(size: ImageSize, max_edge: int = DEFAULT_MAX_EDGE) -> ImageSize:
	longest = max(size.width, size.height)
	if longest <= max_edge:
		return size
	scale = float(max_edge) / float(longest)
	return ImageSize(
		width=max(1, int(round(size.width * scale))),
		height=max(1, int(round(size.height * scale))),
	)


def prepare_for_detection(img: Image.Image, max_edge: int = DEFAULT_MAX_EDGE) -> Tuple[np.ndarray, ImageSize, ImageSize]:
	"""Returns (rgb array for the detector, original size, detector size)."""
	original = ImageSize(width=int(img.width), height=int(img.height))
	target = downscaled_size(original, max_edge)
	rgb = img.convert("RGB")
	if (target.width, target.height) != (original.width, original.height):
		rgb = rgb.resize((target.width, target.height), Image.Resampling.LANCZOS)
	return np.asarray(rgb, dtype=np.uint8), original, target


class TemplateAcquirer:
	def __init__(
		self,
		channel: DetectorChannel,
		max_edge: int = DEFAULT_MAX_EDGE,
		presets_dir: Optional[str | Path] = None,
	) -> None:
		self._channel = channel
		self._max_edge = int(max_edge) if int(max_edge) > 0 else DEFAULT_MAX_EDGE
		self._presets_dir = presets_dir

	async def from_image(
		self,
		img: Image.Image,
		pose_name: str = DEFAULT_POSE_NAME,
		source: str = SOURCE_UPLOAD,
		source_id: Optional[str] = None,
	) -> TemplateResult:
		rgb, original, det_size = prepare_for_detection(img, self._max_edge)
		skeleton = await self._channel.detect_template(rgb)
		if not skeleton:
			logger.info("[Template] no pose found in %s image (%dx%d)", source, original.width, original.height)
			raise NoPoseDetected("No pose detected in this image. Try another one.")
		logger.info(
			"[Template] %s template '%s' ready: %d landmarks, original %dx%d",
			source, pose_name, len(skeleton), original.width, original.height,
		)
		return TemplateResult(
			skeleton=tuple(skeleton),
			image_size=original,
			pose_name=pose_name or DEFAULT_POSE_NAME,
			source=source,
			source_id=source_id,
			detector_size=det_size,
		)

	async def from_bytes(self, data: bytes, pose_name: str = DEFAULT_POSE_NAME) -> TemplateResult:
		return await self.from_image(decode_image(data), pose_name=pose_name, source=SOURCE_UPLOAD)

	async def from_data_url(self, data_url: str, pose_name: str = DEFAULT_POSE_NAME) -> TemplateResult:
		return await self.from_bytes(decode_data_url(data_url), pose_name=pose_name)

	async def from_preset(self, pose_id: str) -> TemplateResult:
		preset = get_pose_by_id(pose_id)
		if preset is None:
			raise KeyError(pose_id)
		path = preset.image_path(self._presets_dir)
		try:
			data = path.read_bytes()
		except OSError as e:
			raise InvalidTemplateImage(f"Preset image missing: {path} (install the preset photos under template.presets_dir)") from e
		return await self.from_image(decode_image(data), pose_name=preset.name, source=SOURCE_PRESET, source_id=preset.id)

	async def from_saved(
		self,
		saved_id: str,
		fetch: Callable[[str], Awaitable[Optional[Dict[str, Any]]]],
	) -> TemplateResult:
		"""`fetch` resolves a saved photo id for the current user (persistence layer)."""
		saved = await fetch(saved_id)
		if not saved:
			raise KeyError(saved_id)
		data = decode_data_url(str(saved.get("photo_data_url") or ""))
		return await self.from_image(
			decode_image(data),
			pose_name=str(saved.get("pose_name") or DEFAULT_POSE_NAME),
			source=SOURCE_SAVED,
			source_id=str(saved_id),
		)
