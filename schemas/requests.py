"""Pydantic request body models."""
from typing import Optional

from pydantic import BaseModel, Field


class TemplateUploadPayload(BaseModel):
	"""Request body for POST /template/upload. Image as a base64 data URL."""

	image_data_url: str = Field(..., min_length=1, description="data:image/...;base64,<payload>")
	pose_name: Optional[str] = Field(None, description="Display name; 'Custom Pose' if empty")


class CameraStartPayload(BaseModel):
	"""Request body for POST /camera/start."""

	facing: Optional[str] = Field(None, description="'front' or 'rear'; profile default if omitted")
	fps: Optional[float] = Field(None, gt=0, description="Preview processing rate in Hz")


class CameraControlsPayload(BaseModel):
	"""Request body for POST /camera/controls. Only honoured when the device supports the control."""

	zoom: Optional[float] = Field(None, description="Device zoom value")
	exposure_compensation: Optional[float] = Field(None, description="Device exposure value")


class AutoCapturePayload(BaseModel):
	"""Request body for POST /capture/auto."""

	enabled: bool = Field(..., description="Turn hands-free capture on or off")


class SavedPhotoPayload(BaseModel):
	"""Request body for POST /api/saved. A reference photo reusable as a template."""

	pose_name: str = Field(..., min_length=1, description="Name shown in the saved list")
	photo_data_url: str = Field(..., min_length=1, description="data:image/...;base64,<payload>")
	score: int = Field(0, ge=0, le=100, description="Match score at capture time")
