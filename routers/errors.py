"""Map pose-matching failures to HTTP status codes for the routers."""
from fastapi import HTTPException

from posematch.detector import DetectionSuperseded
from posematch.errors import (
	CameraUnavailable,
	CaptureBusy,
	DetectorInitFailed,
	InvalidTemplateImage,
	NoPoseDetected,
	PersistenceDisabled,
	PoseMatchError,
	SaveFailed,
)

_STATUS = (
	(NoPoseDetected, 422),
	(InvalidTemplateImage, 400),
	(CameraUnavailable, 503),
	(DetectorInitFailed, 503),
	(PersistenceDisabled, 503),
	(DetectionSuperseded, 409),
	(CaptureBusy, 409),
	(SaveFailed, 500),
)


def to_http(e: Exception, what: str = "Request") -> HTTPException:
	if isinstance(e, HTTPException):
		return e
	for exc_type, status in _STATUS:
		if isinstance(e, exc_type):
			return HTTPException(status_code=status, detail=str(e))
	if isinstance(e, KeyError):
		return HTTPException(status_code=404, detail=f"{what}: {e.args[0] if e.args else ''} not found")
	if isinstance(e, (ValueError, PoseMatchError)):
		return HTTPException(status_code=400, detail=str(e))
	return HTTPException(status_code=500, detail=f"{what} failed: {e!r}")
