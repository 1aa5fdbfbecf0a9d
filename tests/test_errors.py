import pytest
from fastapi import HTTPException

from posematch.detector import DetectionSuperseded
from posematch.errors import (
	CameraUnavailable,
	CaptureBusy,
	DetectorInitFailed,
	InvalidTemplateImage,
	NoPoseDetected,
	PersistenceDisabled,
	SaveFailed,
)
from routers.errors import to_http


@pytest.mark.parametrize(
	"exc, status",
	[
		(NoPoseDetected("none"), 422),
		(InvalidTemplateImage("bad"), 400),
		(CameraUnavailable("cam"), 503),
		(DetectorInitFailed("model"), 503),
		(PersistenceDisabled("db"), 503),
		(DetectionSuperseded("newer"), 409),
		(CaptureBusy("saving"), 409),
		(SaveFailed("insert"), 500),
		(KeyError("thumbs-down"), 404),
		(ValueError("pose_name is required"), 400),
		(RuntimeError("boom"), 500),
	],
)
def test_status_mapping(exc, status):
	assert to_http(exc).status_code == status


def test_http_exception_passes_through():
	e = HTTPException(status_code=418, detail="teapot")
	assert to_http(e) is e
