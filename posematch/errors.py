"""
Failure signals surfaced to the UI layer.

None of these are fatal to the process; routers translate them into HTTP
status codes and the session falls back to a stable state (IDLE / upload step).
"""


class PoseMatchError(Exception):
	"""Base class for recoverable pose-matching failures."""


class NoPoseDetected(PoseMatchError):
	"""The detector found no body in a template image. User picks another image."""


class InvalidTemplateImage(PoseMatchError):
	"""The template source could not be decoded as an image."""


class CameraUnavailable(PoseMatchError):
	"""Every camera resolution fallback failed."""


class DetectorInitFailed(PoseMatchError):
	"""The landmark detector could not be initialised."""


class SaveFailed(PoseMatchError):
	"""The persistence collaborator rejected a save."""


class PersistenceDisabled(PoseMatchError):
	"""No database is configured, so nothing can be stored or listed."""


class CaptureBusy(PoseMatchError):
	"""A confirmed photo is still being saved; the capture state cannot be reset yet."""
