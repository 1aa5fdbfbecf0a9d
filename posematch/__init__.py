"""
PoseMatch: match a live camera feed against a reference pose and capture the photo.
"""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

_VERSION_FILE = Path(__file__).resolve().parents[1] / "VERSION"


def _read_version() -> str:
	# Source checkouts carry VERSION at the repo root; installed copies use package metadata.
	try:
		val = _VERSION_FILE.read_text(encoding="utf-8").strip()
		if val:
			return val
	except OSError:
		pass
	try:
		return version("posematch")
	except PackageNotFoundError:
		return "0.0.0"


__version__ = _read_version()
