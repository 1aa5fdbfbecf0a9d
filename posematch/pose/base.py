from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from posematch.pose.types import Skeleton


class PoseProvider(ABC):
	"""
	Model adapter interface.

	Implementations take an RGB image (H,W,3 uint8) and return the landmarks of
	one person normalized to that image, or None when nobody is found.
	Providers are not reentrant; DetectorChannel serialises calls.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def detect(self, rgb) -> Optional[Skeleton]: ...

	@abstractmethod
	def close(self) -> None: ...
