"""CaptureProvider — abstract base for image sources."""
from abc import ABC, abstractmethod

from infectoscan.models import CapturedImage


class CaptureProvider(ABC):
    @abstractmethod
    def capture(self) -> CapturedImage:
        """Produce one still image. Raises on failure."""
        ...
