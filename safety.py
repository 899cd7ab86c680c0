"""Pixel-count safety policy."""
import math
from dataclasses import dataclass

from config import MAX_SAFE_PIXELS
from errors import InvalidInput


@dataclass(frozen=True)
class SafetyPolicy:
    """Decides what may be materialized as a concrete buffer."""
    max_pixels: int = MAX_SAFE_PIXELS

    def __post_init__(self):
        if not isinstance(self.max_pixels, int) or self.max_pixels <= 0:
            raise InvalidInput(f"Safety threshold must be a positive integer, got {self.max_pixels!r}")

    def is_directly_materializable(self, pixel_count: int) -> bool:
        return pixel_count <= self.max_pixels

    def max_safe_dimension(self) -> int:
        return math.isqrt(self.max_pixels)

    def safe_intermediate_scale(self, requested_scale, source_width: int, source_height: int) -> float:
        """Largest scale <= requested whose square bounding box fits the threshold."""
        return min(requested_scale, self.max_safe_dimension() / max(source_width, source_height))
