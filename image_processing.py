"""Progressive upscaling in <=2x steps."""
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from errors import InvalidInput, PlatformLimitExceeded, SurfaceAllocationError
from raster import RasterImage
from safety import SafetyPolicy
from surfaces import RasterSurface
from utils import plan_doublings, step_count

ProgressCallback = Callable[[float, str], None]


@dataclass(frozen=True)
class ScaleStep:
    """One completed resample step."""
    index: int
    total: int
    image: RasterImage

    @property
    def percent(self) -> float:
        return min(100.0, self.index / self.total * 100)

    @property
    def message(self) -> str:
        return f"Progressive step {self.index}/{self.total}"


class ProgressiveScaler:
    """Reaches an arbitrary target by repeatedly doubling through a surface.

    Every candidate step is checked against the safety policy first. When a
    step would exceed it, or the surface fails to allocate after at least one
    good step, scaling stops and the last good buffer is returned. A buffer
    smaller than the target is a partial result, not an error.
    """

    def __init__(self, surface: RasterSurface, policy: SafetyPolicy):
        self.surface = surface
        self.policy = policy

    def steps(self, source: RasterImage, target_width: int, target_height: int,
              enforce_threshold: bool = True) -> Iterator[ScaleStep]:
        """Yield each successful step; the last one yielded is the best buffer."""
        if target_width <= 0 or target_height <= 0:
            raise InvalidInput(f"Target size must be positive, got {target_width}x{target_height}")

        # A ratio up to 2x is a single call.
        sizes = plan_doublings(source.width, source.height, target_width, target_height)
        total = step_count(source.width, source.height, target_width, target_height)
        current = source
        for index, (next_w, next_h) in enumerate(sizes, start=1):
            if enforce_threshold and not self.policy.is_directly_materializable(next_w * next_h):
                return
            try:
                current = self.surface.resample(current, next_w, next_h)
            except SurfaceAllocationError as e:
                if index == 1:
                    raise PlatformLimitExceeded(str(e)) from e
                return
            yield ScaleStep(index, total, current)

    def scale(self, source: RasterImage, target_width: int, target_height: int,
              progress: Optional[ProgressCallback] = None,
              enforce_threshold: bool = True) -> RasterImage:
        """Scale source towards the target, returning the best buffer reached."""
        result = source
        for step in self.steps(source, target_width, target_height, enforce_threshold):
            result = step.image
            if progress:
                progress(step.percent, step.message)
        return result
