"""Scale results and on-demand full-resolution materialization."""
import threading
from dataclasses import dataclass
from typing import Optional, Union

from errors import NoSourceAvailable, PlatformLimitExceeded
from image_processing import ProgressCallback, ProgressiveScaler
from raster import RasterImage


class SourceHandle:
    """Keeps the original image alive for a virtual result until released."""

    def __init__(self, image: RasterImage):
        self._image = image
        self._lock = threading.Lock()

    def get(self) -> RasterImage:
        with self._lock:
            if self._image is None:
                raise NoSourceAvailable("Source image has been released")
            return self._image

    def release(self):
        with self._lock:
            self._image = None

    @property
    def released(self) -> bool:
        return self._image is None


@dataclass(frozen=True, eq=False)
class DirectResult:
    """Fully materialized result at the target size."""
    image: RasterImage
    is_virtual = False

    @property
    def target_size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def megapixels(self) -> float:
        return round(self.image.pixel_count / 1_000_000, 1)


@dataclass(frozen=True, eq=False)
class VirtualResult:
    """Target dimensions plus a safely sized intermediate and the original.

    The full buffer is only produced by ResultMaterializer.materialize_full.
    """
    target_width: int
    target_height: int
    intermediate: RasterImage
    source: SourceHandle
    is_virtual = True

    @property
    def target_size(self) -> tuple[int, int]:
        return self.target_width, self.target_height

    @property
    def megapixels(self) -> float:
        return round(self.target_width * self.target_height / 1_000_000, 1)

    def release_source(self):
        self.source.release()


ScaleResult = Union[DirectResult, VirtualResult]


class ResultMaterializer:
    """Turns any ScaleResult into a full-resolution RasterImage."""

    def __init__(self, scaler: ProgressiveScaler):
        self.scaler = scaler

    def materialize_full(self, result: ScaleResult,
                         on_progress: Optional[ProgressCallback] = None) -> RasterImage:
        if isinstance(result, DirectResult):
            if on_progress:
                on_progress(100, "Full resolution ready")
            return result.image

        if isinstance(result, VirtualResult):
            source = result.source.get()
            tw, th = result.target_size
            # Export path: the caller asked for the expensive buffer, so no threshold.
            full = self.scaler.scale(source, tw, th, progress=on_progress, enforce_threshold=False)
            if full.size != (tw, th):
                raise PlatformLimitExceeded(
                    f"Stopped at {full.width}x{full.height} before reaching {tw}x{th}"
                )
            if on_progress:
                on_progress(100, "Full resolution ready")
            return full

        raise TypeError(f"Unsupported result type: {type(result).__name__}")
