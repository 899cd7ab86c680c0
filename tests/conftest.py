import numpy as np
import pytest

from errors import SurfaceAllocationError
from pipeline import UpscalePipeline
from raster import RasterImage
from surfaces import RasterSurface


def make_image(width, height, value=128):
    return RasterImage(width, height, np.full((height, width, 4), value, dtype=np.uint8))


class CountingSurface(RasterSurface):
    """Zero-filled resampling that records every requested size.

    fail_at lists 1-based call numbers that raise SurfaceAllocationError.
    """
    name = "counting"

    def __init__(self, fail_at=(), **kwargs):
        super().__init__(**kwargs)
        self.calls = []
        self.fail_at = set(fail_at)

    def _resample(self, image, width, height):
        self.calls.append((width, height))
        if len(self.calls) in self.fail_at:
            raise SurfaceAllocationError(f"simulated failure at {width}x{height}")
        return RasterImage(width, height, np.zeros((height, width, 4), dtype=np.uint8))


@pytest.fixture
def surface():
    return CountingSurface()


@pytest.fixture
def pipeline(surface):
    return UpscalePipeline(surface, max_pixels=50_000_000, preview_size=1024)
