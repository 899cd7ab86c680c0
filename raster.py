"""Immutable RGBA pixel buffers."""
from dataclasses import dataclass

import numpy as np
from PIL import Image

from errors import InvalidInput

CHANNELS = 4  # RGBA, 8 bit per channel


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Row-major RGBA buffer of shape (height, width, 4).

    The array is flagged read-only on construction; a RasterImage is never
    modified after it is built, only replaced.
    """
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        if not isinstance(self.width, int) or not isinstance(self.height, int):
            raise InvalidInput(f"Dimensions must be integers, got {self.width!r}x{self.height!r}")
        if self.width <= 0 or self.height <= 0:
            raise InvalidInput(f"Dimensions must be positive, got {self.width}x{self.height}")
        # Private copy; the caller keeps its array writable.
        arr = np.array(self.pixels, dtype=np.uint8, copy=True, order="C")
        if arr.shape != (self.height, self.width, CHANNELS):
            raise InvalidInput(
                f"Buffer shape {arr.shape} does not match {self.width}x{self.height}x{CHANNELS}"
            )
        arr.setflags(write=False)
        object.__setattr__(self, "pixels", arr)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RasterImage":
        """Wrap an (H, W, 4) uint8 array."""
        if arr.ndim != 3:
            raise InvalidInput(f"Expected an (H, W, {CHANNELS}) array, got shape {arr.shape}")
        h, w = arr.shape[:2]
        return cls(int(w), int(h), arr)

    @classmethod
    def from_pil(cls, img: Image.Image) -> "RasterImage":
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        return cls.from_array(np.asarray(img, dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def nbytes(self) -> int:
        return self.pixels.nbytes

    def __repr__(self):
        return f"RasterImage({self.width}x{self.height})"


# Previews are ordinary rasters bounded by the preview size.
PreviewImage = RasterImage
