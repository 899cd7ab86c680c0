"""Raster surfaces: the platform resample primitive, one class per backend."""
import numpy as np
import torch
import torch.nn.functional as F

from config import device, LANCZOS, MAX_SURFACE_DIMENSION, MAX_SURFACE_PIXELS
from errors import InvalidInput, SurfaceAllocationError
from raster import RasterImage


class RasterSurface:
    """Resamples a buffer to a new size with high-quality interpolation.

    Callers keep each upscale step within 2x; the surface itself only
    enforces its allocation ceiling.
    """
    name = "base"

    def __init__(self, max_dimension: int = MAX_SURFACE_DIMENSION, max_pixels: int = MAX_SURFACE_PIXELS):
        self.max_dimension = max_dimension
        self.max_pixels = max_pixels

    def can_allocate(self, width: int, height: int) -> bool:
        return (
            width <= self.max_dimension
            and height <= self.max_dimension
            and width * height <= self.max_pixels
        )

    def resample(self, image: RasterImage, width: int, height: int) -> RasterImage:
        if width <= 0 or height <= 0:
            raise InvalidInput(f"Cannot resample to {width}x{height}")
        if not self.can_allocate(width, height):
            raise SurfaceAllocationError(
                f"{self.name} surface cannot allocate {width}x{height} "
                f"(limit {self.max_dimension}px per side, {self.max_pixels} pixels)"
            )
        if (width, height) == image.size:
            return image
        try:
            return self._resample(image, width, height)
        except MemoryError as e:
            raise SurfaceAllocationError(f"Out of memory allocating {width}x{height}") from e

    def _resample(self, image: RasterImage, width: int, height: int) -> RasterImage:
        raise NotImplementedError


class PilSurface(RasterSurface):
    """Lanczos resampling through Pillow."""
    name = "pil"

    def _resample(self, image, width, height):
        out = image.to_pil().resize((width, height), LANCZOS)
        return RasterImage.from_pil(out)


def raster_to_tensor(image: RasterImage) -> torch.Tensor:
    """Convert RasterImage to a 1x4xHxW float tensor in [0, 1]."""
    arr = image.pixels.astype(np.float32) / 255.0  # HWC, 0..1
    return torch.from_numpy(arr).permute(2, 0, 1).unsqueeze(0)


def tensor_to_raster(t: torch.Tensor) -> RasterImage:
    """Convert a 1x4xHxW tensor in [0, 1] back to RasterImage."""
    arr = t.squeeze(0).clamp(0, 1).mul(255.0).round().byte().permute(1, 2, 0).cpu().numpy()
    return RasterImage.from_array(arr)


class TorchSurface(RasterSurface):
    """Bicubic resampling with torch, on the GPU when one is available."""
    name = "torch"

    def __init__(self, *args, torch_device=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.device = torch_device if torch_device is not None else device

    def _resample(self, image, width, height):
        inp = raster_to_tensor(image).to(self.device, non_blocking=True)
        try:
            with torch.inference_mode():
                out = F.interpolate(
                    inp, size=(height, width), mode="bicubic",
                    align_corners=False, antialias=width < image.width or height < image.height,
                )
        except torch.cuda.OutOfMemoryError as e:
            if torch.cuda.is_available():
                torch.cuda.empty_cache()
            raise SurfaceAllocationError(f"CUDA out of memory allocating {width}x{height}") from e
        return tensor_to_raster(out)


SURFACES = {
    "pil": PilSurface,
    "torch": TorchSurface,
}


def get_surface(name: str, **kwargs) -> RasterSurface:
    """Build a surface backend by name."""
    try:
        cls = SURFACES[name]
    except KeyError:
        raise InvalidInput(f"Unknown surface backend: {name}") from None
    return cls(**kwargs)
