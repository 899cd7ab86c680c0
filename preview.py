"""Fast, aspect-matched previews built from the original image."""
from PIL import Image, ImageDraw

from config import PREVIEW_SIZE
from errors import InvalidInput
from raster import PreviewImage, RasterImage
from surfaces import RasterSurface

PREVIEW_TINT = (0, 100, 255, 26)
PREVIEW_LABEL = (0, 100, 255, 204)


def preview_dimensions(target_width: int, target_height: int, bound: int) -> tuple[int, int]:
    """Fit the target aspect ratio inside a bound x bound box."""
    if target_width <= 0 or target_height <= 0:
        raise InvalidInput(f"Target size must be positive, got {target_width}x{target_height}")
    if bound <= 0:
        raise InvalidInput(f"Preview bound must be positive, got {bound}")
    aspect = target_height / target_width
    if aspect > 1:  # portrait
        return max(1, round(bound / aspect)), bound
    return bound, max(1, round(bound * aspect))


class PreviewGenerator:
    """Resamples the source (never the scaled result) to preview size in one call."""

    def __init__(self, surface: RasterSurface, bound: int = PREVIEW_SIZE):
        if bound <= 0:
            raise InvalidInput(f"Preview bound must be positive, got {bound}")
        self.surface = surface
        self.bound = bound

    def make_preview(self, source: RasterImage, target_width: int, target_height: int,
                     bound: int = None, annotate: bool = False) -> PreviewImage:
        w, h = preview_dimensions(target_width, target_height, self.bound if bound is None else bound)
        preview = self.surface.resample(source, w, h)
        if annotate:
            preview = annotate_preview(preview, target_width, target_height)
        return preview


def annotate_preview(preview: RasterImage, target_width: int, target_height: int) -> RasterImage:
    """Tint the preview and label it with the full-resolution size."""
    base = preview.to_pil()
    overlay = Image.new("RGBA", base.size, PREVIEW_TINT)
    draw = ImageDraw.Draw(overlay)
    draw.text((10, 10), f"{target_width}×{target_height} Preview", fill=PREVIEW_LABEL)
    return RasterImage.from_pil(Image.alpha_composite(base, overlay))
