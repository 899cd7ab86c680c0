"""Utility functions."""
import math
from numbers import Real
from pathlib import Path

from fastapi import HTTPException

from errors import InvalidInput


def validate_scale_factor(scale) -> Real:
    """Reject non-finite, non-positive and shrinking scale factors."""
    if isinstance(scale, bool) or not isinstance(scale, Real):
        raise InvalidInput(f"Scale factor must be a number, got {scale!r}")
    if not math.isfinite(scale) or scale <= 0:
        raise InvalidInput(f"Scale factor must be positive, got {scale}")
    if scale < 1:
        raise InvalidInput(f"Scale factor must be at least 1, got {scale}")
    return scale


def target_dimensions(width: int, height: int, scale) -> tuple[int, int]:
    """Target size for a uniform scale, rounded to whole pixels."""
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def plan_doublings(src_w: int, src_h: int, dst_w: int, dst_h: int) -> list[tuple[int, int]]:
    """Sizes visited when doubling towards a target, e.g. 100x80 -> 500x400
    gives [(200, 160), (400, 320), (500, 400)]."""
    sizes = []
    w, h = src_w, src_h
    while (w, h) != (dst_w, dst_h):
        w, h = min(w * 2, dst_w), min(h * 2, dst_h)
        sizes.append((w, h))
    return sizes


def step_count(src_w: int, src_h: int, dst_w: int, dst_h: int) -> int:
    """Number of <=2x steps needed: ceil(log2(max ratio)), at least one."""
    max_scale = max(dst_w / src_w, dst_h / src_h)
    if max_scale <= 2:
        return 1
    return math.ceil(math.log2(max_scale))


def safe_join(base: Path, name: str) -> Path:
    """Safely join path, preventing directory traversal."""
    p = (base / Path(name).name).resolve()
    if base.resolve() not in p.parents and base.resolve() != p:
        raise HTTPException(status_code=400, detail="Invalid filename")
    return p


def _etag_for(path: Path) -> str:
    """Generate ETag for file."""
    st = path.stat()
    return f'W/"{st.st_mtime_ns}-{st.st_size}"'
