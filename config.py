"""Configuration constants and settings."""
from pathlib import Path
from PIL import Image
import torch

# Image processing limits
Image.MAX_IMAGE_PIXELS = 300_000_000  # ~300 MP cap on decoded inputs
MAX_SAFE_PIXELS = 50_000_000  # Largest buffer materialized outside an export
PREVIEW_SIZE = 1024  # Preview long edge
MAX_SCALE_FACTOR = 16
MAX_STORED_RESULTS = 8  # Results kept for export before the oldest is evicted

# Platform surface ceilings
MAX_SURFACE_DIMENSION = 32767
MAX_SURFACE_PIXELS = 16384 * 16384

DEFAULT_SURFACE = "pil"

# Directory paths
PICTURES_DIR = Path("pictures") / "input"
OUTPUT_DIR = Path("pictures") / "output"

# HTTP headers
COMMON_IMG_HEADERS = {
    "Cache-Control": "public, max-age=31536000, immutable, no-transform",
    "X-Content-Type-Options": "nosniff",
}

# PyTorch settings
device = torch.device("cuda" if torch.cuda.is_available() else "cpu")
torch.set_grad_enabled(False)

# LANCZOS resampling
try:
    LANCZOS = Image.Resampling.LANCZOS
except AttributeError:
    LANCZOS = Image.LANCZOS
