"""FastAPI service: upscale with an immediate preview, export full resolution on demand."""
import asyncio
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import torch
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from PIL import Image, ImageOps

from config import (
    PICTURES_DIR, OUTPUT_DIR, MAX_SAFE_PIXELS, PREVIEW_SIZE, MAX_SCALE_FACTOR,
    DEFAULT_SURFACE, COMMON_IMG_HEADERS, device
)
from errors import ErrorKind, UpscaleError
from pipeline import UpscalePipeline
from progress import ProgressTracker
from raster import RasterImage
from store import ResultStore
from surfaces import get_surface
from utils import safe_join, _etag_for

IMAGE_SUFFIXES = ('.png', '.jpg', '.jpeg', '.webp', '.tif', '.tiff')

STATUS_FOR_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.BUSY: 409,
    ErrorKind.NO_SOURCE_AVAILABLE: 410,
    ErrorKind.PLATFORM_LIMIT_EXCEEDED: 507,
}

PICTURES_DIR.mkdir(parents=True, exist_ok=True)
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

# Initialize app
app = FastAPI(title="Progressive Image Upscaler")

# CORS for local UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://127.0.0.1:8000"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.pipeline = UpscalePipeline(
    get_surface(DEFAULT_SURFACE), MAX_SAFE_PIXELS, PREVIEW_SIZE, annotate_previews=True
)
app.state.results = ResultStore()
app.state.progress = ProgressTracker()
# Two workers so an export can run beside a new upscale request
app.state.executor = ThreadPoolExecutor(max_workers=2)


def _error_response(e: UpscaleError) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": str(e), "kind": e.kind.value},
        status_code=STATUS_FOR_KIND.get(e.kind, 500),
    )


def _save_png(image: RasterImage, output_path: Path):
    """Write a PNG atomically."""
    tmp_path = output_path.with_suffix(output_path.suffix + ".tmp")
    image.to_pil().save(tmp_path, format="PNG", compress_level=6)
    os.replace(tmp_path, output_path)


def _serve_file(base: Path, filename: str, request: Request):
    p = safe_join(base, filename)
    if not p.exists():
        return JSONResponse({"error": "File not found"}, status_code=404)
    etag = _etag_for(p)
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers={"ETag": etag})
    return FileResponse(p, headers={**COMMON_IMG_HEADERS, "ETag": etag})


# Routes
@app.get("/api/images")
def list_images():
    """List all images in the input directory."""
    images = []
    if PICTURES_DIR.exists():
        for file in PICTURES_DIR.iterdir():
            if file.is_file() and file.suffix.lower() in IMAGE_SUFFIXES:
                images.append(file.name)
    return JSONResponse({"images": sorted(images)})


@app.get("/api/config")
def config(request: Request):
    """Get configuration."""
    pipeline = request.app.state.pipeline
    return {
        "max_safe_pixels": pipeline.policy.max_pixels,
        "preview_size": pipeline.previews.bound,
        "max_scale": MAX_SCALE_FACTOR,
        "surface": pipeline.surface.name,
    }


@app.get("/input/{filename}")
def get_input_image(filename: str, request: Request):
    """Serve input images."""
    return _serve_file(PICTURES_DIR, filename, request)


@app.get("/output/{filename}")
def get_output_image(filename: str, request: Request):
    """Serve previews and exported images."""
    return _serve_file(OUTPUT_DIR, filename, request)


@app.get("/health")
def health(request: Request):
    """Health check endpoint."""
    return {"ok": True, "device": str(device), "state": request.app.state.pipeline.state.value}


@app.get("/progress/{request_id}")
def get_progress(request_id: str, request: Request):
    """Last progress report for an in-flight request."""
    p = request.app.state.progress.get(request_id)
    if p is None:
        return JSONResponse({"error": "Request not found"}, status_code=404)
    percent, message = p
    return {"request_id": request_id, "percent": percent, "message": message}


@app.on_event("shutdown")
def _shutdown():
    """Cleanup on shutdown."""
    app.state.executor.shutdown(wait=False, cancel_futures=True)
    if torch.cuda.is_available():
        torch.cuda.empty_cache()


@app.post("/upscale")
async def upscale(
    request: Request,
    filename: str = Query(..., description="Name of the image file in /pictures/input directory"),
    scale: float = Query(4, ge=1, le=MAX_SCALE_FACTOR),
    request_id: str = Query(None, description="Request ID for progress polling"),
):
    """Upscale a single image and return its preview plus a result handle."""
    start_time = time.time()
    input_path = safe_join(PICTURES_DIR, filename)
    if not input_path.exists():
        return JSONResponse({"error": f"File not found: {filename}"}, status_code=404)

    try:
        with Image.open(input_path) as im:
            im = ImageOps.exif_transpose(im)
            source = RasterImage.from_pil(im)
    except UpscaleError as e:
        return _error_response(e)
    except Exception as e:
        return JSONResponse({"error": f"Failed to open image: {str(e)}"}, status_code=400)

    pipeline = request.app.state.pipeline
    progress = request.app.state.progress
    progress.register(request_id)

    base_name = Path(filename).stem
    preview_filename = f"{base_name}_preview_{scale:g}x.png"

    def run_upscale():
        outcome = pipeline.upscale(source, scale, progress.callback(request_id))
        _save_png(outcome.preview, OUTPUT_DIR / preview_filename)
        return outcome

    try:
        outcome = await asyncio.wrap_future(request.app.state.executor.submit(run_upscale))
    except UpscaleError as e:
        print(f"[Upscale] {filename} x{scale:g} failed ({e.kind.value}): {e}")
        return _error_response(e)
    except Exception as e:
        print(f"[Upscale] {filename} x{scale:g} failed: {e}")
        return JSONResponse({"error": str(e), "success": False}, status_code=500)
    finally:
        progress.unregister(request_id)
        if torch.cuda.is_available():
            torch.cuda.empty_cache()

    result = outcome.result
    result_id = request.app.state.results.put(result, filename, scale)
    processing_time = time.time() - start_time
    tw, th = result.target_size
    print(f"[Upscale] {filename} x{scale:g} -> {tw}x{th} "
          f"({'virtual' if result.is_virtual else 'direct'}) in {processing_time:.2f}s")

    response_data = {
        "success": True,
        "result_id": result_id,
        "filename": filename,
        "scale": scale,
        "virtual": result.is_virtual,
        "target_size": [tw, th],
        "megapixels": result.megapixels,
        "preview_filename": preview_filename,
        "preview_size": list(outcome.preview.size),
        "processing_time": processing_time,
    }
    if result.is_virtual:
        response_data["intermediate_size"] = list(result.intermediate.size)
    else:
        response_data["output_size"] = list(result.image.size)
    headers = {"Server-Timing": f"process;dur={processing_time*1000:.2f}"}
    return JSONResponse(response_data, headers=headers)


@app.post("/export/{result_id}")
async def export(
    result_id: str,
    request: Request,
    request_id: str = Query(None, description="Request ID for progress polling"),
):
    """Materialize a result at full resolution and write it as PNG."""
    start_time = time.time()
    entry = request.app.state.results.get(result_id)
    if entry is None:
        return JSONResponse({"error": "Result not found"}, status_code=404)

    pipeline = request.app.state.pipeline
    progress = request.app.state.progress
    progress.register(request_id)

    output_filename = f"{Path(entry.filename).stem}_upscaled_{entry.scale:g}x.png"

    def run_export():
        full = pipeline.materialize_full(entry.result, progress.callback(request_id))
        _save_png(full, OUTPUT_DIR / output_filename)
        return full.size

    try:
        output_size = await asyncio.wrap_future(request.app.state.executor.submit(run_export))
    except UpscaleError as e:
        print(f"[Export] {result_id} failed ({e.kind.value}): {e}")
        return _error_response(e)
    except Exception as e:
        print(f"[Export] {result_id} failed: {e}")
        return JSONResponse({"error": str(e), "success": False}, status_code=500)
    finally:
        progress.unregister(request_id)
        if torch.cuda.is_available():
            torch.cuda.empty_cache()

    processing_time = time.time() - start_time
    print(f"[Export] {output_filename} {output_size[0]}x{output_size[1]} in {processing_time:.2f}s")
    return JSONResponse({
        "success": True,
        "result_id": result_id,
        "output_filename": output_filename,
        "output_size": list(output_size),
        "processing_time": processing_time,
    })


@app.post("/results/{result_id}/release")
def release_result_source(result_id: str, request: Request):
    """Release the source held by a virtual result; later exports fail with 410."""
    try:
        released = request.app.state.results.release_source(result_id)
    except KeyError:
        return JSONResponse({"error": "Result not found"}, status_code=404)
    return {"success": True, "released": released}


@app.delete("/results/{result_id}")
def discard_result(result_id: str, request: Request):
    """Forget a stored result."""
    if not request.app.state.results.discard(result_id):
        return JSONResponse({"error": "Result not found"}, status_code=404)
    return {"success": True}
