"""Upscale orchestration: scale under the safety policy, then preview."""
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import MAX_SAFE_PIXELS, PREVIEW_SIZE
from errors import Busy, InvalidInput
from image_processing import ProgressCallback, ProgressiveScaler
from preview import PreviewGenerator
from raster import PreviewImage, RasterImage
from results import DirectResult, ResultMaterializer, ScaleResult, SourceHandle, VirtualResult
from safety import SafetyPolicy
from surfaces import PilSurface, RasterSurface
from utils import target_dimensions, validate_scale_factor

SCALING_SHARE = 0.8  # Scaling reports into 0..80%, the preview takes the rest


class PipelineState(str, Enum):
    IDLE = "idle"
    SCALING = "scaling"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


ACTIVE_STATES = (PipelineState.SCALING, PipelineState.FINALIZING)


@dataclass(frozen=True)
class ScaleRequest:
    """Source (borrowed, never modified), scale factor and optional progress sink."""
    source: RasterImage
    scale_factor: object
    on_progress: Optional[ProgressCallback] = None


@dataclass(frozen=True)
class UpscaleOutcome:
    preview: PreviewImage
    result: ScaleResult


class UpscalePipeline:
    """Runs one upscale at a time and hands back a preview plus a result handle.

    Targets within the safety threshold are scaled directly and returned as
    DirectResult. Larger targets are scaled only to the safe intermediate size
    and returned as VirtualResult carrying the true target dimensions; the full
    buffer is built later by materialize_full.
    """

    def __init__(self, surface: RasterSurface = None, max_pixels: int = MAX_SAFE_PIXELS,
                 preview_size: int = PREVIEW_SIZE, annotate_previews: bool = False):
        self.surface = surface if surface is not None else PilSurface()
        self.policy = SafetyPolicy(max_pixels)
        self.scaler = ProgressiveScaler(self.surface, self.policy)
        self.previews = PreviewGenerator(self.surface, preview_size)
        self.materializer = ResultMaterializer(self.scaler)
        self.annotate_previews = annotate_previews

        self._state_lock = threading.Lock()
        self.state = PipelineState.IDLE
        self.last_error: Optional[Exception] = None

    def _set_state(self, state: PipelineState):
        with self._state_lock:
            self.state = state

    def _begin(self):
        with self._state_lock:
            if self.state in ACTIVE_STATES:
                raise Busy(f"Pipeline is {self.state.value}")
            self.state = PipelineState.SCALING
            self.last_error = None

    def reset(self):
        """Return a finished pipeline to idle."""
        with self._state_lock:
            if self.state in ACTIVE_STATES:
                raise Busy(f"Pipeline is {self.state.value}")
            self.state = PipelineState.IDLE
            self.last_error = None

    def upscale(self, source: RasterImage, scale_factor,
                on_progress: Optional[ProgressCallback] = None) -> UpscaleOutcome:
        """Scale source by scale_factor.

        on_progress(percent, message) is called synchronously in increasing
        order and ends at 100 on success.
        """
        self._begin()
        try:
            outcome = self._run(source, scale_factor, on_progress)
        except Exception as e:
            with self._state_lock:
                self.state = PipelineState.FAILED
                self.last_error = e
            raise
        self._set_state(PipelineState.DONE)
        return outcome

    def run(self, request: ScaleRequest) -> UpscaleOutcome:
        return self.upscale(request.source, request.scale_factor, request.on_progress)

    def _run(self, source, scale_factor, on_progress) -> UpscaleOutcome:
        if not isinstance(source, RasterImage):
            raise InvalidInput(f"Expected a RasterImage, got {type(source).__name__}")
        scale_factor = validate_scale_factor(scale_factor)

        def report(percent, message):
            if on_progress:
                on_progress(percent, message)

        def scaling_progress(percent, message):
            report(percent * SCALING_SHARE, message)

        report(0, "Starting progressive upscaling...")
        tw, th = target_dimensions(source.width, source.height, scale_factor)

        if self.policy.is_directly_materializable(tw * th):
            image = self.scaler.scale(source, tw, th, progress=scaling_progress)
            result = DirectResult(image)
        else:
            safe_scale = self.policy.safe_intermediate_scale(scale_factor, source.width, source.height)
            iw = max(1, int(source.width * safe_scale))
            ih = max(1, int(source.height * safe_scale))
            intermediate = self.scaler.scale(source, iw, ih, progress=scaling_progress)
            result = VirtualResult(tw, th, intermediate, SourceHandle(source))

        self._set_state(PipelineState.FINALIZING)
        report(85, "Building preview...")
        preview = self.previews.make_preview(
            source, tw, th, annotate=self.annotate_previews and result.is_virtual
        )
        report(100, "Complete")
        return UpscaleOutcome(preview, result)

    def materialize_full(self, result: ScaleResult,
                         on_progress: Optional[ProgressCallback] = None) -> RasterImage:
        """Full-resolution buffer for export. Does not touch pipeline state."""
        return self.materializer.materialize_full(result, on_progress)
