"""Tests for the Pillow and torch surfaces."""

import numpy as np
import pytest
import torch

from errors import InvalidInput, SurfaceAllocationError
from surfaces import PilSurface, TorchSurface, get_surface, raster_to_tensor, tensor_to_raster
from tests.conftest import make_image


@pytest.fixture(params=["pil", "torch"])
def backend(request):
    if request.param == "torch":
        return TorchSurface(torch_device=torch.device("cpu"))
    return PilSurface()


class TestResample:
    def test_output_size(self, backend):
        out = backend.resample(make_image(20, 10), 40, 20)
        assert out.size == (40, 20)
        assert out.pixels.dtype == np.uint8

    def test_constant_image_stays_constant(self, backend):
        out = backend.resample(make_image(16, 16, value=90), 32, 32)
        assert np.abs(out.pixels.astype(int) - 90).max() <= 1

    def test_same_size_is_identity(self, backend):
        image = make_image(8, 8)
        assert backend.resample(image, 8, 8) is image

    def test_downscale(self, backend):
        assert backend.resample(make_image(64, 48), 16, 12).size == (16, 12)

    def test_dimension_ceiling(self):
        surface = PilSurface(max_dimension=100)
        with pytest.raises(SurfaceAllocationError):
            surface.resample(make_image(60, 10), 120, 20)

    def test_pixel_ceiling(self):
        surface = PilSurface(max_pixels=1000)
        with pytest.raises(SurfaceAllocationError):
            surface.resample(make_image(20, 20), 40, 40)

    def test_memory_error_becomes_allocation_error(self, monkeypatch):
        surface = PilSurface()

        def boom(image, width, height):
            raise MemoryError

        monkeypatch.setattr(surface, "_resample", boom)
        with pytest.raises(SurfaceAllocationError):
            surface.resample(make_image(4, 4), 8, 8)


class TestTensorConversion:
    def test_round_trip_values(self):
        image = make_image(3, 2, value=77)
        t = raster_to_tensor(image)
        assert t.shape == (1, 4, 2, 3)
        assert tensor_to_raster(t).pixels.tolist() == image.pixels.tolist()


class TestGetSurface:
    def test_known_backends(self):
        assert isinstance(get_surface("pil"), PilSurface)
        assert isinstance(get_surface("torch"), TorchSurface)

    def test_unknown_backend(self):
        with pytest.raises(InvalidInput):
            get_surface("vulkan")
