"""Shared pytest fixtures for Authentica tests."""

import io

import numpy as np
import pytest
from PIL import Image

from authentica import Authentica
from authentica.types import RasterImage


# ---------------------------------------------------------------------------
# Raster helpers
# ---------------------------------------------------------------------------


def make_image(arr, source_format="png") -> RasterImage:
    """Wrap a uint8 array as a RasterImage."""
    return RasterImage.from_array(np.asarray(arr, dtype=np.uint8), source_format=source_format)


def checkerboard(h: int, w: int) -> np.ndarray:
    """One-pixel 0/255 checkerboard; every pixel is an edge."""
    yy, xx = np.mgrid[0:h, 0:w]
    return (((yy + xx) % 2) * 255).astype(np.uint8)


def encode(arr, fmt="PNG", **kwargs) -> bytes:
    """Encode a uint8 array with Pillow."""
    buf = io.BytesIO()
    Image.fromarray(np.asarray(arr, dtype=np.uint8)).save(buf, format=fmt, **kwargs)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Image fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def gradient_array():
    """64x64 RGB gradient (x*4, y*4, 128)."""
    yy, xx = np.mgrid[0:64, 0:64]
    arr = np.zeros((64, 64, 3), dtype=np.uint8)
    arr[..., 0] = xx * 4
    arr[..., 1] = yy * 4
    arr[..., 2] = 128
    return arr


@pytest.fixture()
def gradient_image(gradient_array):
    return make_image(gradient_array)


@pytest.fixture()
def gray_image():
    """Uniform mid-gray RGB image."""
    return make_image(np.full((64, 64, 3), 128, dtype=np.uint8))


@pytest.fixture()
def noise_image():
    """Uniform random noise, fixed seed."""
    rng = np.random.default_rng(7)
    return make_image(rng.integers(0, 256, (100, 100, 3), dtype=np.uint8))


@pytest.fixture()
def quadrant_image():
    """Four 32x32 quadrants at brightness {0, 0, 0, 255}."""
    arr = np.zeros((64, 64, 3), dtype=np.uint8)
    arr[32:, 32:] = 255
    return make_image(arr)


@pytest.fixture()
def png_bytes(gradient_array):
    return encode(gradient_array, "PNG")


@pytest.fixture()
def jpeg_bytes(gradient_array):
    return encode(gradient_array, "JPEG", quality=90)


@pytest.fixture()
def engine():
    """Fresh sequential engine."""
    return Authentica()
