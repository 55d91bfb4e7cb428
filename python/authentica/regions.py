"""
Luminance field and grid-region statistics.

Every visual analyzer works on the same luma field and on a rows x cols
partition of it.  Kernels never read outside the buffer: the cheap edge
kernel is evaluated on ``[1, dim-2]`` inside each region and the
8-neighbour Laplacian on the image interior.
"""
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .types import RasterImage, Region

LUMA_WEIGHTS = (0.299, 0.587, 0.114)

_LAPLACIAN_8 = np.array([
    [-1, -1, -1],
    [-1, 8, -1],
    [-1, -1, -1],
], dtype=np.float64)


def luma_field(pixels: np.ndarray) -> np.ndarray:
    """Convert an ``(h, w, c)`` uint8 array into float64 luminance.

    Alpha and any channel past the third are ignored.  One- and
    two-channel rasters are already grey.
    """
    if pixels.ndim == 2:
        return pixels.astype(np.float64)
    if pixels.shape[2] < 3:
        return pixels[:, :, 0].astype(np.float64)
    r = pixels[:, :, 0].astype(np.float64)
    g = pixels[:, :, 1].astype(np.float64)
    b = pixels[:, :, 2].astype(np.float64)
    return LUMA_WEIGHTS[0] * r + LUMA_WEIGHTS[1] * g + LUMA_WEIGHTS[2] * b


def grid_bounds(size: int, bands: int) -> List[Tuple[int, int]]:
    """Split ``[0, size)`` into ``bands`` bands; the last absorbs the remainder.

    If ``size < bands`` the band count is clamped to ``size`` so that no
    band is empty.
    """
    bands = max(1, min(bands, size))
    step = size // bands
    bounds = []
    for i in range(bands):
        start = i * step
        end = size if i == bands - 1 else (i + 1) * step
        bounds.append((start, end))
    return bounds


def edge_energy_map(luma: np.ndarray) -> np.ndarray:
    """Right + down absolute differences, shape ``(h-1, w-1)``."""
    centre = luma[:-1, :-1]
    right = luma[:-1, 1:]
    down = luma[1:, :-1]
    return np.abs(centre - right) + np.abs(centre - down)


def laplacian_magnitude(luma: np.ndarray) -> np.ndarray:
    """8-neighbour Laplacian magnitude over the image interior.

    Returns an empty array when the image has no interior pixels.
    """
    h, w = luma.shape
    if h < 3 or w < 3:
        return np.empty((0, 0), dtype=np.float64)
    filtered = cv2.filter2D(luma.astype(np.float64), cv2.CV_64F, _LAPLACIAN_8)
    return np.abs(filtered[1:h - 1, 1:w - 1])


def region_interior(edges: np.ndarray, shape: Tuple[int, int],
                    x0: int, y0: int, x1: int, y1: int) -> np.ndarray:
    """Edge-energy values for the interior pixels of one region."""
    h, w = shape
    ys, ye = y0 + 1, min(y1 - 1, h - 1)
    xs, xe = x0 + 1, min(x1 - 1, w - 1)
    if ye <= ys or xe <= xs:
        return np.empty(0, dtype=np.float64)
    return edges[ys:ye, xs:xe].ravel()


def extract_regions(
    image: RasterImage,
    rows: int,
    cols: int,
    edge_threshold: Optional[float] = None,
    with_sharpness: bool = False,
) -> List[Region]:
    """Partition the image into a rows x cols grid and aggregate each cell.

    Args:
        image: Raster to partition.
        rows: Number of row bands.
        cols: Number of column bands.
        edge_threshold: When given, each region gets ``edge_density``:
            the fraction of interior pixels whose edge energy exceeds it.
        with_sharpness: When true, each region gets ``sharpness``: the
            mean interior edge energy.

    Returns:
        Regions in row-major order.
    """
    luma = image.luma
    h, w = luma.shape
    edges = None
    if edge_threshold is not None or with_sharpness:
        edges = edge_energy_map(luma)

    regions = []
    for gy, (y0, y1) in enumerate(grid_bounds(h, rows)):
        for gx, (x0, x1) in enumerate(grid_bounds(w, cols)):
            cell = luma[y0:y1, x0:x1]
            mean = float(cell.mean())
            variance = float(cell.var())

            edge_density = None
            sharpness = None
            if edges is not None:
                interior = region_interior(edges, (h, w), x0, y0, x1, y1)
                if edge_threshold is not None:
                    edge_density = (
                        float(np.count_nonzero(interior > edge_threshold)) / interior.size
                        if interior.size else 0.0
                    )
                if with_sharpness:
                    sharpness = float(interior.mean()) if interior.size else 0.0

            regions.append(Region(
                gx=gx, gy=gy, x0=x0, y0=y0, x1=x1, y1=y1,
                mean_brightness=mean,
                brightness_variance=variance,
                edge_density=edge_density,
                noise_variance=variance,
                sharpness=sharpness,
            ))
    return regions


def effective_grid(image: RasterImage, rows: int, cols: int) -> Tuple[int, int]:
    """Grid size actually used for an image after clamping."""
    return len(grid_bounds(image.height, rows)), len(grid_bounds(image.width, cols))
