"""Residual and statistical anomaly analysis.

Three sub-scores, each bucketed to a fixed value and combined with
fixed weights:

  * noise    (0.4): variance of the 8-neighbour Laplacian magnitude
  * blocks   (0.4): variance of high-frequency luma mass per 8x8 block
  * entropy  (0.2): Shannon entropy of the 256-bin luma histogram
"""
import logging
from typing import Tuple

import numpy as np
import pywt
from scipy.stats import entropy as shannon_entropy

from .regions import laplacian_magnitude
from .types import RasterImage, SignalScore

logger = logging.getLogger(__name__)

SUBSCORE_WEIGHTS = {
    'noise': 0.4,
    'block_artifacts': 0.4,
    'entropy': 0.2,
}


def noise_subscore(luma: np.ndarray) -> Tuple[float, float]:
    """Return (bucketed score, Laplacian variance)."""
    lap = laplacian_magnitude(luma)
    variance = float(lap.var()) if lap.size else 0.0
    if variance > 500:
        return 0.7, variance
    if variance > 300:
        return 0.4, variance
    return 0.1, variance


def block_subscore(luma: np.ndarray, block: int = 8) -> Tuple[float, float, int]:
    """Return (bucketed score, variance of per-block sums, block count).

    Only complete blocks are used.  Within each block the high-frequency
    quadrant is every pixel with ``x >= block/2`` or ``y >= block/2``.
    """
    h, w = luma.shape
    by, bx = h // block, w // block
    if by == 0 or bx == 0:
        return 0.0, 0.0, 0

    blocks = np.abs(luma[:by * block, :bx * block]).reshape(by, block, bx, block)
    half = block // 2
    mask = np.zeros((block, block), dtype=bool)
    mask[half:, :] = True
    mask[:, half:] = True
    sums = (blocks * mask[np.newaxis, :, np.newaxis, :]).sum(axis=(1, 3)).ravel()

    variance = float(sums.var())
    if variance > 10000:
        return 0.8, variance, int(sums.size)
    if variance > 5000:
        return 0.5, variance, int(sums.size)
    return 0.2, variance, int(sums.size)


def entropy_subscore(luma: np.ndarray) -> Tuple[float, float]:
    """Return (bucketed score, histogram entropy in bits)."""
    values = np.clip(np.rint(luma), 0, 255).astype(np.int64).ravel()
    histogram = np.bincount(values, minlength=256).astype(np.float64)
    bits = float(shannon_entropy(histogram / histogram.sum(), base=2))
    if bits < 5.0 or bits > 8.5:
        return 0.6, bits
    if bits < 6.0 or bits > 8.0:
        return 0.3, bits
    return 0.1, bits


def wavelet_noise_sigma(luma: np.ndarray) -> float:
    """Robust noise estimate from the finest diagonal Haar band (MAD / 0.6745)."""
    if min(luma.shape) < 2:
        return 0.0
    _, (_, _, diagonal) = pywt.dwt2(luma, 'haar')
    return float(np.median(np.abs(diagonal)) / 0.6745)


def analyze_residuals(image: RasterImage) -> SignalScore:
    """Combine the three residual sub-scores into one manipulation score.

    The wavelet noise estimate is reported for reference and does not
    enter the score.
    """
    luma = image.luma

    noise, lap_variance = noise_subscore(luma)
    blocks, block_variance, block_count = block_subscore(luma)
    anomaly, bits = entropy_subscore(luma)

    score = min(1.0, (
        noise * SUBSCORE_WEIGHTS['noise']
        + blocks * SUBSCORE_WEIGHTS['block_artifacts']
        + anomaly * SUBSCORE_WEIGHTS['entropy']
    ))

    findings = []
    if noise >= 0.7:
        findings.append('High-pass residual noise is unusually strong')
    if blocks >= 0.8:
        findings.append('Block-level high-frequency energy varies strongly')
    if anomaly >= 0.6:
        findings.append('Luma histogram entropy is outside the natural range')

    return SignalScore(
        name='residual',
        raw_value=score,
        normalized_score=score,
        consistent=score < 0.5,
        findings=findings,
        details={
            'noise_pattern_score': noise,
            'laplacian_variance': lap_variance,
            'compression_artifacts': blocks,
            'block_energy_variance': block_variance,
            'block_count': block_count,
            'statistical_anomalies': anomaly,
            'entropy_bits': bits,
            'wavelet_noise_sigma': wavelet_noise_sigma(luma),
        },
    )
