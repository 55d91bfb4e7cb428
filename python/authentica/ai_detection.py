"""Heuristic AI-generation likelihood.

No trained model: three image statistics nudge a neutral 0.5 prior.
Synthetic images tend to be smoother than camera output, so low global
variance, low Laplacian texture and weak gradients all push the score up.
"""
import logging

import numpy as np

from .regions import laplacian_magnitude
from .types import RasterImage, SignalScore

logger = logging.getLogger(__name__)

MODEL_NAME = 'heuristic_v1'


def _gradient_mean(luma: np.ndarray) -> float:
    """Mean central-difference gradient magnitude over the interior."""
    if luma.shape[0] < 3 or luma.shape[1] < 3:
        return 0.0
    gx = np.abs(luma[1:-1, 2:] - luma[1:-1, :-2])
    gy = np.abs(luma[2:, 1:-1] - luma[:-2, 1:-1])
    return float(np.sqrt(gx ** 2 + gy ** 2).mean())


def analyze_ai_likelihood(
    image: RasterImage,
    low_variance: float = 1000.0,
    high_variance: float = 5000.0,
    low_texture: float = 20.0,
    low_gradient: float = 30.0,
    flag_at: float = 0.7,
) -> SignalScore:
    """Score the likelihood that the image was generated rather than captured."""
    luma = image.luma

    variance = float(luma.var())
    lap = laplacian_magnitude(luma)
    texture = float(lap.mean()) if lap.size else 0.0
    gradient = _gradient_mean(luma)

    score = 0.5
    if variance < low_variance:
        score += 0.15
    elif variance > high_variance:
        score -= 0.15
    if texture < low_texture:
        score += 0.1
    if gradient < low_gradient:
        score += 0.1
    score = float(np.clip(score, 0.0, 1.0))

    flagged = score >= flag_at
    findings = []
    if flagged:
        findings.append('Smooth, low-texture statistics typical of generated images')

    return SignalScore(
        name='ai_detection',
        raw_value=score,
        normalized_score=score,
        consistent=not flagged,
        findings=findings,
        details={
            'variance': variance,
            'texture_uniformity': texture,
            'gradient_mean': gradient,
            'confidence': min(score * 1.2, 1.0),
            'model': MODEL_NAME,
        },
    )
