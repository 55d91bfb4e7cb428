"""
Region-based physical consistency analyzers.

Five independent checks over the luma field of a decoded raster:

  1. Lighting consistency  : brightness spread across a 4x4 grid
  2. Structural coherence  : edge-density uniformity over a 3x3 grid, aspect ratio
  3. Noise pattern         : uniformity of per-region pixel variance over a 5x5 grid
  4. Compression artifacts : JPEG block-boundary steps and chromatic outliers
  5. Focus / sharpness     : uniformity of mean edge energy over a 4x4 grid

Each analyzer is a pure function ``(RasterImage, **params) -> SignalScore``.
Ratio-style analyzers normalize as ``clip(ratio / threshold / 2, 0, 1)``
so that the flagging threshold sits at 0.5.
"""
import logging

import numpy as np

from .codec import is_block_coded
from .regions import effective_grid, extract_regions
from .types import RasterImage, SignalScore

logger = logging.getLogger(__name__)


def _threshold_score(ratio_to_threshold: float) -> float:
    return float(np.clip(ratio_to_threshold / 2.0, 0.0, 1.0))


def _bucket(score: float, pass_above: float, fail_below: float) -> str:
    if score > pass_above:
        return 'PASS'
    if score >= fail_below:
        return 'SUSPICIOUS'
    return 'FAIL'


def analyze_lighting(
    image: RasterImage,
    grid: int = 4,
    range_threshold: float = 180.0,
    variance_threshold: float = 3500.0,
) -> SignalScore:
    """Lighting coherence from per-region mean brightness.

    The image is flagged only when both the brightness range and the
    population variance of region means exceed their thresholds.
    Extreme differences on both counts point at a composite or at
    several light sources.
    """
    regions = extract_regions(image, grid, grid)
    brightness = np.array([r.mean_brightness for r in regions])

    overall = float(brightness.mean())
    brightness_range = float(brightness.max() - brightness.min())
    variance = float(np.mean((brightness - overall) ** 2))

    inconsistent = brightness_range > range_threshold and variance > variance_threshold
    ratio = min(brightness_range / range_threshold, variance / variance_threshold)

    findings = []
    if inconsistent:
        findings.append('Significant lighting inconsistencies detected across regions')

    return SignalScore(
        name='lighting',
        raw_value=variance,
        normalized_score=_threshold_score(ratio),
        consistent=not inconsistent,
        findings=findings,
        details={
            'brightness_range': brightness_range,
            'brightness_variance': variance,
            'average_brightness': overall,
            'region_brightness': [float(b) for b in brightness],
            'grid': effective_grid(image, grid, grid),
            'assessment': 'SUSPICIOUS' if inconsistent else 'PASS',
        },
    )


def analyze_structural_coherence(
    image: RasterImage,
    grid: int = 3,
    edge_threshold: float = 30.0,
    variance_threshold: float = 0.004,
    min_aspect: float = 0.2,
    max_aspect: float = 5.0,
    uneven_penalty: float = 25.0,
    aspect_penalty: float = 15.0,
) -> SignalScore:
    """Edge-density uniformity and geometric plausibility.

    Starts from a coherence score of 100 and deducts for uneven edge
    density between regions and for an implausible aspect ratio.
    Higher scores are more credible.
    """
    regions = extract_regions(image, grid, grid, edge_threshold=edge_threshold)
    densities = np.array([r.edge_density for r in regions])
    density_variance = float(np.mean((densities - densities.mean()) ** 2))
    aspect_ratio = image.width / image.height

    score = 100.0
    findings = []
    if density_variance > variance_threshold:
        findings.append('Uneven edge density distribution - possible scale inconsistencies')
        score -= uneven_penalty
    if aspect_ratio < min_aspect or aspect_ratio > max_aspect:
        findings.append('Unusual aspect ratio - may indicate cropping or stretching')
        score -= aspect_penalty

    score = float(np.clip(score, 0.0, 100.0))

    return SignalScore(
        name='structural_coherence',
        raw_value=density_variance,
        normalized_score=score,
        consistent=score > 70,
        scale=100.0,
        findings=findings,
        details={
            'edge_density_variance': density_variance,
            'edge_densities': [float(d) for d in densities],
            'aspect_ratio': float(aspect_ratio),
            'grid': effective_grid(image, grid, grid),
            'assessment': _bucket(score, 70, 40),
        },
    )


def analyze_noise_pattern(
    image: RasterImage,
    grid: int = 5,
    ratio_threshold: float = 0.8,
) -> SignalScore:
    """Noise uniformity from raw per-region luma variance.

    Regions spliced in from another source usually carry a different
    grain level, which shows up as a large spread of region variances
    relative to their mean.
    """
    regions = extract_regions(image, grid, grid)
    variances = np.array([r.noise_variance for r in regions])

    average = float(variances.mean())
    deviation = float(np.sqrt(np.mean((variances - average) ** 2)))
    ratio = deviation / (average + 1.0)
    inconsistent = ratio > ratio_threshold

    findings = []
    if inconsistent:
        findings.append('Irregular noise distribution - regions may be from different sources')

    return SignalScore(
        name='noise_pattern',
        raw_value=ratio,
        normalized_score=_threshold_score(ratio / ratio_threshold),
        consistent=not inconsistent,
        findings=findings,
        details={
            'average_noise': average,
            'noise_deviation': deviation,
            'inconsistency_ratio': ratio,
            'grid': effective_grid(image, grid, grid),
            'assessment': 'SUSPICIOUS' if inconsistent else 'PASS',
        },
    )


def analyze_artifacts(
    image: RasterImage,
    block_stride: int = 8,
    boundary_threshold: float = 20.0,
    high_rate: float = 8.0,
    moderate_rate: float = 4.0,
    high_points: float = 30.0,
    moderate_points: float = 10.0,
    sample_stride: int = 10,
    aberration_threshold: int = 120,
    aberration_rate_threshold: float = 0.15,
    aberration_points: float = 20.0,
) -> SignalScore:
    """Block-boundary discontinuities and chromatic aberration.

    The block scan compares each row at a multiple of ``block_stride``
    with the row above it and only runs for JPEG-family sources.  The
    anomaly rate is the percentage of compared pixels whose luma step
    exceeds ``boundary_threshold``.

    The chromatic scan samples every ``sample_stride``-th pixel in both
    directions and flags strong channel disagreement.
    """
    luma = image.luma
    h, w = luma.shape
    score = 0.0
    findings = []

    block_checked = is_block_coded(image.source_format)
    if not block_checked:
        logger.debug(f"Skipping block-boundary scan for source format {image.source_format!r}")
    anomaly_rate = 0.0
    boundary_anomalies = 0
    if block_checked and w > 1:
        rows = np.arange(block_stride, h, block_stride)
        if rows.size:
            steps = np.abs(luma[rows, :w - 1] - luma[rows - 1, :w - 1])
            boundary_anomalies = int(np.count_nonzero(steps > boundary_threshold))
            anomaly_rate = 100.0 * boundary_anomalies / steps.size

        if anomaly_rate > high_rate:
            findings.append('Significant JPEG compression artifacts detected')
            score += high_points
        elif anomaly_rate > moderate_rate:
            findings.append('Moderate compression artifacts present')
            score += moderate_points

    aberration_rate = 0.0
    if image.channels >= 3:
        sampled = image.array()[0:h:sample_stride, 0:w - 1:sample_stride, :3].astype(np.int16)
        if sampled.size:
            r, g, b = sampled[..., 0], sampled[..., 1], sampled[..., 2]
            spread = np.maximum(np.maximum(np.abs(r - g), np.abs(g - b)), np.abs(r - b))
            aberration_rate = float(np.count_nonzero(spread > aberration_threshold)) / spread.size

    chromatic = aberration_rate > aberration_rate_threshold
    if chromatic:
        findings.append('Chromatic aberration patterns detected')
        score += aberration_points

    score = float(np.clip(score, 0.0, 100.0))
    if score < 25:
        assessment = 'PASS'
    elif score < 50:
        assessment = 'SUSPICIOUS'
    else:
        assessment = 'FAIL'

    return SignalScore(
        name='artifacts',
        raw_value=score,
        normalized_score=score,
        consistent=score < 25,
        scale=100.0,
        findings=findings,
        details={
            'block_scan': block_checked,
            'boundary_anomalies': boundary_anomalies,
            'anomaly_rate_percent': float(anomaly_rate),
            'aberration_rate': aberration_rate,
            'chromatic_aberration': chromatic,
            'source_format': image.source_format,
            'assessment': assessment,
        },
    )


def analyze_sharpness(
    image: RasterImage,
    grid: int = 4,
    ratio_threshold: float = 0.6,
    blur_below: float = 3.0,
    oversharpened_above: float = 40.0,
) -> SignalScore:
    """Focus consistency from per-region mean edge energy.

    Blur and over-sharpening notes describe the image but do not affect
    the score.
    """
    regions = extract_regions(image, grid, grid, with_sharpness=True)
    sharpness = np.array([r.sharpness for r in regions])

    average = float(sharpness.mean())
    variance = float(np.mean((sharpness - average) ** 2))
    ratio = float(np.sqrt(variance)) / (average + 1.0)
    inconsistent = ratio > ratio_threshold

    findings = []
    if inconsistent:
        findings.append('Inconsistent sharpness/focus - possible composite from multiple images')
    if average < blur_below:
        findings.append('Image appears heavily blurred or low quality')
    elif average > oversharpened_above:
        findings.append('High sharpness detected - possibly over-sharpened')

    return SignalScore(
        name='sharpness',
        raw_value=ratio,
        normalized_score=_threshold_score(ratio / ratio_threshold),
        consistent=not inconsistent,
        findings=findings,
        details={
            'average_sharpness': average,
            'sharpness_variance': variance,
            'inconsistency_ratio': ratio,
            'grid': effective_grid(image, grid, grid),
            'assessment': 'SUSPICIOUS' if inconsistent else 'PASS',
        },
    )
