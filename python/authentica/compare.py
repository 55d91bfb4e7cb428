"""
Perceptual comparison between two artifacts.

Used for historical-match verification: a candidate is compared with a
reference and the result says how similar they are, whether the
candidate looks like a variant of the reference and how much of it has
been altered.
"""
import logging
from typing import Callable, Dict, Union

import cv2
import numpy as np

from .codec import decode_image
from .exceptions import UnsupportedContentType
from .types import ComparisonResult, ContentType, RasterImage

logger = logging.getLogger(__name__)

ImageLike = Union[RasterImage, bytes]
TextLike = Union[str, bytes]


def _to_gray(image: RasterImage) -> np.ndarray:
    return np.clip(np.rint(image.luma), 0, 255).astype(np.uint8)


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings, one numpy row at a time."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    target = np.array([ord(c) for c in b], dtype=np.int64)
    idx = np.arange(len(b) + 1)
    prev = idx.copy()
    for i, ch in enumerate(a, start=1):
        cost = (target != ord(ch)).astype(np.int64)
        row = np.empty_like(prev)
        row[0] = i
        row[1:] = np.minimum(prev[1:] + 1, prev[:-1] + cost)
        # Insertions propagate left to right: row[j] = min_k (row[k] + j - k)
        prev = np.minimum.accumulate(row - idx) + idx
    return int(prev[-1])


def sequence_similarity(a: str, b: str) -> float:
    """``1 - distance / len(longer)``; two empty strings are identical."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longer


class PerceptualComparator:
    """Compare images or texts for similarity, variants and alterations."""

    ALTERATION_THRESHOLD = 30

    def compare(self, first, second, content_type: ContentType) -> ComparisonResult:
        """Compare two artifacts of the same content type.

        An unsupported content type yields a zero score with an
        explanation instead of an exception.
        """
        try:
            comparator = self._comparator_for(content_type)
        except UnsupportedContentType as e:
            logger.warning(f"Comparison skipped: {e}")
            return ComparisonResult(
                score=0.0, variant_score=0.0, alteration_score=0.0,
                error=str(e),
            )
        return comparator(first, second)

    def _comparator_for(self, content_type: ContentType) -> Callable[..., ComparisonResult]:
        table: Dict[ContentType, Callable[..., ComparisonResult]] = {
            ContentType.IMAGE: self.compare_images,
            ContentType.TEXT: self.compare_texts,
        }
        try:
            return table[ContentType(content_type)]
        except (KeyError, ValueError):
            raise UnsupportedContentType(f"No comparator for content type {content_type!r}")

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------
    def compare_images(self, first: ImageLike, second: ImageLike) -> ComparisonResult:
        """Grayscale comparison at the smaller common size (never upsampled)."""
        img1 = first if isinstance(first, RasterImage) else decode_image(first)
        img2 = second if isinstance(second, RasterImage) else decode_image(second)

        width = min(img1.width, img2.width)
        height = min(img1.height, img2.height)
        gray1 = self._resized_gray(img1, width, height)
        gray2 = self._resized_gray(img2, width, height)

        diff = np.abs(gray1.astype(np.int16) - gray2.astype(np.int16)).astype(np.float64)

        ssim_score = float(np.mean(1.0 - diff / 255.0))
        similarity_score = 1.0 - float(diff.sum()) / (width * height * 255.0)
        combined = ssim_score * 0.7 + similarity_score * 0.3

        diff_variance = float(diff.var())
        altered_ratio = float(np.count_nonzero(diff > self.ALTERATION_THRESHOLD)) / diff.size

        return ComparisonResult(
            score=combined,
            variant_score=self._variant_bucket(diff_variance),
            alteration_score=self._alteration_bucket(altered_ratio),
            details={
                'ssim_score': ssim_score,
                'similarity_score': similarity_score,
                'difference_variance': diff_variance,
                'altered_pixel_ratio': altered_ratio,
                'compared_size': (width, height),
            },
        )

    @staticmethod
    def _resized_gray(image: RasterImage, width: int, height: int) -> np.ndarray:
        gray = _to_gray(image)
        if gray.shape != (height, width):
            gray = cv2.resize(gray, (width, height), interpolation=cv2.INTER_AREA)
        return gray

    @staticmethod
    def _variant_bucket(variance: float) -> float:
        if variance < 100:
            return 0.1
        if variance < 500:
            return 0.5
        return 0.9

    @staticmethod
    def _alteration_bucket(ratio: float) -> float:
        if ratio > 0.1:
            return 0.9
        if ratio > 0.05:
            return 0.6
        if ratio > 0.01:
            return 0.3
        return 0.1

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------
    def compare_texts(self, first: TextLike, second: TextLike) -> ComparisonResult:
        """Edit-distance similarity plus word-level variant detection."""
        text1 = first.decode('utf-8', errors='replace') if isinstance(first, bytes) else first
        text2 = second.decode('utf-8', errors='replace') if isinstance(second, bytes) else second

        similarity = sequence_similarity(text1, text2)

        words1, words2 = text1.split(), text2.split()
        longest = max(len(words1), len(words2))
        if longest:
            disagreements = sum(
                1 for i in range(longest)
                if i >= len(words1) or i >= len(words2) or words1[i] != words2[i]
            )
            disagreement_rate = disagreements / longest
        else:
            disagreement_rate = 0.0

        if similarity < 0.5:
            alteration = 0.9
        elif similarity < 0.7:
            alteration = 0.6
        elif similarity < 0.9:
            alteration = 0.3
        else:
            alteration = 0.1

        return ComparisonResult(
            score=similarity,
            variant_score=min(1.0, disagreement_rate * 2),
            alteration_score=alteration,
            details={
                'word_disagreement_rate': disagreement_rate,
                'word_count': (len(words1), len(words2)),
            },
        )
