"""Type definitions for Authentica."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .config import WeightConfig
from .exceptions import MalformedImage


class ContentType(Enum):
    """Types of artifact that can be compared."""
    IMAGE = "image"
    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"


class Verdict(Enum):
    """Outcome of one analysis request."""
    AUTHENTIC = "AUTHENTIC"
    SUSPICIOUS = "SUSPICIOUS"
    LIKELY_MANIPULATED = "LIKELY_MANIPULATED"


class FusionPolicy(Enum):
    """How signal scores are combined into a verdict."""
    ADDITIVE = "additive"
    WEIGHTED = "weighted"


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded, row-major, channel-interleaved 8-bit raster.

    The pixel buffer is never modified after construction.  ``luma`` is
    derived from it on first access and cached.
    """
    width: int
    height: int
    channels: int
    pixels: bytes
    source_format: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.width, int) or not isinstance(self.height, int):
            raise MalformedImage("Image dimensions must be integers")
        if self.width <= 0 or self.height <= 0:
            raise MalformedImage(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.channels not in (1, 2, 3, 4):
            raise MalformedImage(f"Unsupported channel count: {self.channels}")
        if not isinstance(self.pixels, bytes):
            object.__setattr__(self, "pixels", bytes(self.pixels))
        expected = self.width * self.height * self.channels
        if len(self.pixels) < expected:
            raise MalformedImage(
                f"Pixel buffer holds {len(self.pixels)} bytes, "
                f"expected at least {expected}"
            )

    @classmethod
    def from_array(cls, array: np.ndarray, source_format: Optional[str] = None) -> "RasterImage":
        """Build a raster from an ``(h, w)`` or ``(h, w, c)`` uint8 array."""
        arr = np.asarray(array)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        if arr.ndim != 3:
            raise MalformedImage(f"Expected a 2D or 3D array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        h, w, c = arr.shape
        return cls(
            width=int(w),
            height=int(h),
            channels=int(c),
            pixels=np.ascontiguousarray(arr).tobytes(),
            source_format=source_format,
        )

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def array(self) -> np.ndarray:
        """Read-only ``(height, width, channels)`` uint8 view of the pixels."""
        n = self.width * self.height * self.channels
        flat = np.frombuffer(self.pixels, dtype=np.uint8, count=n)
        return flat.reshape(self.height, self.width, self.channels)

    @cached_property
    def luma(self) -> np.ndarray:
        """Read-only ``(height, width)`` float64 luminance field."""
        from .regions import luma_field
        field_ = luma_field(self.array())
        field_.setflags(write=False)
        return field_


@dataclass(frozen=True)
class Region:
    """One cell of an R x C partition, holding only aggregates."""
    gx: int
    gy: int
    x0: int
    y0: int
    x1: int
    y1: int
    mean_brightness: float
    brightness_variance: float
    edge_density: Optional[float] = None
    noise_variance: Optional[float] = None
    sharpness: Optional[float] = None

    @property
    def pixel_count(self) -> int:
        return (self.x1 - self.x0) * (self.y1 - self.y0)


@dataclass(frozen=True)
class SignalScore:
    """One analyzer's assessment of one image.

    ``normalized_score`` lies in ``[0, scale]``.  Whether higher means
    more suspicious or more credible is a property of the signal and is
    recorded in the registry.
    """
    name: str
    raw_value: float
    normalized_score: float
    consistent: bool
    scale: float = 1.0
    findings: Tuple[str, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "findings", tuple(self.findings))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def unit_score(self) -> float:
        """``normalized_score`` rescaled to ``[0, 1]``."""
        return self.normalized_score / self.scale

    @property
    def is_neutral(self) -> bool:
        return self.error is not None

    @classmethod
    def neutral(cls, name: str, error: str, scale: float = 1.0) -> "SignalScore":
        """Substitute used when an analyzer could not produce a result."""
        return cls(
            name=name,
            raw_value=0.0,
            normalized_score=scale / 2,
            consistent=True,
            scale=scale,
            findings=(f"{name} not analyzed: {error}",),
            details={},
            error=error,
        )


@dataclass(frozen=True)
class BreakdownEntry:
    """Explainability record for one signal inside a fused assessment."""
    raw_value: Optional[float]
    component: float
    weight: float
    contribution: float
    analyzed: bool = True
    note: Optional[str] = None


@dataclass(frozen=True)
class CredibilityAssessment:
    """Terminal result of one analysis request."""
    final_score: float
    verdict: Verdict
    suspicion_score: float
    confidence: float
    findings: Tuple[str, ...]
    breakdown: Mapping[str, BreakdownEntry]
    policy: FusionPolicy
    signals: Mapping[str, SignalScore] = field(default_factory=dict)
    explanation: str = ""

    def __post_init__(self):
        object.__setattr__(self, "findings", tuple(self.findings))
        object.__setattr__(self, "breakdown", MappingProxyType(dict(self.breakdown)))
        object.__setattr__(self, "signals", MappingProxyType(dict(self.signals)))


@dataclass(frozen=True)
class ComparisonResult:
    """Similarity between two artifacts."""
    score: float
    variant_score: float
    alteration_score: float
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass(frozen=True)
class ArchiveRecord:
    """A reference artifact supplied by the caller for historical matching."""
    entry_id: str
    content: Union[RasterImage, str]
    content_type: ContentType = ContentType.IMAGE
    historical_date: Optional[str] = None


@dataclass
class AnalysisOptions:
    """Options for one analysis request."""
    policy: FusionPolicy = FusionPolicy.ADDITIVE
    weights: Optional[WeightConfig] = None
    signals: Optional[Sequence[str]] = None
    params: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    references: Sequence[ArchiveRecord] = field(default_factory=tuple)
    claimed_date: Optional[str] = None
    modified_at: Optional[str] = None


@dataclass(frozen=True)
class FrameOutcome:
    """Result of one frame inside a batch run."""
    index: int
    assessment: Optional[CredibilityAssessment] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.assessment is not None


@dataclass(frozen=True)
class BatchReport:
    """Aggregate of a batch of independent frame analyses."""
    frames: Tuple[FrameOutcome, ...]
    mean_suspicion: float
    mean_final_score: float
    verdict: Optional[Verdict]
    findings: Tuple[str, ...] = ()

    @property
    def analyzed(self) -> int:
        return sum(1 for f in self.frames if f.ok)

    @property
    def failed(self) -> int:
        return sum(1 for f in self.frames if not f.ok)
