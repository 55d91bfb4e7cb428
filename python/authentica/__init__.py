"""
Authentica - Python Implementation

Image forensic feature extraction and credibility fusion.
"""

from .verify import Authentica, analyze_image, compare
from .types import (
    AnalysisOptions,
    ArchiveRecord,
    BatchReport,
    BreakdownEntry,
    ComparisonResult,
    ContentType,
    CredibilityAssessment,
    FrameOutcome,
    FusionPolicy,
    RasterImage,
    Region,
    SignalScore,
    Verdict,
)
from .config import DEFAULT_WEIGHTS, WeightConfig
from .exceptions import (
    AuthenticaError,
    CodecFailure,
    ConfigurationError,
    MalformedImage,
    UnsupportedContentType,
)
from .codec import decode_image
from .compare import PerceptualComparator
from .historical import HistoricalVerifier
from .scoring import fuse

__version__ = "0.1.0"
__all__ = [
    "Authentica",
    "analyze_image",
    "compare",
    "AnalysisOptions",
    "ArchiveRecord",
    "BatchReport",
    "BreakdownEntry",
    "ComparisonResult",
    "ContentType",
    "CredibilityAssessment",
    "FrameOutcome",
    "FusionPolicy",
    "RasterImage",
    "Region",
    "SignalScore",
    "Verdict",
    "DEFAULT_WEIGHTS",
    "WeightConfig",
    "AuthenticaError",
    "CodecFailure",
    "ConfigurationError",
    "MalformedImage",
    "UnsupportedContentType",
    "decode_image",
    "PerceptualComparator",
    "HistoricalVerifier",
    "fuse",
]
