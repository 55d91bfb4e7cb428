"""Main Authentica implementation.

Authentica extracts forensic signals from a decoded image and fuses them
into a credibility verdict.
"""
import concurrent.futures
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .codec import decode_image
from .compare import PerceptualComparator
from .config import DEFAULT_WEIGHTS, SIGNAL_NAMES, WeightConfig
from .exceptions import ConfigurationError, MalformedImage
from .historical import HistoricalVerifier
from .metadata import extract_metadata
from .registry import SignalSpec, get_signal, run_signal, validate_params
from .scoring import fuse, verdict_for
from .types import (
    AnalysisOptions,
    BatchReport,
    ComparisonResult,
    ContentType,
    CredibilityAssessment,
    FrameOutcome,
    FusionPolicy,
    RasterImage,
    SignalScore,
    Verdict,
)

logger = logging.getLogger(__name__)


class Authentica:
    """Main class for image credibility analysis."""

    def __init__(self, max_workers: int = 1, weights: WeightConfig = DEFAULT_WEIGHTS):
        """Initialize Authentica instance.

        Args:
            max_workers: Number of parallel threads for signal extraction
                and batch analysis
            weights: Default weights for the weighted fusion policy
        """
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self.weights = weights
        self.comparator = PerceptualComparator()
        self.historical = HistoricalVerifier(self.comparator)

    # ------------------------------------------------------------------
    # Single image
    # ------------------------------------------------------------------
    def analyze_image(
        self,
        image: RasterImage,
        options: Optional[AnalysisOptions] = None,
    ) -> CredibilityAssessment:
        """Analyze a decoded image.

        Args:
            image: Decoded raster to analyze
            options: Policy, weights, signal selection, parameter overrides
                and reference records

        Returns:
            CredibilityAssessment with verdict, scores and breakdown

        Raises:
            MalformedImage: ``image`` is not a valid raster
            ConfigurationError: ``options`` name unknown signals, parameters
                or weights
        """
        return self._assess(image, options, context={}, workers=self.max_workers)

    def analyze_bytes(
        self,
        data: bytes,
        options: Optional[AnalysisOptions] = None,
    ) -> CredibilityAssessment:
        """Decode encoded image bytes and analyze them, metadata included."""
        image = decode_image(data)
        context: Dict[str, Any] = {}
        try:
            context['metadata'] = extract_metadata(data)
        except MalformedImage as e:
            logger.warning(f"Metadata extraction failed: {e}")
        return self._assess(image, options, context=context, workers=self.max_workers)

    def _assess(
        self,
        image: RasterImage,
        options: Optional[AnalysisOptions],
        context: Dict[str, Any],
        workers: int,
    ) -> CredibilityAssessment:
        if not isinstance(image, RasterImage):
            raise MalformedImage(f"Expected a RasterImage, got {type(image).__name__}")
        if options is None:
            options = AnalysisOptions()

        policy, weights, specs = self._resolve(options)
        logger.debug(
            f"Analyzing {image.width}x{image.height} image "
            f"({len(specs)} signals, {policy.value} policy)"
        )

        if options.references and 'match' not in context:
            match = self._match_references(image, options)
            if match is not None and match.best is not None:
                context['match'] = match

        runnable = []
        for spec in specs:
            missing = [key for key in spec.requires if context.get(key) is None]
            if missing:
                logger.debug(f"Skipping '{spec.name}': no {', '.join(missing)}")
                continue
            runnable.append(spec)

        signals = self._extract(image, runnable, options, context, workers)
        assessment = fuse(signals, policy, weights)

        logger.debug(
            f"Verdict {assessment.verdict.value} "
            f"(suspicion {assessment.suspicion_score:.1f}, final {assessment.final_score:.1f})"
        )
        return assessment

    def _resolve(self, options: AnalysisOptions):
        """Validate request options before any analyzer runs."""
        try:
            policy = FusionPolicy(options.policy)
        except ValueError:
            raise ConfigurationError(f"Unknown fusion policy: {options.policy!r}")

        weights = options.weights if options.weights is not None else self.weights
        if not isinstance(weights, WeightConfig):
            weights = WeightConfig(weights)

        validate_params(options.params)
        names = options.signals if options.signals is not None else SIGNAL_NAMES
        specs = [get_signal(name) for name in dict.fromkeys(names)]
        return policy, weights, specs

    def _match_references(self, image: RasterImage, options: AnalysisOptions):
        try:
            return self.historical.verify(
                image,
                options.references,
                ContentType.IMAGE,
                claimed_date=options.claimed_date,
            )
        except Exception as e:
            logger.warning(f"Historical verification failed: {e}")
            return None

    def _extract(
        self,
        image: RasterImage,
        specs: Sequence[SignalSpec],
        options: AnalysisOptions,
        context: Mapping[str, Any],
        workers: int,
    ) -> Dict[str, SignalScore]:
        """Run the selected analyzers, in parallel or sequentially."""
        tasks = []
        for spec in specs:
            params = dict(options.params.get(spec.name, {}))
            if spec.name == 'metadata_consistency' and options.modified_at is not None:
                params.setdefault('modified_at', options.modified_at)
            tasks.append((spec, params))

        results: Dict[str, SignalScore] = {}
        if workers > 1 and len(tasks) > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    spec.name: executor.submit(run_signal, spec, image, params, context)
                    for spec, params in tasks
                }
                for name, future in futures.items():
                    results[name] = future.result()
        else:
            for spec, params in tasks:
                results[spec.name] = run_signal(spec, image, params, context)
        return results

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------
    def analyze_frames(
        self,
        frames: Sequence[RasterImage],
        options: Optional[AnalysisOptions] = None,
    ) -> BatchReport:
        """Analyze independent frames; one failing frame never aborts the rest.

        Frames run over a pool of ``max_workers`` threads.  Each frame's
        analyzers run sequentially inside its worker.
        """
        if options is None:
            options = AnalysisOptions()
        self._resolve(options)

        if self.max_workers > 1 and len(frames) > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._analyze_frame, index, frame, options)
                    for index, frame in enumerate(frames)
                ]
                outcomes = [future.result() for future in futures]
        else:
            outcomes = [
                self._analyze_frame(index, frame, options)
                for index, frame in enumerate(frames)
            ]

        return self._summarize(outcomes)

    def _analyze_frame(self, index: int, frame: RasterImage, options: AnalysisOptions) -> FrameOutcome:
        try:
            assessment = self._assess(frame, options, context={}, workers=1)
        except Exception as e:
            logger.warning(f"Frame {index} failed: {e}")
            return FrameOutcome(index=index, error=str(e))
        return FrameOutcome(index=index, assessment=assessment)

    @staticmethod
    def _summarize(outcomes: List[FrameOutcome]) -> BatchReport:
        analyzed = [o.assessment for o in outcomes if o.ok]
        findings = [f"Frame {o.index} failed: {o.error}" for o in outcomes if not o.ok]

        if not analyzed:
            return BatchReport(
                frames=tuple(outcomes),
                mean_suspicion=0.0,
                mean_final_score=0.0,
                verdict=None,
                findings=findings or ['No frames analyzed'],
            )

        mean_suspicion = float(np.mean([a.suspicion_score for a in analyzed]))
        mean_final = float(np.mean([a.final_score for a in analyzed]))

        for outcome in outcomes:
            if outcome.ok and outcome.assessment.verdict is not Verdict.AUTHENTIC:
                findings.append(f"Frame {outcome.index}: {outcome.assessment.verdict.value}")

        return BatchReport(
            frames=tuple(outcomes),
            mean_suspicion=mean_suspicion,
            mean_final_score=mean_final,
            verdict=verdict_for(mean_suspicion),
            findings=findings,
        )

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------
    def compare(self, first, second, content_type: ContentType = ContentType.IMAGE) -> ComparisonResult:
        """Compare two artifacts of the same content type."""
        return self.comparator.compare(first, second, content_type)


def analyze_image(
    image: RasterImage,
    options: Optional[AnalysisOptions] = None,
    max_workers: int = 1,
) -> CredibilityAssessment:
    """Analyze one image with a throwaway engine."""
    return Authentica(max_workers=max_workers).analyze_image(image, options)


def compare(first, second, content_type: ContentType = ContentType.IMAGE) -> ComparisonResult:
    """Compare two artifacts with the default comparator."""
    return PerceptualComparator().compare(first, second, content_type)
