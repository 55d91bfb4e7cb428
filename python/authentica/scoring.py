"""
Credibility and suspicion fusion.

Two policies combine the same signal scores:

* **Additive**: fixed suspicion points per triggered check, clipped to
  0-100.  Only the region-based physics checks take part.
* **Weighted**: every weighted signal is mapped to a credibility
  component in ``[0, 1]`` (inverted for suspicion-direction signals) and
  combined with normalized weights.

Both are pure functions of their inputs.  A missing or failed signal
never raises here: it is recorded as not analyzed with a neutral
component of 0.5.
"""
import logging
from typing import Dict, List, Mapping, Optional

import numpy as np

from .config import (
    ADDITIVE_POINTS,
    ARTIFACT_TRIGGER_ABOVE,
    COHERENCE_TRIGGER_BELOW,
    DEFAULT_WEIGHTS,
    MANIPULATED_AT,
    NEUTRAL_COMPONENT,
    SUSPICIOUS_AT,
    WeightConfig,
)
from .registry import SIGNALS
from .types import (
    BreakdownEntry,
    CredibilityAssessment,
    FusionPolicy,
    SignalScore,
    Verdict,
)

logger = logging.getLogger(__name__)


def verdict_for(suspicion: float) -> Verdict:
    """Map a 0-100 suspicion score onto a verdict."""
    if suspicion < SUSPICIOUS_AT:
        return Verdict.AUTHENTIC
    if suspicion < MANIPULATED_AT:
        return Verdict.SUSPICIOUS
    return Verdict.LIKELY_MANIPULATED


def explain(verdict: Verdict, suspicion: float) -> str:
    if verdict is Verdict.AUTHENTIC:
        return ('Forensic analysis shows consistent lighting, noise and photographic '
                'properties. No significant manipulation indicators detected.')
    if verdict is Verdict.SUSPICIOUS:
        return (f"Moderate inconsistencies detected (score: {suspicion:.0f}). "
                f"Manual inspection recommended to verify authenticity.")
    return (f"Multiple manipulation indicators detected (score: {suspicion:.0f}). "
            f"Image likely contains edited or composite elements.")


def _usable(signal: Optional[SignalScore]) -> bool:
    return signal is not None and not signal.is_neutral


def _not_analyzed(signal: Optional[SignalScore], weight: float) -> BreakdownEntry:
    return BreakdownEntry(
        raw_value=None,
        component=NEUTRAL_COMPONENT,
        weight=weight,
        contribution=0.0,
        analyzed=False,
        note=signal.error if signal is not None else 'Not analyzed',
    )


def _additive_trigger(name: str, signal: SignalScore) -> bool:
    if name == 'structural_coherence':
        return signal.normalized_score < COHERENCE_TRIGGER_BELOW
    if name == 'artifacts':
        return signal.normalized_score > ARTIFACT_TRIGGER_ABOVE
    return not signal.consistent


def additive_suspicion(signals: Mapping[str, SignalScore]) -> CredibilityAssessment:
    """Fixed-point suspicion accumulation over the physics checks."""
    suspicion = 0.0
    findings: List[str] = []
    breakdown: Dict[str, BreakdownEntry] = {}

    for name, points in ADDITIVE_POINTS.items():
        signal = signals.get(name)
        if not _usable(signal):
            weight = float(points) if points is not None else 100.0
            breakdown[name] = _not_analyzed(signal, weight)
            if signal is not None:
                findings.extend(signal.findings)
            continue

        triggered = _additive_trigger(name, signal)
        if points is None:
            # Artifacts contribute their own score
            weight = 100.0
            component = signal.normalized_score / 100.0
            contribution = signal.normalized_score if triggered else 0.0
        else:
            weight = float(points)
            component = 1.0 if triggered else 0.0
            contribution = weight * component

        suspicion += contribution
        if triggered:
            findings.extend(signal.findings)

        breakdown[name] = BreakdownEntry(
            raw_value=float(signal.raw_value),
            component=component,
            weight=weight,
            contribution=contribution,
        )

    suspicion = float(np.clip(suspicion, 0.0, 100.0))
    verdict = verdict_for(suspicion)

    return CredibilityAssessment(
        final_score=100.0 - suspicion,
        verdict=verdict,
        suspicion_score=suspicion,
        confidence=100.0 - suspicion,
        findings=findings or ['All visual forensics checks passed'],
        breakdown=breakdown,
        policy=FusionPolicy.ADDITIVE,
        signals=signals,
        explanation=explain(verdict, suspicion),
    )


def credibility_component(signal: SignalScore) -> float:
    """Signal score in the credibility direction, in ``[0, 1]``."""
    unit = float(np.clip(signal.unit_score, 0.0, 1.0))
    spec = SIGNALS[signal.name]
    return 1.0 - unit if spec.inverted else unit


def weighted_credibility(
    signals: Mapping[str, SignalScore],
    weights: Optional[WeightConfig] = None,
) -> CredibilityAssessment:
    """Normalized weighted credibility over the configured signals."""
    normalized = (weights or DEFAULT_WEIGHTS).normalized()

    credibility = 0.0
    covered = 0.0
    findings: List[str] = []
    breakdown: Dict[str, BreakdownEntry] = {}

    for name, weight in normalized.items():
        signal = signals.get(name)
        if _usable(signal):
            component = credibility_component(signal)
            breakdown[name] = BreakdownEntry(
                raw_value=float(signal.raw_value),
                component=component,
                weight=weight,
                contribution=component * weight,
            )
            covered += weight
            if not signal.consistent and weight > 0:
                findings.extend(signal.findings)
        else:
            entry = _not_analyzed(signal, weight)
            breakdown[name] = BreakdownEntry(
                raw_value=None,
                component=entry.component,
                weight=weight,
                contribution=entry.component * weight,
                analyzed=False,
                note=entry.note,
            )
        credibility += breakdown[name].contribution

    credibility = float(np.clip(credibility, 0.0, 1.0))
    suspicion = 100.0 * (1.0 - credibility)
    verdict = verdict_for(suspicion)

    return CredibilityAssessment(
        final_score=100.0 * credibility,
        verdict=verdict,
        suspicion_score=suspicion,
        confidence=float(np.clip(100.0 * covered, 0.0, 100.0)),
        findings=findings or ['No weighted signal flagged manipulation'],
        breakdown=breakdown,
        policy=FusionPolicy.WEIGHTED,
        signals=signals,
        explanation=explain(verdict, suspicion),
    )


def fuse(
    signals: Mapping[str, SignalScore],
    policy: FusionPolicy = FusionPolicy.ADDITIVE,
    weights: Optional[WeightConfig] = None,
) -> CredibilityAssessment:
    """Combine signal scores with the selected policy."""
    logger.debug(f"Fusing {len(signals)} signals with {FusionPolicy(policy).value} policy")
    if FusionPolicy(policy) is FusionPolicy.WEIGHTED:
        return weighted_credibility(signals, weights)
    return additive_suspicion(signals)
