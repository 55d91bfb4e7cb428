"""
Signal registry.

One canonical analyzer per signal name.  The engine looks analyzers up
here instead of calling them directly, so thresholds can be overridden
per request and failures are isolated in one place.
"""
import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from . import ai_detection, ela, historical, metadata, physics, residual
from .config import SIGNAL_NAMES
from .exceptions import ConfigurationError, MalformedImage
from .types import RasterImage, SignalScore

logger = logging.getLogger(__name__)

SUSPICION = 'suspicion'
CREDIBILITY = 'credibility'


@dataclass(frozen=True)
class SignalSpec:
    """How to produce and interpret one signal.

    ``direction`` says whether a higher normalized score means more
    suspicious or more credible.  ``requires`` names request context the
    analyzer needs beyond the pixels; the signal is skipped when that
    context is absent.
    """
    name: str
    analyzer: Callable[..., SignalScore]
    direction: str
    scale: float = 1.0
    requires: Tuple[str, ...] = ()

    @property
    def defaults(self) -> Mapping[str, Any]:
        """Tunable parameters and their default values."""
        params = inspect.signature(self.analyzer).parameters
        return MappingProxyType({
            key: p.default
            for key, p in params.items()
            if key != 'image' and key not in self.requires
            and p.default is not inspect.Parameter.empty
        })

    @property
    def inverted(self) -> bool:
        return self.direction == SUSPICION


_TABLE = (
    SignalSpec('lighting', physics.analyze_lighting, SUSPICION),
    SignalSpec('structural_coherence', physics.analyze_structural_coherence, CREDIBILITY, scale=100.0),
    SignalSpec('noise_pattern', physics.analyze_noise_pattern, SUSPICION),
    SignalSpec('artifacts', physics.analyze_artifacts, SUSPICION, scale=100.0),
    SignalSpec('sharpness', physics.analyze_sharpness, SUSPICION),
    SignalSpec('ela', ela.analyze_error_levels, SUSPICION),
    SignalSpec('residual', residual.analyze_residuals, SUSPICION),
    SignalSpec('ai_detection', ai_detection.analyze_ai_likelihood, SUSPICION),
    SignalSpec('metadata_consistency', metadata.analyze_metadata, CREDIBILITY,
               requires=('metadata',)),
    SignalSpec('historical_match', historical.analyze_historical_match, CREDIBILITY,
               requires=('match',)),
    SignalSpec('alteration_detection', historical.analyze_alteration, SUSPICION,
               requires=('match',)),
)


def _index(table) -> Mapping[str, SignalSpec]:
    names = tuple(spec.name for spec in table)
    if names != SIGNAL_NAMES:
        raise ConfigurationError(
            f"Registered signals {names} do not match configured signals {SIGNAL_NAMES}"
        )
    return MappingProxyType({spec.name: spec for spec in table})


SIGNALS: Mapping[str, SignalSpec] = _index(_TABLE)


def get_signal(name: str) -> SignalSpec:
    try:
        return SIGNALS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown signal: {name}")


def validate_params(overrides: Mapping[str, Mapping[str, Any]]) -> None:
    """Reject overrides for unknown signals or unknown parameters."""
    for name, params in overrides.items():
        spec = get_signal(name)
        unknown = sorted(set(params) - set(spec.defaults))
        if unknown:
            raise ConfigurationError(
                f"Unknown parameters for signal '{name}': {', '.join(unknown)}"
            )


def run_signal(
    spec: SignalSpec,
    image: RasterImage,
    params: Optional[Mapping[str, Any]] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> SignalScore:
    """Run one analyzer; any failure other than a malformed image is neutralized."""
    kwargs: Dict[str, Any] = dict(params or {})
    for key in spec.requires:
        kwargs[key] = (context or {}).get(key)

    try:
        return spec.analyzer(image, **kwargs)
    except (MalformedImage, ConfigurationError):
        raise
    except Exception as e:
        logger.warning(f"Signal '{spec.name}' failed: {e}")
        return SignalScore.neutral(spec.name, str(e), scale=spec.scale)
