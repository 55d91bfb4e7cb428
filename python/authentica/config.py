"""
Fusion configuration for Authentica.

Weights and verdict thresholds are built once at import time and never
mutated.  A request that wants different weights passes its own
:class:`WeightConfig`; normalization always produces a fresh copy.
"""
from types import MappingProxyType
from typing import Dict, Iterator, Mapping

from .exceptions import ConfigurationError

# Every signal the engine can produce, in the order they are reported.
SIGNAL_NAMES = (
    'lighting',
    'structural_coherence',
    'noise_pattern',
    'artifacts',
    'sharpness',
    'ela',
    'residual',
    'ai_detection',
    'metadata_consistency',
    'historical_match',
    'alteration_detection',
)

# Points added by the additive policy when a signal is triggered.
# 'artifacts' contributes its own artifact score instead of a fixed amount.
ADDITIVE_POINTS = MappingProxyType({
    'lighting': 30,
    'structural_coherence': 15,
    'noise_pattern': 25,
    'artifacts': None,
    'sharpness': 20,
})

# Trigger conditions for the additive policy
COHERENCE_TRIGGER_BELOW = 70
ARTIFACT_TRIGGER_ABOVE = 25

# Verdict thresholds on the 0-100 suspicion scale
SUSPICIOUS_AT = 40
MANIPULATED_AT = 70

NEUTRAL_COMPONENT = 0.5


class WeightConfig(Mapping):
    """Immutable mapping of signal name to non-negative weight."""

    def __init__(self, weights: Mapping[str, float]):
        unknown = sorted(set(weights) - set(SIGNAL_NAMES))
        if unknown:
            raise ConfigurationError(f"Unknown weight keys: {', '.join(unknown)}")

        cleaned = {}
        for name, value in weights.items():
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Weight for '{name}' is not a number: {value!r}")
            if value < 0 or value != value:
                raise ConfigurationError(f"Weight for '{name}' must be non-negative, got {value}")
            cleaned[name] = value

        if sum(cleaned.values()) <= 0:
            raise ConfigurationError("Weights must sum to a positive value")

        self._weights = MappingProxyType(cleaned)

    def __getitem__(self, key: str) -> float:
        return self._weights[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"WeightConfig({dict(self._weights)!r})"

    def normalized(self) -> Dict[str, float]:
        """Return a request-scoped copy whose values sum to 1."""
        total = sum(self._weights.values())
        return {name: value / total for name, value in self._weights.items()}

    def override(self, **changes: float) -> "WeightConfig":
        """Return a new config with some weights replaced."""
        merged = dict(self._weights)
        merged.update(changes)
        return WeightConfig(merged)


DEFAULT_WEIGHTS = WeightConfig({
    'ai_detection': 0.25,
    'ela': 0.20,
    'residual': 0.15,
    'metadata_consistency': 0.15,
    'historical_match': 0.15,
    'alteration_detection': 0.10,
})
