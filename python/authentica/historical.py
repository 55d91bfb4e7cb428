"""Historical verification against caller-supplied reference records."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .compare import PerceptualComparator
from .metadata import parse_date
from .types import ArchiveRecord, ComparisonResult, ContentType, RasterImage, SignalScore

logger = logging.getLogger(__name__)

MAX_COMPARED = 10
MAX_REPORTED = 5
TIMELINE_WINDOW_DAYS = 3650


@dataclass(frozen=True)
class MatchEntry:
    entry_id: str
    similarity: float
    comparison: ComparisonResult


@dataclass(frozen=True)
class HistoricalMatch:
    """Outcome of matching one candidate against the reference records."""
    historical_match_score: float
    similar_entries: List[MatchEntry] = field(default_factory=list)
    timeline: Dict[str, Any] = field(default_factory=dict)
    total_matches: int = 0

    @property
    def best(self) -> Optional[MatchEntry]:
        return self.similar_entries[0] if self.similar_entries else None


class HistoricalVerifier:
    """Compare a candidate with reference records and check its timeline."""

    def __init__(self, comparator: Optional[PerceptualComparator] = None):
        self.comparator = comparator or PerceptualComparator()

    def verify(
        self,
        candidate,
        references: Sequence[ArchiveRecord],
        content_type: ContentType = ContentType.IMAGE,
        claimed_date: Optional[str] = None,
    ) -> HistoricalMatch:
        """Match ``candidate`` against up to ten records of the same type."""
        candidates = [r for r in references if r.content_type == content_type]

        entries = []
        for record in candidates[:MAX_COMPARED]:
            comparison = self.comparator.compare(candidate, record.content, content_type)
            if comparison.error:
                logger.warning(f"Reference {record.entry_id} not compared: {comparison.error}")
                continue
            entries.append(MatchEntry(record.entry_id, comparison.score, comparison))

        entries.sort(key=lambda e: e.similarity, reverse=True)
        best_score = entries[0].similarity if entries else 0.0

        return HistoricalMatch(
            historical_match_score=best_score,
            similar_entries=entries[:MAX_REPORTED],
            timeline=self.check_timeline(claimed_date, candidates),
            total_matches=len(candidates),
        )

    @staticmethod
    def check_timeline(claimed_date: Optional[str], records: Sequence[ArchiveRecord]) -> Dict[str, Any]:
        """Penalize reference dates more than ten years from the claimed date."""
        claimed = parse_date(claimed_date)
        if claimed is None:
            return {'score': 0.5, 'inconsistencies': ['No date provided']}

        score = 1.0
        inconsistencies = []
        for record in records[:MAX_REPORTED]:
            reference = parse_date(record.historical_date)
            if reference is None:
                continue
            days = abs((claimed - reference).days)
            if days > TIMELINE_WINDOW_DAYS:
                inconsistencies.append(
                    f"Date differs from archive entry {record.entry_id} by {days} days"
                )
                score -= 0.1

        return {'score': max(0.0, score), 'inconsistencies': inconsistencies}


def analyze_historical_match(image: RasterImage, match: Optional[HistoricalMatch] = None) -> SignalScore:
    """Best reference similarity; higher is more credible."""
    if match is None or match.best is None:
        raise ValueError('no comparable reference records')

    score = float(match.historical_match_score)
    findings = list(match.timeline.get('inconsistencies', []))
    if score < 0.5:
        findings.append('Closest archive record differs substantially')

    return SignalScore(
        name='historical_match',
        raw_value=score,
        normalized_score=min(1.0, max(0.0, score)),
        consistent=score >= 0.5,
        findings=findings,
        details={
            'best_entry': match.best.entry_id,
            'similar_entries': [
                {'entry_id': e.entry_id, 'similarity': e.similarity}
                for e in match.similar_entries
            ],
            'timeline': dict(match.timeline),
            'total_matches': match.total_matches,
        },
    )


def analyze_alteration(image: RasterImage, match: Optional[HistoricalMatch] = None) -> SignalScore:
    """Alteration score against the closest reference; higher is more suspicious."""
    if match is None or match.best is None:
        raise ValueError('no comparable reference records')

    comparison = match.best.comparison
    altered = comparison.alteration_score >= 0.6
    findings = []
    if altered:
        findings.append(f"Large altered area compared with archive entry {match.best.entry_id}")

    return SignalScore(
        name='alteration_detection',
        raw_value=comparison.alteration_score,
        normalized_score=comparison.alteration_score,
        consistent=not altered,
        findings=findings,
        details={
            'entry_id': match.best.entry_id,
            'variant_score': comparison.variant_score,
            'alteration_score': comparison.alteration_score,
            **comparison.details,
        },
    )
