"""
Importance scoring for nudges.

score = clamp(base + recency + status + lead_quality + staleness, 0, 100)

Every term is computed once in `score_breakdown`, which both the scorer and
the explainer read from.
"""

from dataclasses import dataclass
from typing import Optional

from ranking.models import ImportanceLabel, NudgeStatus, NudgeType, ScoringConfig
from ranking.nodes.capture import NudgeInput, parse_nudge

SECONDS_PER_DAY = 24 * 60 * 60

MAX_RECENCY_BONUS = 20
RECENCY_HALF_LIFE_DAYS = 3
NEW_STATUS_BONUS = 10
MAX_LEAD_QUALITY_BONUS = 15
MAX_STALENESS_BONUS = 10
STALENESS_MAX_DAYS = 14

HIGH_IMPORTANCE_THRESHOLD = 70
MEDIUM_IMPORTANCE_THRESHOLD = 40


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-term contributions for one nudge."""
    nudge_type: str
    base: float
    age_days: float
    recency: float
    status_bonus: float
    lead_quality_score: Optional[float]
    lead_quality: float
    reported_lead_quality_score: Optional[float]
    stale_days: Optional[float]
    staleness: float

    @property
    def raw_total(self) -> float:
        return self.base + self.recency + self.status_bonus + self.lead_quality + self.staleness

    @property
    def total(self) -> float:
        return _clamp(self.raw_total, 0.0, 100.0)


def score_breakdown(nudge: NudgeInput, config: Optional[ScoringConfig] = None) -> ScoreBreakdown:
    """Compute every score term for a nudge against `config`."""
    nudge = parse_nudge(nudge)
    config = config or ScoringConfig()
    now = config.reference_time()

    base = config.base_score(nudge.type)

    # A createdAt in the future counts as brand new
    age_days = max(0.0, (now - nudge.created_at).total_seconds() / SECONDS_PER_DAY)
    recency = MAX_RECENCY_BONUS * 0.5 ** (age_days / RECENCY_HALF_LIFE_DAYS)

    status_bonus = NEW_STATUS_BONUS if nudge.status == NudgeStatus.NEW.value else 0

    quality = None
    lead_quality = 0.0
    if nudge.lead_quality_score is not None:
        quality = _clamp(nudge.lead_quality_score, 0.0, 100.0)
        lead_quality = (quality / 100) * MAX_LEAD_QUALITY_BONUS

    stale_days = None
    staleness = 0.0
    if nudge.type == NudgeType.STALE_LEAD.value and nudge.stale_at is not None:
        stale_days = _clamp(
            (now - nudge.stale_at).total_seconds() / SECONDS_PER_DAY, 0.0, STALENESS_MAX_DAYS
        )
        staleness = (stale_days / STALENESS_MAX_DAYS) * MAX_STALENESS_BONUS

    return ScoreBreakdown(
        nudge_type=nudge.type,
        base=base,
        age_days=age_days,
        recency=recency,
        status_bonus=status_bonus,
        lead_quality_score=quality,
        lead_quality=lead_quality,
        reported_lead_quality_score=nudge.lead_quality_score,
        stale_days=stale_days,
        staleness=staleness,
    )


def compute_nudge_score(nudge: NudgeInput, config: Optional[ScoringConfig] = None) -> float:
    """Importance score in [0, 100]. Pure: same nudge and `now` give the same score."""
    return score_breakdown(nudge, config).total


def get_importance_label(score: float) -> ImportanceLabel:
    if score >= HIGH_IMPORTANCE_THRESHOLD:
        return ImportanceLabel.HIGH
    elif score >= MEDIUM_IMPORTANCE_THRESHOLD:
        return ImportanceLabel.MEDIUM
    else:
        return ImportanceLabel.LOW
