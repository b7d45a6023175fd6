from typing import Optional

from ranking.models import NudgeStatus, ScoringConfig
from ranking.nodes.capture import NudgeInput
from ranking.nodes.score import get_importance_label, score_breakdown


def explain_nudge_score(nudge: NudgeInput, config: Optional[ScoringConfig] = None) -> str:
    """
    Human-readable trace of how a nudge's importance score was computed.

    One line per contributing term; the status, lead quality and staleness
    lines only appear when that term applies.
    """
    breakdown = score_breakdown(nudge, config)

    lines = [
        f'Type "{breakdown.nudge_type}": base {breakdown.base:g}',
        f"Recency ({breakdown.age_days:.1f}d old): +{breakdown.recency:.1f}",
    ]

    if breakdown.status_bonus:
        lines.append(f'Status "{NudgeStatus.NEW.value}": +{breakdown.status_bonus:g}')

    if breakdown.lead_quality_score is not None:
        quality = f"{breakdown.lead_quality_score:g}"
        if breakdown.reported_lead_quality_score != breakdown.lead_quality_score:
            quality += f", reported {breakdown.reported_lead_quality_score:g}"
        lines.append(f"Lead quality ({quality}): +{breakdown.lead_quality:.1f}")

    if breakdown.stale_days is not None:
        lines.append(f"Staleness ({breakdown.stale_days:.1f}d): +{breakdown.staleness:.1f}")

    total = breakdown.total
    lines.append(f"Total: {total:.1f} ({get_importance_label(total).value})")

    return "\n".join(lines)
