import time
from typing import Any, Dict, List, NamedTuple

from loguru import logger

from ranking.models import ImportanceLabel, RankedNudge
from ranking.state import RankingState

TOP_NUDGES_LIMIT = 3
TITLE_MAX_LENGTH = 50


class ImportanceDistribution(NamedTuple):
    high: int
    medium: int
    low: int
    total: int


def compute_importance_distribution(nudges: List[RankedNudge]) -> ImportanceDistribution:
    """Count ranked nudges per importance label."""
    labels = [n.importance_label for n in nudges]
    return ImportanceDistribution(
        high=labels.count(ImportanceLabel.HIGH),
        medium=labels.count(ImportanceLabel.MEDIUM),
        low=labels.count(ImportanceLabel.LOW),
        total=len(nudges),
    )


def extract_top_nudges(nudges: List[RankedNudge], limit: int = TOP_NUDGES_LIMIT) -> List[Dict[str, Any]]:
    """Compact view of the first `limit` nudges; expects ranked order."""
    return [
        {
            "id": n.id,
            "title": n.message[:TITLE_MAX_LENGTH] if n.message else None,
            "type": n.type,
            "importance_score": n.importance_score,
        }
        for n in nudges[:limit]
    ]


def summarize(state: RankingState) -> RankingState:
    """Log a summary record of this ranking run."""
    ranked = state.get("ranked", [])
    run_context = state.get("run_context")

    try:
        distribution = compute_importance_distribution(ranked)
        duration_ms = int((time.time() - state.get("started_at", time.time())) * 1000)

        summary = {
            "goal": f"List nudges ({distribution.total} total, {distribution.high} high)",
            "distribution": distribution._asdict(),
            "top_nudges": extract_top_nudges(ranked),
            "enriched_leads": len(state.get("enriched_lead_ids", [])),
            "duration_ms": duration_ms,
            "errors": list(state.get("errors", [])),
        }
        state["summary"] = summary

        context = run_context.model_dump(exclude_none=True) if run_context else {}
        logger.bind(**context, **summary).info(f"{summary['goal']} in {duration_ms}ms")

    except Exception as e:
        error_msg = f"Summarization failed: {str(e)}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["summary"] = {}

    return state
