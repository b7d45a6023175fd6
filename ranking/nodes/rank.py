from typing import List, Optional

from loguru import logger

from ranking.models import Nudge, RankedNudge, ScoringConfig
from ranking.nodes.capture import NudgeInput, parse_nudges
from ranking.nodes.score import compute_nudge_score, get_importance_label
from ranking.state import RankingState


def annotate(nudge: Nudge, config: ScoringConfig) -> RankedNudge:
    """New RankedNudge copy of `nudge`; the input is left untouched."""
    score = compute_nudge_score(nudge, config)
    # Re-ranking an already ranked nudge replaces its previous annotation
    data = nudge.model_dump(exclude={"importance_score", "importance_label"})
    return RankedNudge(
        **data,
        importance_score=score,
        importance_label=get_importance_label(score),
    )


def rank_nudges(nudges: List[NudgeInput], config: Optional[ScoringConfig] = None) -> List[RankedNudge]:
    """
    Score, label and order a batch of nudges.

    Order: importance score descending, then createdAt descending; nudges
    equal on both keep their input order. Malformed payloads are dropped.
    """
    config = (config or ScoringConfig()).pinned()
    parsed, _ = parse_nudges(nudges)

    ranked = [annotate(nudge, config) for nudge in parsed]
    # sorted() stays stable with reverse=True
    return sorted(ranked, key=lambda n: (n.importance_score, n.created_at), reverse=True)


def rank(state: RankingState) -> RankingState:
    """Rank the captured (and possibly enriched) nudges."""
    nudges = state.get("nudges", [])
    logger.info(f"Starting ranking for {len(nudges)} nudges")

    state["ranked"] = rank_nudges(nudges, state.get("scoring_config"))

    if state["ranked"]:
        top = state["ranked"][0]
        logger.info(f"Ranking completed, top nudge {top.id} scored {top.importance_score:.1f}")
    else:
        logger.info("Ranking completed with no nudges")
    return state
