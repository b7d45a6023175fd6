from typing import TypedDict, Optional, List, Dict, Any, Awaitable, Callable, FrozenSet, Mapping, Union

from ranking.models import Nudge, RankedNudge, RunContext, ScoringConfig

LeadQualityFetcher = Callable[
    [FrozenSet[str]],
    Union[Awaitable[Mapping[str, float]], Mapping[str, float]],
]


class RankingState(TypedDict, total=False):
    """State shape for the nudge ranking workflow."""
    raw: List[Any]                                   # nudges as supplied by the caller
    nudges: List[Nudge]                              # validated, possibly enriched
    scoring_config: ScoringConfig
    fetch_lead_quality: Optional[LeadQualityFetcher]
    enrichment_timeout: float                        # seconds
    enriched_lead_ids: List[str]
    ranked: List[RankedNudge]
    run_context: Optional[RunContext]
    summary: Dict[str, Any]
    started_at: float
    errors: List[str]
