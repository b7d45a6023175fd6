import os
from typing import List, Optional

from dotenv import load_dotenv
from langgraph.graph import StateGraph, START, END
from loguru import logger

from ranking.models import RankedNudge, RunContext, ScoringConfig
from ranking.state import LeadQualityFetcher, RankingState
from ranking.nodes.capture import NudgeInput, capture
from ranking.nodes.enrich import DEFAULT_ENRICHMENT_TIMEOUT, enrich
from ranking.nodes.rank import rank
from ranking.nodes.summarize import summarize

# Load environment variables
load_dotenv()


def enrichment_timeout_from_env() -> float:
    value = os.getenv("NUDGE_ENRICHMENT_TIMEOUT")
    if not value:
        return DEFAULT_ENRICHMENT_TIMEOUT
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid NUDGE_ENRICHMENT_TIMEOUT={value!r}, using {DEFAULT_ENRICHMENT_TIMEOUT}s")
        return DEFAULT_ENRICHMENT_TIMEOUT


def build_workflow():
    """Build the nudge ranking workflow."""
    workflow = StateGraph(RankingState)

    workflow.add_node("capture", capture)
    workflow.add_node("enrich", enrich)
    workflow.add_node("rank", rank)
    workflow.add_node("summarize", summarize)

    workflow.add_edge(START, "capture")
    workflow.add_edge("capture", "enrich")
    workflow.add_edge("enrich", "rank")

    # Only runs with attribution get a summary record
    def branch_decision(state: RankingState) -> str:
        return "summarize" if state.get("run_context") else "done"

    workflow.add_conditional_edges(
        "rank",
        branch_decision,
        {
            "summarize": "summarize",
            "done": END,
        }
    )
    workflow.add_edge("summarize", END)

    return workflow.compile()


app_graph = build_workflow()


async def rank_subconscious_nudges(
    nudges: List[NudgeInput],
    fetch_lead_quality: Optional[LeadQualityFetcher] = None,
    config: Optional[ScoringConfig] = None,
    timeout: Optional[float] = None,
    run_context: Optional[RunContext] = None,
) -> List[RankedNudge]:
    """
    Rank nudges for display, enriching missing lead quality first.

    Args:
        nudges: Nudge models or raw payloads (camelCase or snake_case keys)
        fetch_lead_quality: Batched lookup, called at most once with the
            distinct lead ids that lack a quality score
        config: Scoring options (reference time, type weights)
        timeout: Seconds to wait for the lookup; defaults to
            NUDGE_ENRICHMENT_TIMEOUT or 5s
        run_context: When given, a summary of the run is logged

    Returns:
        Ranked nudges, most important first. Malformed payloads are dropped
        and a failed or slow lookup only skips enrichment.
    """
    initial_state: RankingState = {
        "raw": list(nudges),
        "scoring_config": config or ScoringConfig(),
        "fetch_lead_quality": fetch_lead_quality,
        "enrichment_timeout": timeout if timeout is not None else enrichment_timeout_from_env(),
        "run_context": run_context,
        "errors": [],
    }

    result = await app_graph.ainvoke(initial_state)

    if result.get("errors"):
        logger.warning(f"Nudge ranking completed with errors: {result['errors']}")
    return result.get("ranked", [])
