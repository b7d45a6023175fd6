import asyncio
import inspect
import math
from typing import Any, FrozenSet, List, Mapping, Optional

from loguru import logger

from ranking.models import Nudge
from ranking.state import LeadQualityFetcher, RankingState

DEFAULT_ENRICHMENT_TIMEOUT = 5.0


def missing_lead_ids(nudges: List[Nudge]) -> FrozenSet[str]:
    """Distinct lead ids of nudges that have no lead quality score yet."""
    return frozenset(
        n.lead_id for n in nudges
        if n.lead_id and n.lead_quality_score is None
    )


def _as_score(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return score if math.isfinite(score) else None


def merge_lead_quality(nudges: List[Nudge], scores: Mapping[str, Any]) -> List[Nudge]:
    """Copies of `nudges` with fetched lead quality filled in where missing."""
    merged: List[Nudge] = []
    for nudge in nudges:
        if nudge.lead_id and nudge.lead_quality_score is None:
            score = _as_score(scores.get(nudge.lead_id))
            if score is not None:
                nudge = nudge.model_copy(update={"lead_quality_score": score})
        merged.append(nudge)
    return merged


async def fetch_lead_quality_batch(
    fetch_lead_quality: LeadQualityFetcher,
    lead_ids: FrozenSet[str],
    timeout: float,
) -> Mapping[str, Any]:
    """
    Single batched lookup bounded by `timeout` seconds.

    The collaborator is called in a worker thread so a blocking function
    cannot stall the event loop; a coroutine it returns is awaited here.
    A timed-out blocking call is abandoned, not interrupted.
    """
    async def lookup():
        result = await asyncio.to_thread(fetch_lead_quality, lead_ids)
        if inspect.isawaitable(result):
            result = await result
        return result

    result = await asyncio.wait_for(lookup(), timeout=timeout)
    if not isinstance(result, Mapping):
        raise TypeError(f"lead quality lookup returned {type(result).__name__}, expected a mapping")
    return result


async def enrich(state: RankingState) -> RankingState:
    """Fill in missing lead quality scores with one batched lookup."""
    nudges = state.get("nudges", [])
    fetch_lead_quality = state.get("fetch_lead_quality")
    state["enriched_lead_ids"] = []

    if fetch_lead_quality is None:
        logger.info("No lead quality fetcher supplied, skipping enrichment")
        return state

    lead_ids = missing_lead_ids(nudges)
    if not lead_ids:
        logger.info("All nudges already carry lead quality, skipping enrichment")
        return state

    logger.info(f"Starting lead quality enrichment for {len(lead_ids)} leads")
    timeout = state.get("enrichment_timeout", DEFAULT_ENRICHMENT_TIMEOUT)

    try:
        scores = await fetch_lead_quality_batch(fetch_lead_quality, lead_ids, timeout)
        state["nudges"] = merge_lead_quality(nudges, scores)
        state["enriched_lead_ids"] = sorted(i for i in lead_ids if _as_score(scores.get(i)) is not None)
        logger.info(f"Enrichment completed: {len(state['enriched_lead_ids'])} of {len(lead_ids)} leads scored")

    except asyncio.TimeoutError:
        error_msg = f"enrich_failed: lead quality lookup timed out after {timeout}s"
        logger.warning(error_msg)
        state.setdefault("errors", []).append(error_msg)

    except Exception as e:
        error_msg = f"enrich_failed: {str(e)}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)

    return state
