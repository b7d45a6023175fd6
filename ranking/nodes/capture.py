import time
from typing import Any, List, Mapping, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from ranking.models import Nudge, NudgeParseError, ScoringConfig
from ranking.state import RankingState

NudgeInput = Union[Nudge, Mapping[str, Any]]


def parse_nudge(raw: NudgeInput) -> Nudge:
    """Validate one nudge payload, normalizing its timestamps."""
    if isinstance(raw, Nudge):
        return raw
    try:
        return Nudge.model_validate(raw)
    except ValidationError as e:
        nudge_id = raw.get("id", "unknown") if isinstance(raw, Mapping) else "unknown"
        raise NudgeParseError(str(nudge_id), e) from e


def parse_nudges(raw_nudges: List[NudgeInput]) -> Tuple[List[Nudge], List[str]]:
    """Parse a batch, keeping input order and collecting per-nudge failures."""
    nudges: List[Nudge] = []
    errors: List[str] = []

    for raw in raw_nudges:
        try:
            nudges.append(parse_nudge(raw))
        except NudgeParseError as e:
            logger.warning(f"Dropping malformed nudge {e.nudge_id}: {e}")
            errors.append(f"capture_failed:{e.nudge_id}: {e}")

    return nudges, errors


def capture(state: RankingState) -> RankingState:
    """Normalize incoming nudges; malformed ones are dropped and reported."""
    raw_nudges = state.get("raw", [])
    logger.info(f"Starting capture for {len(raw_nudges)} nudges")

    state.setdefault("started_at", time.time())
    state.setdefault("errors", [])
    # Pin the reference time so enrichment and ranking see the same "now"
    state["scoring_config"] = (state.get("scoring_config") or ScoringConfig()).pinned()

    nudges, errors = parse_nudges(raw_nudges)
    state["nudges"] = nudges
    state["errors"].extend(errors)

    logger.info(f"Capture completed: {len(nudges)} valid, {len(errors)} dropped")
    return state
