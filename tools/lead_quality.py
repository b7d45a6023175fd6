import httpx
import os
from typing import Any, Dict, Iterable, Optional
from loguru import logger

DEFAULT_TIMEOUT = 10.0


def timeout_from_env() -> float:
    value = os.getenv("LEAD_QUALITY_TIMEOUT")
    if not value:
        return DEFAULT_TIMEOUT
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid LEAD_QUALITY_TIMEOUT={value!r}, using {DEFAULT_TIMEOUT}s")
        return DEFAULT_TIMEOUT


class LeadQualityClient:
    """Batched lead quality lookup against the lead scoring service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or os.getenv("LEAD_QUALITY_API_URL") or "").rstrip("/")
        self.api_key = api_key or os.getenv("LEAD_QUALITY_API_KEY")
        self.timeout = timeout if timeout is not None else timeout_from_env()
        self.transport = transport

    async def fetch_lead_quality(self, lead_ids: Iterable[str]) -> Dict[str, float]:
        """
        Fetch quality scores (0-100) for a batch of leads in one request.

        Leads the service does not know are absent from the result.
        HTTP and network errors propagate to the caller.
        """
        lead_ids = sorted(set(lead_ids))
        if not lead_ids:
            return {}

        if not self.base_url:
            logger.warning("No LEAD_QUALITY_API_URL configured, lead quality unavailable")
            return {}

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}/lead-quality/batch",
                json={"leadIds": lead_ids},
                headers=headers,
            )
            response.raise_for_status()
            scores = self._parse_scores(response.json())

        logger.info(f"Fetched lead quality for {len(scores)} of {len(lead_ids)} leads")
        return scores

    # Allows passing the client itself as the fetch_lead_quality collaborator
    __call__ = fetch_lead_quality

    def _parse_scores(self, payload: Any) -> Dict[str, float]:
        """Extract {leadId: score} from a {"scores": {...}} response body."""
        raw_scores = payload.get("scores") if isinstance(payload, dict) else None
        if not isinstance(raw_scores, dict):
            raise ValueError("Lead quality response is missing a 'scores' object")

        scores: Dict[str, float] = {}
        for lead_id, value in raw_scores.items():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                scores[str(lead_id)] = float(value)
            elif value is not None:
                logger.warning(f"Ignoring non-numeric lead quality for {lead_id}: {value!r}")
        return scores
