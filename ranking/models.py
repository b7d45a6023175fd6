from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class NudgeType(str, Enum):
    """Nudge categories with a built-in base weight."""
    FOLLOW_UP = "follow_up"
    STALE_LEAD = "stale_lead"
    ENGAGEMENT = "engagement"
    REMINDER = "reminder"
    INSIGHT = "insight"


class NudgeStatus(str, Enum):
    NEW = "new"
    SEEN = "seen"
    HANDLED = "handled"
    DISMISSED = "dismissed"
    SNOOZED = "snoozed"


class ImportanceLabel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_TYPE_WEIGHTS: Mapping[str, float] = MappingProxyType({
    NudgeType.FOLLOW_UP.value: 60,   # user needs to act
    NudgeType.STALE_LEAD.value: 50,  # lead may be losing interest
    NudgeType.ENGAGEMENT.value: 40,
    NudgeType.REMINDER.value: 30,
    NudgeType.INSIGHT.value: 20,     # informational only
})

DEFAULT_UNKNOWN_TYPE_WEIGHT = 25


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class NudgeParseError(ValueError):
    """Raised when a nudge payload cannot be turned into a Nudge."""

    def __init__(self, nudge_id: str, error: ValidationError):
        self.nudge_id = nudge_id
        self.error = error
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in error.errors())
        super().__init__(f"Nudge {nudge_id} is malformed (invalid: {fields})")


class Nudge(BaseModel):
    """A pending notification awaiting operator attention.

    Timestamps are normalized to timezone-aware UTC datetimes on validation,
    so scoring never re-parses them.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    type: str
    status: str
    created_at: datetime = Field(alias="createdAt")
    lead_id: Optional[str] = Field(default=None, alias="leadId")
    lead_quality_score: Optional[float] = Field(default=None, alias="leadQualityScore", allow_inf_nan=False)
    stale_at: Optional[datetime] = Field(default=None, alias="staleAt")
    message: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None

    @field_validator("id", "lead_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("type", "status", mode="before")
    @classmethod
    def _enum_to_value(cls, value):
        return value.value if isinstance(value, Enum) else value

    @field_validator("created_at", "stale_at")
    @classmethod
    def _normalize_timestamp(cls, value):
        return _as_utc(value)


class RankedNudge(Nudge):
    """A nudge annotated with its importance score and label."""
    importance_score: float = Field(alias="importanceScore")
    importance_label: ImportanceLabel = Field(alias="importanceLabel")


class ScoringConfig(BaseModel):
    """Per-call scoring options: reference time and type weight overrides."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    now: Optional[datetime] = None
    type_weights: Dict[str, float] = Field(default_factory=dict, alias="typeWeights")

    @field_validator("now")
    @classmethod
    def _normalize_now(cls, value):
        return _as_utc(value)

    def reference_time(self) -> datetime:
        return self.now or datetime.now(timezone.utc)

    def weights(self) -> Mapping[str, float]:
        """Defaults with this config's overrides merged on top."""
        return MappingProxyType({**DEFAULT_TYPE_WEIGHTS, **self.type_weights})

    def base_score(self, nudge_type: str) -> float:
        return self.weights().get(nudge_type, DEFAULT_UNKNOWN_TYPE_WEIGHT)

    def pinned(self) -> "ScoringConfig":
        """Copy with `now` fixed, so a whole batch shares one reference time."""
        if self.now is not None:
            return self
        return self.model_copy(update={"now": self.reference_time()})


class RunContext(BaseModel):
    """Attribution attached to the log record of a ranking run."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    account_id: Optional[str] = Field(default=None, alias="accountId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    meta: Dict[str, Any] = Field(default_factory=dict)
