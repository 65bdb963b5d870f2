"""Records supplied by the facility's domain data providers.

Providers hand these over either camelCased (as the dashboard's backend
serves them) or snake_cased (as stored in SQLite); both spellings validate.
"""
import re
from datetime import date, datetime, time, timezone
from typing import Annotated, Any, Optional, Literal

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


_DATE_ONLY = re.compile(r"\d{4}-\d{2}-\d{2}")


def _coerce_timestamp(value: Any) -> Any:
    # Date-only values ("2024-03-01") mean midnight
    if isinstance(value, str) and _DATE_ONLY.fullmatch(value):
        return f"{value}T00:00:00"
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Timestamp = Annotated[datetime, BeforeValidator(_coerce_timestamp), AfterValidator(as_utc)]


class DomainRecord(BaseModel):
    """Base for read-only provider records."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Resident(DomainRecord):
    id: str
    name: str
    health_status: str = "stable"


class Incident(DomainRecord):
    """An intercurrence recorded for a resident."""

    resident_id: str
    description: str
    severity: str
    occurred_at: Timestamp


class VitalSign(DomainRecord):
    resident_id: str
    recorded_at: Timestamp
    systolic_pressure: Optional[float] = None
    oxygen_saturation: Optional[float] = None
    temperature: Optional[float] = None
    heart_rate: Optional[float] = None


class EliminationRecord(DomainRecord):
    resident_id: str
    recorded_at: Timestamp
    type: Optional[str] = None


class Medication(DomainRecord):
    resident_id: str
    name: str
    status: str
    end_date: Optional[Timestamp] = None


class FamilyMessage(DomainRecord):
    """Message sent by a resident's family."""

    sender: str = Field(validation_alias=AliasChoices("from", "sender"))
    message: str
    date: Timestamp
    type: str = "general"
    read: bool = False
    resident_id: Optional[str] = None


class BillingItem(DomainRecord):
    """Monthly fee, payable or receivable."""

    amount: float
    status: str
    late_fee: float = 0.0
    due_date: Optional[Timestamp] = None
    description: Optional[str] = None

    @field_validator("late_fee", mode="before")
    @classmethod
    def _late_fee_defaults_to_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class Caregiver(DomainRecord):
    status: str
    id: Optional[str] = None
    name: Optional[str] = None


InsightSeverity = Literal["low", "medium", "high", "critical"]


class AIInsight(DomainRecord):
    """One finding of the external AI health analysis."""

    title: str
    message: str = Field(validation_alias=AliasChoices("message", "description"))
    severity: InsightSeverity = "medium"
    recommendations: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    data_points: int = 0
    urgency: Optional[str] = None
    type: Optional[str] = None
    timeframe: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def effective_urgency(self) -> Optional[str]:
        """Urgency, which the analysis service sometimes nests in metadata."""
        return self.urgency or self.metadata.get("urgency")


class AIAnalysisResult(DomainRecord):
    """Finished result returned by the AI analysis service."""

    insights: list[AIInsight] = Field(default_factory=list)
    summary: str = ""
    risk_score: float = 0.0
    next_review_date: Optional[str] = None
