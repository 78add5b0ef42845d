import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """e.g. drift-1760860800000-3f9a1c2b7"""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class NarrativeTag(str, Enum):
    TRUST = "Trust"
    SPEED = "Speed"
    CONTROL = "Control"
    INNOVATION = "Innovation"
    COST = "Cost"
    SECURITY = "Security"


class Persona(str, Enum):
    CTO = "CTO"
    CFO = "CFO"
    DATA_ENGINEER = "Data Engineer"
    VP_ENGINEERING = "VP Engineering"
    PRODUCT_MANAGER = "Product Manager"


class Stage(str, Enum):
    AWARENESS = "Awareness"
    CONSIDERATION = "Consideration"
    DECISION = "Decision"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActionStatus(str, Enum):
    VALIDATED = "VALIDATED"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase keys on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Snapshot(FrozenModel):
    id: str
    competitor_url: str
    competitor_name: str
    captured_at: datetime = Field(default_factory=utcnow)
    hero_text: str = ""
    subheads: List[str] = Field(default_factory=list, max_length=10)
    pricing_blocks: List[str] = Field(default_factory=list, max_length=5)
    raw_html: str = ""  # audit only, never analyzed


class DriftImplication(FrozenModel):
    text: str
    so_what: str
    narrative_tag: NarrativeTag
    persona: Persona
    stage: Stage
    severity: Severity


class DriftAnalysis(FrozenModel):
    id: str
    competitor_url: str
    competitor_name: str
    analyzed_at: datetime = Field(default_factory=utcnow)
    drift_score: int = Field(ge=0, le=100)
    new_nouns: List[str] = Field(default_factory=list, max_length=10)
    new_verbs: List[str] = Field(default_factory=list, max_length=10)
    tone_shifts: List[str] = []
    implications: List[DriftImplication] = Field(default_factory=list, max_length=5)
    trajectory_call: Optional[str] = None


class ProofRecord(CamelModel):
    proof_id: str
    evidence_sentence: str
    source_link: str
    persona_tag: Persona
    narrative_tag: NarrativeTag
    stage: Stage
    expiry_date: Optional[datetime] = None  # descriptive only
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ProofCreate(CamelModel):
    evidence_sentence: str = Field(..., min_length=1)
    source_link: str = Field(..., min_length=1)
    persona_tag: Persona
    narrative_tag: NarrativeTag
    stage: Stage
    expiry_date: Optional[datetime] = None


class ProofQuery(CamelModel):
    """Optional exact-match filters for proof search; None means 'any'."""
    narrative_tag: Optional[NarrativeTag] = None
    persona: Optional[Persona] = None
    stage: Optional[Stage] = None


class ActionItem(FrozenModel):
    line: str
    proof_id: Optional[str] = None
    next_step: str
    narrative_tag: NarrativeTag
    persona: Persona
    stage: Stage
    status: ActionStatus


class CompetitorConfig(CamelModel):
    url: str
    name: str
    active: bool = True
    last_scanned: Optional[datetime] = None
    added_at: datetime = Field(default_factory=utcnow)


class CompetitorCreate(CamelModel):
    url: HttpUrl = Field(..., description="Competitor marketing page URL")
    name: Optional[str] = None


class CompetitorUpdate(CamelModel):
    url: str
    name: Optional[str] = None
    active: Optional[bool] = None
    last_scanned: Optional[datetime] = None


class MarketPulseReport(CamelModel):
    id: str
    generated_at: datetime = Field(default_factory=utcnow)
    drift_analyses: List[DriftAnalysis] = []
    top_implications: List[DriftImplication] = []
    recommended_actions: List[ActionItem] = []
    sent_via_email: bool = False
    sent_at: Optional[datetime] = None


class ScanRequest(CamelModel):
    url: Optional[str] = None


class ReportRequest(CamelModel):
    send_email: bool = False
    recipients: List[str] = []


class ScanOutcome(CamelModel):
    competitor: str
    success: bool
    snapshot: Optional[Snapshot] = None
    drift_analysis: Optional[DriftAnalysis] = None
    error: Optional[str] = None

    @property
    def drift_score(self) -> int:
        return self.drift_analysis.drift_score if self.drift_analysis else 0
