from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, Literal
from datetime import datetime, timezone


FrameworkName = Literal["Qual-LTS", "Qual-LSS", "VEF", "MEDDPICC", "BANT", "LicenseDemandPlan"]
ActionItemStatus = Literal["Open", "In Progress", "Completed", "Overdue"]
HealthLabel = Literal["Healthy", "Watchlist", "At Risk"]
QualitySource = Literal["llm", "rules", "none"]


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QualificationNote(BaseModel):
    id: str = Field(..., description="Note identifier")
    account_id: str = Field(..., description="Owning account")
    transcript_id: Optional[str] = Field(None, description="Transcript the note was generated from")
    framework: FrameworkName = Field(..., description="Qualification methodology")
    content: Dict[str, Any] = Field(default_factory=dict, description="Framework field name -> free text")
    created_at: datetime = Field(..., description="When the note was created")
    updated_at: Optional[datetime] = Field(None, description="When the note was last edited")

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @property
    def last_modified(self) -> datetime:
        return self.updated_at or self.created_at


class Transcript(BaseModel):
    id: str = Field(..., description="Transcript identifier")
    account_id: str = Field(..., description="Owning account")
    content: str = Field(..., description="Raw transcript text")
    speaker_count: Optional[int] = Field(None, description="Number of speakers")
    word_count: Optional[int] = Field(None, description="Number of words")
    created_at: datetime = Field(..., description="When the transcript was uploaded")

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class ActionItem(BaseModel):
    """A next-best-action attached to an account"""
    id: str = Field(..., description="Action item identifier")
    account_id: str = Field(..., description="Owning account")
    title: Optional[str] = Field(None, description="Short action title")
    status: ActionItemStatus = Field("Open", description="Workflow status")
    due_date: Optional[datetime] = Field(None, description="When the action is due")
    created_at: datetime = Field(..., description="When the action was created")

    @field_validator("created_at", "due_date")
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class AccountRecords(BaseModel):
    """Everything stored for one account, as kept in a JSON data file"""
    account_id: str = Field(..., description="Account identifier")
    name: Optional[str] = Field(None, description="Account display name")
    qualification_notes: List[QualificationNote] = Field(default_factory=list)
    transcripts: List[Transcript] = Field(default_factory=list)
    action_items: List[ActionItem] = Field(default_factory=list)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadinessFlags(CamelModel):
    economic_buyer: bool = Field(False, description="Economic buyer identified")
    champion: bool = Field(False, description="Champion identified")
    pain_explicit: bool = Field(False, description="Pain made explicit")
    decision_process: bool = Field(False, description="Decision process clear")
    decision_criteria: bool = Field(False, description="Decision criteria clear")
    paper_process: bool = Field(False, description="Paper/procurement process clear")


class HealthBreakdown(CamelModel):
    coverage: float = Field(0.0, ge=0, le=1, description="Weighted framework field coverage")
    quality: float = Field(0.0, ge=0, le=1, description="Conversation quality signal")
    recency: float = Field(0.0, ge=0, le=1, description="Decay since the latest transcript")
    task_progress: float = Field(0.0, ge=0, le=1, description="Completed share of recent action items")


class QualityAssessment(CamelModel):
    """Quality signal plus the readiness flags the estimator saw"""
    score: float = Field(..., ge=0, le=1, description="Conversation quality in [0,1]")
    readiness_flags: ReadinessFlags = Field(default_factory=ReadinessFlags)
    source: QualitySource = Field(..., description="Which strategy produced the score (llm, rules, none)")


class PipelineHealthScore(CamelModel):
    account_id: str = Field(..., description="Account identifier")
    score: int = Field(..., ge=0, le=100, description="Overall health 0-100")
    label: HealthLabel = Field(..., description="Healthy, Watchlist or At Risk")
    breakdown: HealthBreakdown = Field(..., description="The four weighted sub-scores")
    readiness_flags: ReadinessFlags = Field(..., description="Deal readiness from the MEDDPICC note")
    last_updated_at: datetime = Field(..., description="When the score was computed")

    @classmethod
    def degraded(cls, account_id: str, now: Optional[datetime] = None) -> "PipelineHealthScore":
        """Worst-case placeholder used when an account cannot be scored"""
        return cls(
            account_id=account_id,
            score=0,
            label="At Risk",
            breakdown=HealthBreakdown(),
            readiness_flags=ReadinessFlags(),
            last_updated_at=now or datetime.now(timezone.utc),
        )


class HealthSummary(CamelModel):
    """Dashboard rollup over many accounts"""
    total_accounts: int = Field(..., ge=0)
    average_score: int = Field(..., ge=0, le=100, description="Mean score, rounded half up")
    label_counts: Dict[str, int] = Field(default_factory=dict)
