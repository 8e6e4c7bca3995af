import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from ats_engine.schemas.ats import AtsScores, Priority, SafeScore
from ats_engine.schemas.resume import ResumeDocument

AnalysisStatus = Literal["pending", "completed", "failed"]
CheckStatus = Literal["pass", "fail", "warning", "not-applicable"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return str(uuid.uuid4())


class DetailedResultItem(BaseModel):
    checkName: str
    score: SafeScore = None
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    status: CheckStatus
    priority: Priority = "medium"


class AnalysisRecord(BaseModel):
    id: str = Field(default_factory=new_record_id)
    userId: str
    status: AnalysisStatus = "pending"
    overallScore: int = 0
    categoryScores: Dict[str, int] = Field(default_factory=dict)
    issueCount: int = 0
    detailedResults: Dict[str, DetailedResultItem] = Field(default_factory=dict)
    atsScores: AtsScores | None = None
    createdAt: datetime = Field(default_factory=_utcnow)
    analysisDate: datetime = Field(default_factory=_utcnow)
    errorInfo: str | None = None


class SectionFeedback(BaseModel):
    needsImprovement: bool = False
    feedback: str = Field(default="")


class AnalysisCache(BaseModel):
    cvHash: str
    analyses: Dict[str, List[SectionFeedback]] = Field(default_factory=dict)
    analyzedAt: datetime = Field(default_factory=_utcnow)


class StoredCv(BaseModel):
    userId: str
    cvJson: ResumeDocument
    analysisCache: AnalysisCache | None = None
    updatedAt: datetime = Field(default_factory=_utcnow)


class JobApplication(BaseModel):
    id: str
    userId: str
    jobTitle: str | None = None
    companyName: str | None = None
    jobDescriptionText: str | None = None
    draftCvJson: ResumeDocument | None = None


class ScanRequest(BaseModel):
    jobApplicationId: str | None = None
    analysisId: str | None = None


class RescanRequest(BaseModel):
    jobApplicationId: str | None = None


class ScanStartedResponse(BaseModel):
    message: str = "ATS analysis started"
    analysisId: str


class AtsScoresResponse(BaseModel):
    analysisId: str | None = None
    status: AnalysisStatus | None = None
    atsScores: AtsScores | None = None


class CvUpdateRequest(BaseModel):
    cvJson: ResumeDocument


class JobApplicationRequest(BaseModel):
    jobTitle: str | None = None
    companyName: str | None = None
    jobDescriptionText: str | None = None
    draftCvJson: ResumeDocument | None = None


class DetailedAnalysisRequest(BaseModel):
    cvJson: ResumeDocument | None = None


class SectionAnalysisResponse(BaseModel):
    cached: bool
    cvHash: str
    analyses: Dict[str, List[SectionFeedback]]
    analyzedAt: datetime


class MessageResponse(BaseModel):
    message: str
    details: Dict[str, Any] | None = None
