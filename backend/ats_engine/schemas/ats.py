from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal

from pydantic import BaseModel, BeforeValidator, Field

from ats_engine.services.numbers import safe_count, safe_number, safe_score

Priority = Literal["high", "medium", "low"]

SafeScore = Annotated[int | None, BeforeValidator(safe_score)]
SafeCount = Annotated[int | None, BeforeValidator(safe_count)]
SubScore = Annotated[float, Field(ge=0, le=100), BeforeValidator(safe_number)]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MissingKeyword(BaseModel):
    keyword: str
    priority: Priority
    context: str = Field(default="")


class MissingSkill(BaseModel):
    skill: str
    priority: Priority
    context: str = Field(default="")


class ActionableFeedback(BaseModel):
    priority: Priority
    action: str
    impact: str = Field(default="")


class ScoreBreakdown(BaseModel):
    technicalSkills: SubScore
    experienceRelevance: SubScore
    additionalSkills: SubScore
    formatting: SubScore


class SectionCompleteness(BaseModel):
    present: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)
    score: SafeScore = None


class QuantifiableMetrics(BaseModel):
    hasMetrics: bool = False
    examples: List[str] = Field(default_factory=list)
    score: SafeScore = None


class SkillsAnalysis(BaseModel):
    hardSkills: List[str] = Field(default_factory=list)
    softSkills: List[str] = Field(default_factory=list)
    score: SafeScore = None


class LengthAnalysis(BaseModel):
    pageCount: SafeCount = None
    wordCount: SafeCount = None
    isOptimal: bool = False
    score: SafeScore = None


class StandardHeaders(BaseModel):
    isStandard: bool = True
    nonStandardHeaders: List[str] = Field(default_factory=list)
    score: SafeScore = None


class AtsModelResponse(BaseModel):
    """Upstream ATS answer after validation, with gap lists already canonical."""

    atsScore: int | None = None
    scoreBreakdown: ScoreBreakdown | None = None

    matchedKeywords: List[str] = Field(default_factory=list)
    missingKeywords: List[str] = Field(default_factory=list)
    prioritizedMissingKeywords: List[MissingKeyword] | None = None
    industryKeywords: List[str] | None = None
    missingIndustryKeywords: List[str] | None = None

    matchedSkills: List[str] = Field(default_factory=list)
    missingSkills: List[str] = Field(default_factory=list)
    prioritizedMissingSkills: List[MissingSkill] | None = None

    formattingIssues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    actionableFeedback: List[ActionableFeedback] | None = None

    sectionScores: Dict[str, int] | None = None
    skillMatchPercentage: int | None = None
    gapAnalysis: Dict[str, Any] = Field(default_factory=dict)
    sectionCompleteness: SectionCompleteness | None = None
    quantifiableMetrics: QuantifiableMetrics | None = None
    skillsAnalysis: SkillsAnalysis | None = None
    lengthAnalysis: LengthAnalysis | None = None
    readabilityScore: int | None = None
    atsBlockingElements: List[str] | None = None
    standardHeaders: StandardHeaders | None = None


class SkillMatchDetails(BaseModel):
    skillMatchPercentage: int | None = None
    matchedSkills: List[str] = Field(default_factory=list)
    missingSkills: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    gapAnalysis: Dict[str, Any] = Field(default_factory=dict)
    prioritizedMissingSkills: List[MissingSkill] | None = None


class ComplianceDetails(BaseModel):
    keywordsMatched: List[str] = Field(default_factory=list)
    keywordsMissing: List[str] = Field(default_factory=list)
    formattingIssues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    sectionScores: Dict[str, int] | None = None
    sectionCompleteness: SectionCompleteness | None = None
    quantifiableMetrics: QuantifiableMetrics | None = None
    skillsAnalysis: SkillsAnalysis | None = None
    lengthAnalysis: LengthAnalysis | None = None
    readabilityScore: int | None = None
    atsBlockingElements: List[str] | None = None
    standardHeaders: StandardHeaders | None = None
    industryKeywords: List[str] | None = None
    missingIndustryKeywords: List[str] | None = None
    scoreBreakdown: ScoreBreakdown | None = None
    prioritizedMissingKeywords: List[MissingKeyword] | None = None
    actionableFeedback: List[ActionableFeedback] | None = None


class AtsScores(BaseModel):
    score: int | None = None
    skillMatchDetails: SkillMatchDetails | None = None
    complianceDetails: ComplianceDetails | None = None
    lastAnalyzedAt: datetime = Field(default_factory=_utcnow)
    jobApplicationId: str | None = None
    error: str | None = None

    @property
    def is_soft_failure(self) -> bool:
        return self.error is not None
