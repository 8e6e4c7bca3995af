"""Parsing and validation of the model's structured answers.

The model is asked for a JSON object inside a ```json fenced block. Nothing
about the returned structure is trusted: a missing or unparseable block is a
hard failure, while individual malformed fields only produce warnings and fall
back to empty values so a partially useful answer still reaches the user.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Type

from pydantic import BaseModel, ValidationError

from ats_engine.core.errors import UpstreamFormatError
from ats_engine.schemas.analysis import DetailedResultItem
from ats_engine.schemas.ats import (
    AtsModelResponse,
    LengthAnalysis,
    QuantifiableMetrics,
    ScoreBreakdown,
    SectionCompleteness,
    SkillsAnalysis,
    StandardHeaders,
)
from ats_engine.services.gap_service import extract_actionable_feedback, reconcile_gaps
from ats_engine.services.numbers import safe_score
from ats_engine.services.scoring_service import sanitize_section_scores

logger = logging.getLogger(__name__)

FORMAT_ERROR = "AI failed to return data in the expected JSON format."

REQUIRED_ATS_KEYS = (
    "atsScore",
    "matchedKeywords",
    "missingKeywords",
    "matchedSkills",
    "missingSkills",
    "formattingIssues",
    "recommendations",
)

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)

_NESTED_MODELS: Dict[str, Type[BaseModel]] = {
    "scoreBreakdown": ScoreBreakdown,
    "sectionCompleteness": SectionCompleteness,
    "quantifiableMetrics": QuantifiableMetrics,
    "skillsAnalysis": SkillsAnalysis,
    "lengthAnalysis": LengthAnalysis,
    "standardHeaders": StandardHeaders,
}


@dataclass
class ValidationOutcome:
    response: AtsModelResponse
    warnings: List[str] = field(default_factory=list)


@dataclass
class DetailedResultsOutcome:
    results: Dict[str, DetailedResultItem]
    warnings: List[str] = field(default_factory=list)


def extract_json_block(text: str) -> Dict[str, Any]:
    content = text or ""
    match = _FENCED_JSON.search(content)
    if match:
        try:
            data = json.loads(match.group(1).strip())
        except json.JSONDecodeError as exc:
            raise UpstreamFormatError(f"{FORMAT_ERROR} Parse error: {exc}") from exc
    else:
        start = content.find("{")
        end = content.rfind("}")
        if start == -1 or end <= start:
            raise UpstreamFormatError(FORMAT_ERROR)
        try:
            data = json.loads(content[start : end + 1])
        except json.JSONDecodeError as exc:
            raise UpstreamFormatError(FORMAT_ERROR) from exc

    if not isinstance(data, dict):
        raise UpstreamFormatError(FORMAT_ERROR)
    return data


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error['msg']}" if location else error["msg"]


def _string_list(data: Dict[str, Any], key: str, warnings: List[str], optional: bool = False) -> List[str] | None:
    value = data.get(key)
    if value is None:
        return None if optional else []
    if not isinstance(value, list):
        warnings.append(f"{key}: expected a list of strings")
        return None if optional else []
    items = [" ".join(item.split()) for item in value if isinstance(item, str) and item.strip()]
    if len(items) != len(value):
        warnings.append(f"{key}: dropped {len(value) - len(items)} non-string entries")
    return items


def _nested(data: Dict[str, Any], key: str, warnings: List[str]) -> BaseModel | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        warnings.append(f"{key}: expected an object")
        return None
    try:
        return _NESTED_MODELS[key].model_validate(value)
    except ValidationError as exc:
        warnings.append(f"{key}: {_first_error(exc)}")
        return None


def _optional_score(data: Dict[str, Any], key: str, warnings: List[str]) -> int | None:
    value = data.get(key)
    score = safe_score(value)
    if value is not None and score is None:
        warnings.append(f"{key}: not a finite number")
    return score


def validate_ats_response(data: Dict[str, Any]) -> ValidationOutcome:
    if not isinstance(data, dict):
        raise UpstreamFormatError(FORMAT_ERROR)

    warnings: List[str] = []
    for key in REQUIRED_ATS_KEYS:
        if key not in data:
            warnings.append(f"{key}: missing")

    missing_keywords = reconcile_gaps(data.get("missingKeywords"), "keyword", warnings)
    missing_skills = reconcile_gaps(data.get("missingSkills"), "skill", warnings)
    for key in ("missingKeywords", "missingSkills"):
        if data.get(key) is not None and not isinstance(data.get(key), list):
            warnings.append(f"{key}: expected a list")

    section_scores = data.get("sectionScores")
    sanitized_sections = sanitize_section_scores(section_scores)
    if section_scores is not None and sanitized_sections is None:
        warnings.append("sectionScores: no usable numeric entries")

    gap_analysis = data.get("gapAnalysis")
    if gap_analysis is not None and not isinstance(gap_analysis, dict):
        warnings.append("gapAnalysis: expected an object")
        gap_analysis = None

    response = AtsModelResponse(
        atsScore=_optional_score(data, "atsScore", warnings),
        scoreBreakdown=_nested(data, "scoreBreakdown", warnings),
        matchedKeywords=_string_list(data, "matchedKeywords", warnings),
        missingKeywords=missing_keywords.flat,
        prioritizedMissingKeywords=missing_keywords.prioritized,
        industryKeywords=_string_list(data, "industryKeywords", warnings, optional=True),
        missingIndustryKeywords=_string_list(data, "missingIndustryKeywords", warnings, optional=True),
        matchedSkills=_string_list(data, "matchedSkills", warnings),
        missingSkills=missing_skills.flat,
        prioritizedMissingSkills=missing_skills.prioritized,
        formattingIssues=_string_list(data, "formattingIssues", warnings),
        recommendations=_string_list(data, "recommendations", warnings),
        actionableFeedback=extract_actionable_feedback(data.get("actionableFeedback"), warnings),
        sectionScores=sanitized_sections,
        skillMatchPercentage=_optional_score(data, "skillMatchPercentage", warnings),
        gapAnalysis=gap_analysis or {},
        sectionCompleteness=_nested(data, "sectionCompleteness", warnings),
        quantifiableMetrics=_nested(data, "quantifiableMetrics", warnings),
        skillsAnalysis=_nested(data, "skillsAnalysis", warnings),
        lengthAnalysis=_nested(data, "lengthAnalysis", warnings),
        readabilityScore=_optional_score(data, "readabilityScore", warnings),
        atsBlockingElements=_string_list(data, "atsBlockingElements", warnings, optional=True),
        standardHeaders=_nested(data, "standardHeaders", warnings),
    )

    for warning in warnings:
        logger.warning("ATS response validation warning: %s", warning)
    return ValidationOutcome(response=response, warnings=warnings)


def validate_detailed_results(data: Dict[str, Any]) -> DetailedResultsOutcome:
    if not isinstance(data, dict):
        raise UpstreamFormatError("AI analysis did not return a valid object structure.")

    results: Dict[str, DetailedResultItem] = {}
    warnings: List[str] = []
    for key, value in data.items():
        if not isinstance(value, dict):
            warnings.append(f"{key}: expected an object")
            continue
        item = dict(value)
        item.setdefault("checkName", str(key))
        if item.get("priority") not in ("high", "medium", "low"):
            item["priority"] = "medium"
        if not isinstance(item.get("issues"), list):
            item["issues"] = []
        if not isinstance(item.get("suggestions"), list):
            item["suggestions"] = []
        item["issues"] = [issue for issue in item["issues"] if isinstance(issue, str)]
        item["suggestions"] = [tip for tip in item["suggestions"] if isinstance(tip, str)]
        try:
            results[str(key)] = DetailedResultItem.model_validate(item)
        except ValidationError as exc:
            warnings.append(f"{key}: {_first_error(exc)}")

    for warning in warnings:
        logger.warning("Detailed analysis validation warning: %s", warning)
    return DetailedResultsOutcome(results=results, warnings=warnings)
