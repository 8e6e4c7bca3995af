import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from ats_engine.core.config import settings
from ats_engine.schemas.analysis import DetailedResultItem
from ats_engine.schemas.ats import ScoreBreakdown
from ats_engine.services.numbers import safe_int, safe_number, safe_ratio_percentage, safe_score

logger = logging.getLogger(__name__)

STATUS_SCORES = {
    "pass": 100,
    "warning": 50,
    "fail": 0,
    "not-applicable": 100,
}

PRIORITY_WEIGHTS = {
    "high": 3,
    "medium": 2,
    "low": 1,
}


@dataclass
class CalculatedScores:
    overallScore: int = 0
    categoryScores: Dict[str, int] = field(default_factory=dict)
    issueCount: int = 0


def _category_weights() -> Dict[str, float]:
    return {
        "technicalSkills": settings.weight_technical_skills,
        "experienceRelevance": settings.weight_experience_relevance,
        "additionalSkills": settings.weight_additional_skills,
        "formatting": settings.weight_formatting,
    }


def _breakdown_values(breakdown: ScoreBreakdown | Mapping[str, Any] | None) -> Dict[str, Any] | None:
    if breakdown is None:
        return None
    if isinstance(breakdown, ScoreBreakdown):
        return breakdown.model_dump()
    if isinstance(breakdown, Mapping):
        return dict(breakdown)
    return None


def compute_weighted_score(breakdown: ScoreBreakdown | Mapping[str, Any] | None) -> int | None:
    values = _breakdown_values(breakdown)
    if values is None:
        return None

    total = 0.0
    for category, weight in _category_weights().items():
        value = safe_number(values.get(category))
        if value is None:
            return None
        total += weight * value
    return safe_score(total)


def reconcile_overall_score(
    suggested: Any,
    breakdown: ScoreBreakdown | Mapping[str, Any] | None,
    threshold: int | None = None,
) -> int | None:
    """Pick the overall score to persist.

    The model's single number is kept when it roughly agrees with its own
    breakdown. When the two differ by more than ``threshold`` points the
    weighted breakdown wins.
    """
    limit = settings.score_disagreement_threshold if threshold is None else threshold
    suggested_score = safe_score(suggested)
    weighted = compute_weighted_score(breakdown)

    if weighted is None:
        return suggested_score
    if suggested_score is None:
        return weighted
    if abs(suggested_score - weighted) > limit:
        logger.info(
            "Upstream score %s disagrees with weighted breakdown %s by more than %s points, using weighted",
            suggested_score,
            weighted,
            limit,
        )
        return weighted
    return suggested_score


def skill_match_percentage(reported: Any, matched_skills: Any, missing_skills: Any) -> int | None:
    reported_score = safe_score(reported)
    if reported_score is not None:
        return reported_score

    matched = len(matched_skills) if isinstance(matched_skills, list) else 0
    missing = len(missing_skills) if isinstance(missing_skills, list) else 0
    return safe_ratio_percentage(matched, matched + missing)


def sanitize_section_scores(section_scores: Any) -> Dict[str, int] | None:
    if not isinstance(section_scores, Mapping):
        return None
    cleaned = {
        str(section): score
        for section, score in ((key, safe_score(value)) for key, value in section_scores.items())
        if score is not None
    }
    return cleaned or None


def calculate_scores(results: Mapping[str, DetailedResultItem] | None) -> CalculatedScores:
    scores = CalculatedScores()
    if not results:
        return scores

    total_weight = 0
    weighted_sum = 0.0
    for category, result in results.items():
        category_score = safe_score(result.score)
        if category_score is None:
            category_score = STATUS_SCORES.get(result.status, 0)

        weight = PRIORITY_WEIGHTS.get(result.priority, PRIORITY_WEIGHTS["medium"])
        total_weight += weight
        weighted_sum += category_score * weight

        scores.categoryScores[category] = category_score
        scores.issueCount += len(result.issues)

    scores.overallScore = safe_int(weighted_sum / total_weight, 0) if total_weight else 0
    return scores
