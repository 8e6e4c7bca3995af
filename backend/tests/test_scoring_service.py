import math

from ats_engine.schemas.analysis import DetailedResultItem
from ats_engine.schemas.ats import ScoreBreakdown
from ats_engine.services.scoring_service import (
    calculate_scores,
    compute_weighted_score,
    reconcile_overall_score,
    sanitize_section_scores,
    skill_match_percentage,
)

EVEN_FIFTY = {"technicalSkills": 50, "experienceRelevance": 50, "additionalSkills": 50, "formatting": 50}


def test_weighted_score_uses_category_weights():
    breakdown = {"technicalSkills": 100, "experienceRelevance": 0, "additionalSkills": 0, "formatting": 0}

    assert compute_weighted_score(breakdown) == 40
    assert compute_weighted_score(ScoreBreakdown(**breakdown)) == 40


def test_weighted_score_needs_every_category():
    assert compute_weighted_score(None) is None
    assert compute_weighted_score({"technicalSkills": 90}) is None
    assert compute_weighted_score({**EVEN_FIFTY, "formatting": math.nan}) is None


def test_reconcile_prefers_weighted_score_on_large_disagreement():
    assert reconcile_overall_score(65, EVEN_FIFTY) == 50


def test_reconcile_keeps_suggested_score_when_close():
    assert reconcile_overall_score(55, EVEN_FIFTY) == 55
    assert reconcile_overall_score(60, EVEN_FIFTY) == 60


def test_reconcile_threshold_can_be_overridden():
    assert reconcile_overall_score(55, EVEN_FIFTY, threshold=3) == 50


def test_reconcile_falls_back_when_one_side_is_missing():
    assert reconcile_overall_score(70, None) == 70
    assert reconcile_overall_score(None, EVEN_FIFTY) == 50
    assert reconcile_overall_score("n/a", None) is None


def test_skill_match_percentage_prefers_reported_value():
    assert skill_match_percentage(88, ["a"], ["b"]) == 88


def test_skill_match_percentage_derived_from_lists():
    assert skill_match_percentage(None, ["a", "b", "c"], ["d"]) == 75


def test_skill_match_percentage_with_no_skills_is_undefined():
    assert skill_match_percentage(None, [], []) is None
    assert skill_match_percentage(math.nan, None, None) is None


def test_section_scores_drop_non_numeric_entries():
    assert sanitize_section_scores({"work": 80, "skills": "high", "education": math.inf}) == {"work": 80}
    assert sanitize_section_scores({"skills": None}) is None
    assert sanitize_section_scores(["work"]) is None


def test_calculate_scores_weights_by_priority():
    results = {
        "impact": DetailedResultItem(checkName="Impact", score=40, status="warning", priority="high", issues=["a", "b"]),
        "grammar": DetailedResultItem(checkName="Grammar", status="pass", priority="low"),
        "keywords": DetailedResultItem(checkName="Keywords", status="fail", priority="medium", issues=["c"]),
    }

    scores = calculate_scores(results)

    # (40*3 + 100*1 + 0*2) / 6
    assert scores.overallScore == 37
    assert scores.categoryScores == {"impact": 40, "grammar": 100, "keywords": 0}
    assert scores.issueCount == 3


def test_calculate_scores_with_no_results():
    scores = calculate_scores({})

    assert scores.overallScore == 0
    assert scores.categoryScores == {}
    assert scores.issueCount == 0
