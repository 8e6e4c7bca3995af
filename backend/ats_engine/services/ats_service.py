import logging
from typing import Any, List, Mapping

from ats_engine.schemas.ats import AtsModelResponse, AtsScores, ComplianceDetails, SkillMatchDetails
from ats_engine.schemas.resume import ResumeDocument
from ats_engine.services.ai_service import TextGenerator, build_ats_prompt, generate_text
from ats_engine.services.response_validator import extract_json_block, validate_ats_response
from ats_engine.services.scoring_service import reconcile_overall_score, skill_match_percentage
from ats_engine.services.text_service import clean_text, resume_to_text

logger = logging.getLogger(__name__)

SKILL_RECOMMENDATION_TERMS = ("skill", "experience", "qualification")


def _skill_recommendations(recommendations: List[str]) -> List[str]:
    return [
        recommendation
        for recommendation in recommendations
        if any(term in recommendation.lower() for term in SKILL_RECOMMENDATION_TERMS)
    ]


def build_ats_scores(
    response: AtsModelResponse,
    job_application_id: str | None = None,
) -> AtsScores:
    skill_details = SkillMatchDetails(
        skillMatchPercentage=skill_match_percentage(
            response.skillMatchPercentage,
            response.matchedSkills,
            response.missingSkills,
        ),
        matchedSkills=response.matchedSkills,
        missingSkills=response.missingSkills,
        recommendations=_skill_recommendations(response.recommendations),
        gapAnalysis=response.gapAnalysis,
        prioritizedMissingSkills=response.prioritizedMissingSkills,
    )
    compliance = ComplianceDetails(
        keywordsMatched=response.matchedKeywords,
        keywordsMissing=response.missingKeywords,
        formattingIssues=response.formattingIssues,
        suggestions=response.recommendations,
        sectionScores=response.sectionScores,
        sectionCompleteness=response.sectionCompleteness,
        quantifiableMetrics=response.quantifiableMetrics,
        skillsAnalysis=response.skillsAnalysis,
        lengthAnalysis=response.lengthAnalysis,
        readabilityScore=response.readabilityScore,
        atsBlockingElements=response.atsBlockingElements,
        standardHeaders=response.standardHeaders,
        industryKeywords=response.industryKeywords,
        missingIndustryKeywords=response.missingIndustryKeywords,
        scoreBreakdown=response.scoreBreakdown,
        prioritizedMissingKeywords=response.prioritizedMissingKeywords,
        actionableFeedback=response.actionableFeedback,
    )
    return AtsScores(
        score=reconcile_overall_score(response.atsScore, response.scoreBreakdown),
        skillMatchDetails=skill_details,
        complianceDetails=compliance,
        jobApplicationId=job_application_id,
    )


async def analyze_resume(
    resume: ResumeDocument | Mapping[str, Any],
    job_description: str | None = None,
    job_application_id: str | None = None,
    generate: TextGenerator | None = None,
) -> AtsScores:
    """Score a resume with the model, never raising.

    Any failure (model call, unusable answer) is reported through
    ``AtsScores.error`` with empty score and details.
    """
    generator = generate or generate_text
    try:
        if isinstance(resume, ResumeDocument):
            resume_json = resume.model_dump(mode="json", exclude_none=True)
        else:
            resume_json = dict(resume)
        resume_text = resume_to_text(resume_json)
        description = clean_text(job_description) if job_description else None

        prompt = build_ats_prompt(resume_text, resume_json, description)
        raw_response = await generator(prompt)
        outcome = validate_ats_response(extract_json_block(raw_response))
        scores = build_ats_scores(outcome.response, job_application_id)
    except Exception as exc:
        logger.exception("ATS analysis call failed")
        return AtsScores(
            score=None,
            skillMatchDetails=None,
            complianceDetails=None,
            jobApplicationId=job_application_id,
            error=str(exc) or "Failed to analyze with the AI model",
        )

    if outcome.warnings:
        logger.info("ATS analysis completed with %d validation warning(s)", len(outcome.warnings))
    return scores
