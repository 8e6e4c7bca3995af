import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping

import httpx
from openai import AsyncOpenAI

from ats_engine.core.config import settings
from ats_engine.core.errors import BadGatewayError

logger = logging.getLogger(__name__)

TextGenerator = Callable[[str], Awaitable[str]]

JSON_BLOCK_INSTRUCTION = (
    "IMPORTANT: Your response MUST be a valid JSON object wrapped in triple backticks "
    "(```json ... ```). Do not include any additional text outside the JSON block."
)

ATS_PROMPT = """
You are an expert ATS (Applicant Tracking System) analyzer. Analyze the CV below for ATS
compatibility and, when a job description is provided, for how well it matches that job.

Scoring:
- "atsScore" (0-100) is the resume matching percentage.
- "scoreBreakdown" scores four categories 0-100: technicalSkills (40% weight),
  experienceRelevance (30%), additionalSkills (20%, nice-to-have skills) and formatting (10%).
  The atsScore should be consistent with this breakdown.

Gaps:
- "missingKeywords" and "missingSkills" are lists of objects
  {"keyword"|"skill": "...", "priority": "high"|"medium"|"low", "context": "..."}.
  high = explicitly required, its absence likely causes automatic rejection;
  medium = listed but not mandatory; low = nice-to-have or implied.
- "actionableFeedback" is a list of {"priority", "action", "impact"} items.

Also report: matchedKeywords, matchedSkills, formattingIssues, recommendations,
sectionScores (object of 0-100 scores per CV section), skillMatchPercentage, gapAnalysis,
sectionCompleteness {present, missing, score}, quantifiableMetrics {hasMetrics, examples, score},
skillsAnalysis {hardSkills, softSkills, score}, lengthAnalysis {pageCount, wordCount, isOptimal, score},
readabilityScore, atsBlockingElements, standardHeaders {isStandard, nonStandardHeaders, score}.
""".strip()

DETAILED_ANALYSIS_PROMPT = """
Review the CV below covering content, structure and language. Return a single JSON object
whose keys are check identifiers (for example "impactQuantification", "grammar",
"keywordRelevance", "activeVoice", "lengthAndStructure", "contactInformation").
Each value is an object with:
- "checkName": human-readable name of the check
- "score": optional 0-100 score, higher is better
- "issues": list of specific problems (empty list if none)
- "suggestions": list of concrete improvements
- "status": "pass", "fail", "warning" or "not-applicable"
- "priority": "high", "medium" or "low" urgency of fixing this check
""".strip()

SECTION_FEEDBACK_PROMPT = """
You are a career coach reviewing individual CV entries. For every section below, return one
feedback item per entry, in the same order as the entries are given:
{"<section>": [{"needsImprovement": true|false, "feedback": "..."}, ...], ...}
Keep each feedback short and actionable. Use an empty string when nothing needs to change.
""".strip()


def build_ats_prompt(resume_text: str, resume_json: Mapping[str, Any], job_description: str | None) -> str:
    parts = [
        ATS_PROMPT,
        f"**CV Content:**\n{resume_text}",
        f"**CV JSON Structure:**\n{json.dumps(resume_json, ensure_ascii=False, indent=2)}",
    ]
    if job_description:
        parts.append(
            f"**Job Description:**\n{job_description}\n\n"
            "Analyze the CV specifically against this job description."
        )
    else:
        parts.append(
            "**Note:** No job description provided. Perform a general ATS compatibility analysis "
            "focusing on structure, formatting and keyword optimization; use industryKeywords and "
            "missingIndustryKeywords for the keyword assessment."
        )
    parts.append(JSON_BLOCK_INSTRUCTION)
    return "\n\n".join(parts)


def build_detailed_analysis_prompt(resume_text: str) -> str:
    return "\n\n".join([DETAILED_ANALYSIS_PROMPT, f"**CV Content:**\n{resume_text}", JSON_BLOCK_INSTRUCTION])


def build_section_feedback_prompt(sections: Mapping[str, List[str]]) -> str:
    payload = {name: entries for name, entries in sections.items() if entries}
    return "\n\n".join(
        [
            SECTION_FEEDBACK_PROMPT,
            f"**Entries:**\n{json.dumps(payload, ensure_ascii=False, indent=2)}",
            JSON_BLOCK_INSTRUCTION,
        ]
    )


async def _call_openai_compatible(
    *,
    api_key: str,
    model: str,
    prompt: str,
    temperature: float,
    base_url: str | None = None,
) -> str:
    client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=settings.ai_timeout_seconds)
    completion = await client.chat.completions.create(
        model=model,
        temperature=temperature,
        messages=[{"role": "user", "content": prompt}],
    )
    content = completion.choices[0].message.content if completion.choices else None
    if not content:
        raise BadGatewayError("AI content generation failed or was blocked: No content generated")
    return content


def _extract_gemini_text(response_body: Dict[str, Any]) -> str:
    candidates = response_body.get("candidates") or []
    for candidate in candidates:
        content = candidate.get("content") or {}
        for part in content.get("parts") or []:
            text = part.get("text")
            if text:
                return text
    return ""


async def _call_gemini(prompt: str, temperature: float) -> str:
    if not settings.gemini_api_key:
        raise BadGatewayError("GEMINI_API_KEY is not configured.")

    url = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        f"{settings.gemini_model}:generateContent"
    )
    body = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": temperature},
    }

    async with httpx.AsyncClient(timeout=settings.ai_timeout_seconds) as client:
        response = await client.post(url, params={"key": settings.gemini_api_key}, json=body)
        response.raise_for_status()
        response_body = response.json()

    content = _extract_gemini_text(response_body)
    if not content:
        block_reason = (response_body.get("promptFeedback") or {}).get("blockReason")
        raise BadGatewayError(
            f"AI content generation failed or was blocked: {block_reason or 'No content generated'}"
        )
    return content


async def generate_text(prompt: str, temperature: float | None = None) -> str:
    provider = settings.ai_provider.lower()
    final_temperature = settings.ai_temperature if temperature is None else temperature
    logger.debug("Calling %s with a %d character prompt", provider, len(prompt))

    if provider == "groq":
        if not settings.groq_api_key:
            raise BadGatewayError("GROQ_API_KEY is not configured.")
        return await _call_openai_compatible(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            prompt=prompt,
            temperature=final_temperature,
            base_url="https://api.groq.com/openai/v1",
        )
    if provider == "gemini":
        return await _call_gemini(prompt=prompt, temperature=final_temperature)
    if provider == "openai":
        if not settings.openai_api_key:
            raise BadGatewayError("OPENAI_API_KEY is not configured.")
        return await _call_openai_compatible(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            prompt=prompt,
            temperature=final_temperature,
        )
    if provider == "openrouter":
        if not settings.openrouter_api_key:
            raise BadGatewayError("OPENROUTER_API_KEY is not configured.")
        return await _call_openai_compatible(
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_model,
            prompt=prompt,
            temperature=final_temperature,
            base_url="https://openrouter.ai/api/v1",
        )
    raise BadGatewayError(
        f"AI_PROVIDER '{settings.ai_provider}' is not supported. Use: groq, gemini, openai or openrouter."
    )
