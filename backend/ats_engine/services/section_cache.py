import logging
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from ats_engine.core.errors import ValidationError
from ats_engine.schemas.analysis import AnalysisCache, SectionAnalysisResponse, SectionFeedback
from ats_engine.services.ai_service import TextGenerator, build_section_feedback_prompt, generate_text
from ats_engine.services.response_validator import extract_json_block
from ats_engine.services.store import Store
from ats_engine.services.text_service import resume_content_hash, section_entry_texts

logger = logging.getLogger(__name__)


def _feedback_item(value: Any) -> SectionFeedback:
    if isinstance(value, dict):
        try:
            return SectionFeedback.model_validate(value)
        except PydanticValidationError:
            logger.warning("Discarding malformed section feedback item")
    return SectionFeedback()


def align_feedback(items: Any, expected: int, section: str = "") -> List[SectionFeedback]:
    """Return exactly ``expected`` feedback items, one per resume entry."""
    feedback = [_feedback_item(item) for item in items] if isinstance(items, list) else []
    if len(feedback) != expected:
        logger.warning(
            "Section %s: model returned %d feedback item(s) for %d entries",
            section or "?",
            len(feedback),
            expected,
        )
    if len(feedback) < expected:
        feedback.extend(SectionFeedback() for _ in range(expected - len(feedback)))
    return feedback[:expected]


async def analyze_sections(
    store: Store,
    user_id: str,
    generate: TextGenerator | None = None,
) -> SectionAnalysisResponse:
    stored_cv = await store.get_cv(user_id)
    if stored_cv is None or stored_cv.cvJson.is_empty():
        raise ValidationError("No CV found. Please upload a CV first.")

    cv_hash = resume_content_hash(stored_cv.cvJson)
    cache = stored_cv.analysisCache
    if cache is not None and cache.cvHash == cv_hash:
        logger.info("Section analysis cache hit for user %s", user_id)
        return SectionAnalysisResponse(
            cached=True,
            cvHash=cv_hash,
            analyses=cache.analyses,
            analyzedAt=cache.analyzedAt,
        )

    logger.info("Section analysis cache miss for user %s", user_id)
    sections = section_entry_texts(stored_cv.cvJson)
    generator = generate or generate_text
    data = extract_json_block(await generator(build_section_feedback_prompt(sections)))

    analyses: Dict[str, List[SectionFeedback]] = {
        section: align_feedback(data.get(section), len(entries), section)
        for section, entries in sections.items()
    }
    cache = AnalysisCache(cvHash=cv_hash, analyses=analyses)
    await store.set_analysis_cache(user_id, cache)
    return SectionAnalysisResponse(
        cached=False,
        cvHash=cv_hash,
        analyses=cache.analyses,
        analyzedAt=cache.analyzedAt,
    )
