import logging

from fastapi import APIRouter, Depends

from ats_engine.api.dependencies.security import (
    enforce_optional_app_key,
    get_current_user_id,
    get_generator,
    get_store,
    validate_job_description_length,
)
from ats_engine.core.errors import NotFoundError
from ats_engine.schemas.analysis import (
    CvUpdateRequest,
    JobApplication,
    JobApplicationRequest,
    SectionAnalysisResponse,
    StoredCv,
)
from ats_engine.services.ai_service import TextGenerator
from ats_engine.services.section_cache import analyze_sections
from ats_engine.services.store import Store
from ats_engine.services.text_service import clean_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["cv"], dependencies=[Depends(enforce_optional_app_key)])


@router.put("/cv", response_model=StoredCv)
async def save_cv(
    payload: CvUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    cv = await store.save_cv(user_id, payload.cvJson)
    logger.info("Stored CV for user %s, section analysis cache cleared", user_id)
    return cv


@router.get("/cv", response_model=StoredCv)
async def get_cv(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    cv = await store.get_cv(user_id)
    if cv is None:
        raise NotFoundError("CV not found")
    return cv


@router.post("/cv/analyze-sections", response_model=SectionAnalysisResponse)
async def analyze_cv_sections(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    generate: TextGenerator = Depends(get_generator),
):
    return await analyze_sections(store, user_id, generate)


@router.put("/job-applications/{job_application_id}", response_model=JobApplication)
async def save_job_application(
    job_application_id: str,
    payload: JobApplicationRequest,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    validate_job_description_length(payload.jobDescriptionText)
    description = clean_text(payload.jobDescriptionText) if payload.jobDescriptionText else None

    job = JobApplication(
        id=job_application_id,
        userId=user_id,
        jobTitle=payload.jobTitle,
        companyName=payload.companyName,
        jobDescriptionText=description or None,
        draftCvJson=payload.draftCvJson,
    )
    return await store.save_job_application(job)
