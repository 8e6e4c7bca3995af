from fastapi import APIRouter, Depends

from ats_engine.api.dependencies.security import enforce_optional_app_key, get_current_user_id, get_manager
from ats_engine.schemas.analysis import (
    AnalysisRecord,
    AtsScoresResponse,
    MessageResponse,
    RescanRequest,
    ScanRequest,
    ScanStartedResponse,
)
from ats_engine.services.analysis_manager import AnalysisManager

router = APIRouter(prefix="/api/ats", tags=["ats"], dependencies=[Depends(enforce_optional_app_key)])


def _scores_response(record: AnalysisRecord | None) -> AtsScoresResponse:
    if record is None:
        return AtsScoresResponse()
    return AtsScoresResponse(analysisId=record.id, status=record.status, atsScores=record.atsScores)


@router.post("/scan", response_model=ScanStartedResponse)
async def scan_ats(
    payload: ScanRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    payload = payload or ScanRequest()
    analysis_id = await manager.start_ats_scan(
        user_id,
        job_application_id=payload.jobApplicationId,
        analysis_id=payload.analysisId,
    )
    return ScanStartedResponse(analysisId=analysis_id)


@router.post("/scan/{analysis_id}", response_model=ScanStartedResponse)
async def scan_ats_for_analysis(
    analysis_id: str,
    payload: RescanRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    payload = payload or RescanRequest()
    started_id = await manager.start_ats_scan(
        user_id,
        job_application_id=payload.jobApplicationId,
        analysis_id=analysis_id,
    )
    return ScanStartedResponse(analysisId=started_id)


@router.get("/scores/{analysis_id}", response_model=AtsScoresResponse)
async def get_ats_scores(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    return _scores_response(await manager.get_ats_scores(user_id, analysis_id))


@router.get("/job/{job_application_id}", response_model=AtsScoresResponse)
async def get_ats_for_job(
    job_application_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    return _scores_response(await manager.find_ats_for_job(user_id, job_application_id))


@router.get("/latest", response_model=AtsScoresResponse)
async def get_latest_ats(
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    return _scores_response(await manager.latest_general_ats(user_id))


@router.delete("/{analysis_id}", response_model=MessageResponse)
async def delete_ats(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    await manager.delete_analysis(user_id, analysis_id)
    return MessageResponse(message="ATS analysis deleted successfully")
