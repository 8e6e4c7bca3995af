from fastapi import APIRouter, Depends

from ats_engine.api.dependencies.security import enforce_optional_app_key, get_current_user_id, get_manager
from ats_engine.schemas.analysis import AnalysisRecord, DetailedAnalysisRequest, MessageResponse, ScanStartedResponse
from ats_engine.services.analysis_manager import AnalysisManager

router = APIRouter(prefix="/api/analysis", tags=["analysis"], dependencies=[Depends(enforce_optional_app_key)])


@router.post("", status_code=202, response_model=ScanStartedResponse)
async def start_analysis(
    payload: DetailedAnalysisRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    resume = payload.cvJson if payload else None
    analysis_id = await manager.start_detailed_analysis(user_id, resume)
    return ScanStartedResponse(message="Analysis started", analysisId=analysis_id)


@router.get("/{analysis_id}", response_model=AnalysisRecord)
async def get_analysis(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    return await manager.get_analysis(user_id, analysis_id)


@router.delete("/{analysis_id}", response_model=MessageResponse)
async def delete_analysis(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: AnalysisManager = Depends(get_manager),
):
    await manager.delete_analysis(user_id, analysis_id)
    return MessageResponse(message="Analysis deleted successfully")
