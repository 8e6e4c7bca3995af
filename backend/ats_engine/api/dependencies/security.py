from fastapi import Header, Request

from ats_engine.core.config import settings
from ats_engine.core.errors import AuthenticationError, ValidationError
from ats_engine.services.ai_service import TextGenerator
from ats_engine.services.analysis_manager import AnalysisManager
from ats_engine.services.store import Store


def enforce_optional_app_key(x_api_key: str | None = Header(default=None, alias="x-api-key")) -> None:
    if settings.app_api_key and x_api_key != settings.app_api_key:
        raise AuthenticationError("Unauthorized request.")


def get_current_user_id(x_user_id: str | None = Header(default=None, alias="x-user-id")) -> str:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AuthenticationError("User not authenticated")
    return user_id


def validate_job_description_length(job_description: str | None) -> None:
    if job_description and len(job_description) > max(1000, settings.max_job_description_chars):
        raise ValidationError(
            f"Job description exceeds the limit of {settings.max_job_description_chars} characters."
        )


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_manager(request: Request) -> AnalysisManager:
    return request.app.state.manager


def get_generator(request: Request) -> TextGenerator:
    return request.app.state.generate
