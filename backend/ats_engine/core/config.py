from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ai_provider: Literal["groq", "gemini", "openai", "openrouter"] = "gemini"
    ai_timeout_seconds: int = 90
    ai_temperature: float = 0.2

    groq_api_key: str = ""
    groq_model: str = "llama-3.1-8b-instant"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    openrouter_api_key: str = ""
    openrouter_model: str = "meta-llama/llama-3.1-8b-instruct:free"

    # Upstream overall score is distrusted when it differs from the weighted
    # breakdown by more than this many points.
    score_disagreement_threshold: int = 10
    weight_technical_skills: float = 0.40
    weight_experience_relevance: float = 0.30
    weight_additional_skills: float = 0.20
    weight_formatting: float = 0.10

    persistence_write_attempts: int = 2

    app_api_key: str = ""
    max_job_description_chars: int = 15000

    frontend_origin: str = "http://localhost:5173"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
