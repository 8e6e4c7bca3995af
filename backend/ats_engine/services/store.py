"""In-process persistence for analysis records, stored CVs and job applications.

Records are kept as pydantic models and handed out as deep copies so callers
never mutate stored state by accident; every write goes through the methods
below under a single lock.
"""

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List

from ats_engine.schemas.analysis import AnalysisCache, AnalysisRecord, JobApplication, StoredCv
from ats_engine.schemas.resume import ResumeDocument


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Store:
    def __init__(self) -> None:
        self._analyses: Dict[str, AnalysisRecord] = {}
        self._cvs: Dict[str, StoredCv] = {}
        self._job_applications: Dict[str, JobApplication] = {}
        self._lock = Lock()

    async def insert_analysis(self, record: AnalysisRecord) -> AnalysisRecord:
        with self._lock:
            self._analyses[record.id] = record.model_copy(deep=True)
        return record

    async def get_analysis(self, analysis_id: str) -> AnalysisRecord | None:
        with self._lock:
            record = self._analyses.get(analysis_id)
            return record.model_copy(deep=True) if record else None

    async def update_analysis(self, analysis_id: str, **fields: Any) -> AnalysisRecord | None:
        with self._lock:
            record = self._analyses.get(analysis_id)
            if record is None:
                return None
            data = record.model_dump()
            data.update(fields)
            updated = AnalysisRecord.model_validate(data)
            self._analyses[analysis_id] = updated
            return updated.model_copy(deep=True)

    async def delete_analysis(self, analysis_id: str) -> bool:
        with self._lock:
            return self._analyses.pop(analysis_id, None) is not None

    async def find_latest_ats(self, user_id: str, job_application_id: str | None) -> AnalysisRecord | None:
        with self._lock:
            candidates: List[AnalysisRecord] = [
                record
                for record in self._analyses.values()
                if record.userId == user_id
                and record.atsScores is not None
                and record.atsScores.jobApplicationId == job_application_id
            ]
            if not candidates:
                return None
            latest = max(candidates, key=lambda record: record.atsScores.lastAnalyzedAt)
            return latest.model_copy(deep=True)

    async def get_cv(self, user_id: str) -> StoredCv | None:
        with self._lock:
            cv = self._cvs.get(user_id)
            return cv.model_copy(deep=True) if cv else None

    async def save_cv(self, user_id: str, resume: ResumeDocument) -> StoredCv:
        # New content always drops the section cache.
        cv = StoredCv(userId=user_id, cvJson=resume.model_copy(deep=True), analysisCache=None, updatedAt=_now())
        with self._lock:
            self._cvs[user_id] = cv
        return cv.model_copy(deep=True)

    async def set_analysis_cache(self, user_id: str, cache: AnalysisCache | None) -> None:
        with self._lock:
            cv = self._cvs.get(user_id)
            if cv is not None:
                cv.analysisCache = cache.model_copy(deep=True) if cache else None

    async def get_job_application(self, user_id: str, job_application_id: str) -> JobApplication | None:
        with self._lock:
            job = self._job_applications.get(job_application_id)
            if job is None or job.userId != user_id:
                return None
            return job.model_copy(deep=True)

    async def save_job_application(self, job: JobApplication) -> JobApplication:
        with self._lock:
            self._job_applications[job.id] = job.model_copy(deep=True)
        return job
