"""Lifecycle of analysis records: creation, background scoring and lookup.

A record is created (or reset) in ``pending`` synchronously and its id is
returned to the caller right away. The scoring coroutine is spawned with
``asyncio.create_task`` and writes its outcome back to that id exactly once,
so concurrent scans never share a record.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Set

from pydantic import BaseModel

from ats_engine.core.config import settings
from ats_engine.core.errors import AuthorizationError, NotFoundError, ValidationError
from ats_engine.schemas.analysis import AnalysisRecord
from ats_engine.schemas.resume import ResumeDocument
from ats_engine.services.ai_service import TextGenerator, build_detailed_analysis_prompt, generate_text
from ats_engine.services.ats_service import analyze_resume
from ats_engine.services.numbers import scrub_non_finite
from ats_engine.services.response_validator import extract_json_block, validate_detailed_results
from ats_engine.services.scoring_service import calculate_scores
from ats_engine.services.store import Store
from ats_engine.services.text_service import resume_to_text

logger = logging.getLogger(__name__)

ZEROED_SCORES: Dict[str, Any] = {
    "overallScore": 0,
    "categoryScores": {},
    "issueCount": 0,
}


@dataclass
class ScanContext:
    resume: ResumeDocument
    job_description: str | None = None
    job_application_id: str | None = None


def _usable(resume: ResumeDocument | None) -> bool:
    return resume is not None and not resume.is_empty()


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


class AnalysisManager:
    def __init__(self, store: Store, generate: TextGenerator | None = None) -> None:
        self.store = store
        self.generate = generate or generate_text
        self._tasks: Set[asyncio.Task] = set()
        self._tasks_by_id: Dict[str, asyncio.Task] = {}

    async def resolve_scan_context(self, user_id: str, job_application_id: str | None = None) -> ScanContext:
        stored_cv = await self.store.get_cv(user_id)
        stored_resume = stored_cv.cvJson if stored_cv else None

        if not job_application_id:
            if not _usable(stored_resume):
                raise ValidationError("No CV found. Please upload a CV first.")
            return ScanContext(resume=stored_resume)

        job = await self.store.get_job_application(user_id, job_application_id)
        if job is None:
            raise NotFoundError("Job application not found")
        if not job.jobDescriptionText or not job.jobDescriptionText.strip():
            raise ValidationError(
                "Job application does not have a job description. Please add the job description first."
            )

        if _usable(job.draftCvJson):
            resume = job.draftCvJson
        elif _usable(stored_resume):
            resume = stored_resume
        else:
            raise ValidationError("No CV found. Please upload a CV or generate a tailored CV first.")
        return ScanContext(
            resume=resume,
            job_description=job.jobDescriptionText,
            job_application_id=job.id,
        )

    async def _owned_record(self, user_id: str, analysis_id: str) -> AnalysisRecord:
        record = await self.store.get_analysis(analysis_id)
        if record is None:
            raise NotFoundError("Analysis not found")
        if record.userId != user_id:
            raise AuthorizationError("Unauthorized access to analysis")
        return record

    async def start_ats_scan(
        self,
        user_id: str,
        job_application_id: str | None = None,
        analysis_id: str | None = None,
    ) -> str:
        if analysis_id:
            await self._owned_record(user_id, analysis_id)
            if analysis_id in self._tasks_by_id:
                raise ValidationError("Analysis is already in progress")
        context = await self.resolve_scan_context(user_id, job_application_id)

        if analysis_id:
            await self.store.update_analysis(analysis_id, status="pending", errorInfo=None)
        else:
            record = await self.store.insert_analysis(AnalysisRecord(userId=user_id))
            analysis_id = record.id

        logger.info(
            "Dispatching ATS scan for analysis %s (job application: %s)",
            analysis_id,
            context.job_application_id or "none",
        )
        self._spawn(analysis_id, self._run_ats_scan(analysis_id, context))
        return analysis_id

    async def start_detailed_analysis(self, user_id: str, resume: ResumeDocument | None = None) -> str:
        if not _usable(resume):
            stored_cv = await self.store.get_cv(user_id)
            resume = stored_cv.cvJson if stored_cv else None
        if not _usable(resume):
            raise ValidationError("No CV found. Please upload a CV first.")

        record = await self.store.insert_analysis(AnalysisRecord(userId=user_id))
        logger.info("Dispatching detailed analysis %s", record.id)
        self._spawn(record.id, self._run_detailed_analysis(record.id, resume))
        return record.id

    async def get_analysis(self, user_id: str, analysis_id: str) -> AnalysisRecord:
        return await self._owned_record(user_id, analysis_id)

    async def get_ats_scores(self, user_id: str, analysis_id: str) -> AnalysisRecord:
        return await self._owned_record(user_id, analysis_id)

    async def find_ats_for_job(self, user_id: str, job_application_id: str) -> AnalysisRecord | None:
        return await self.store.find_latest_ats(user_id, job_application_id)

    async def latest_general_ats(self, user_id: str) -> AnalysisRecord | None:
        return await self.store.find_latest_ats(user_id, None)

    async def delete_analysis(self, user_id: str, analysis_id: str) -> None:
        await self._owned_record(user_id, analysis_id)
        await self.store.delete_analysis(analysis_id)
        logger.info("Deleted analysis %s", analysis_id)

    async def _run_ats_scan(self, analysis_id: str, context: ScanContext) -> None:
        record = await self.store.get_analysis(analysis_id)
        has_detailed_results = bool(record and record.detailedResults)

        try:
            ats_scores = await analyze_resume(
                context.resume,
                job_description=context.job_description,
                job_application_id=context.job_application_id,
                generate=self.generate,
            )
        except Exception as exc:
            logger.exception("ATS scan %s failed", analysis_id)
            await self._persist(analysis_id, status="failed", errorInfo=str(exc), atsScores=None, **ZEROED_SCORES)
            return

        if not ats_scores.is_soft_failure:
            logger.info("ATS scan %s completed with score %s", analysis_id, ats_scores.score)
            await self._persist(analysis_id, status="completed", errorInfo=None, atsScores=ats_scores)
        elif has_detailed_results:
            # The record already holds a detailed analysis; only the ATS part failed.
            logger.error("ATS scan %s failed, keeping detailed results: %s", analysis_id, ats_scores.error)
            await self._persist(analysis_id, status="completed", atsScores=ats_scores)
        else:
            logger.error("ATS scan %s failed: %s", analysis_id, ats_scores.error)
            await self._persist(
                analysis_id,
                status="failed",
                errorInfo=ats_scores.error,
                atsScores=ats_scores,
                **ZEROED_SCORES,
            )

    async def _run_detailed_analysis(self, analysis_id: str, resume: ResumeDocument) -> None:
        try:
            prompt = build_detailed_analysis_prompt(resume_to_text(resume))
            raw_response = await self.generate(prompt)
            outcome = validate_detailed_results(extract_json_block(raw_response))
            if not outcome.results:
                raise ValidationError("AI analysis returned no usable checks.")
            scores = calculate_scores(outcome.results)
        except Exception as exc:
            logger.exception("Detailed analysis %s failed", analysis_id)
            await self._persist(
                analysis_id,
                status="failed",
                errorInfo=str(exc) or "Failed to analyze CV",
                detailedResults={},
                **ZEROED_SCORES,
            )
            return

        logger.info("Detailed analysis %s completed with score %s", analysis_id, scores.overallScore)
        await self._persist(
            analysis_id,
            status="completed",
            errorInfo=None,
            overallScore=scores.overallScore,
            categoryScores=scores.categoryScores,
            issueCount=scores.issueCount,
            detailedResults=outcome.results,
        )

    async def _persist(self, analysis_id: str, **fields: Any) -> bool:
        fields.setdefault("analysisDate", datetime.now(timezone.utc))
        payload = scrub_non_finite({key: _plain(value) for key, value in fields.items()})
        attempts = max(1, settings.persistence_write_attempts)
        for attempt in range(1, attempts + 1):
            try:
                updated = await self.store.update_analysis(analysis_id, **payload)
            except Exception:
                if attempt < attempts:
                    logger.warning("Write for analysis %s failed, retrying (%d/%d)", analysis_id, attempt, attempts)
                    continue
                logger.exception("FATAL: giving up on writing analysis %s after %d attempts", analysis_id, attempts)
                return False
            if updated is None:
                logger.warning("Analysis %s no longer exists, result discarded", analysis_id)
                return False
            return True
        return False

    def _spawn(self, analysis_id: str, coroutine) -> asyncio.Task:
        task = asyncio.create_task(coroutine, name=f"analysis-{analysis_id}")
        self._tasks.add(task)
        self._tasks_by_id[analysis_id] = task
        task.add_done_callback(lambda finished: self._forget(analysis_id, finished))
        return task

    def _forget(self, analysis_id: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._tasks_by_id.get(analysis_id) is task:
            del self._tasks_by_id[analysis_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task for analysis %s crashed", analysis_id, exc_info=task.exception())

    async def wait(self, analysis_id: str) -> None:
        task = self._tasks_by_id.get(analysis_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

