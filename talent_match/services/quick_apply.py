"""
Quick-apply: eligibility preview and one-click application.
"""
from datetime import datetime, timezone
from typing import Optional, Tuple

from talent_match.models.models import CandidateRecord, JobRecord, JobStatus, Neighbor
from talent_match.models.response import EligibilityReasons, QuickApplyPreview, QuickApplyReceipt
from talent_match.models.schemas import QuickApplyRequest
from talent_match.services.db import DocumentStore
from talent_match.services.embeddings import EmbeddingGenerator, ensure_candidate_embedding, ensure_job_embedding
from talent_match.services.graph import MatchState, build_match_graph, run_match_graph
from talent_match.services.matching import MultiFactorScorer, matching_skills
from talent_match.services.similarity import cosine_similarity, distance_to_score, similarity_to_distance
from talent_match.utils.exceptions import NotFoundError, ValidationError
from talent_match.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)


class QuickApplyOrchestrator:
    """
    Scores one candidate against one job by direct embedding comparison.

    Falls back to skill overlap when either embedding cannot be produced;
    a dimension mismatch between stored vectors is a data error and is raised.
    """

    def __init__(self, store: DocumentStore, embedder: EmbeddingGenerator, scorer: MultiFactorScorer):
        self.store = store
        self.embedder = embedder
        self.scorer = scorer
        self.graph = build_match_graph(self._embed, self._compare, self._score, self._sort)

    async def _load(self, job_id: str, candidate_id: str) -> Tuple[CandidateRecord, JobRecord]:
        candidate = await self.store.get_candidate_profile(candidate_id)
        if candidate is None:
            raise NotFoundError(f"Candidate {candidate_id} not found", entity_type="candidate", entity_id=candidate_id)
        job = await self.store.get_job_by_id(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found", entity_type="job", entity_id=job_id)
        return candidate, job

    async def _embed(self, state: MatchState):
        return await ensure_candidate_embedding(self.store, self.embedder, state["context"]["candidate"])

    async def _compare(self, state: MatchState):
        job: JobRecord = state["context"]["job"]
        job_vector = await ensure_job_embedding(self.store, self.embedder, job)
        # DimensionMismatchError is deliberately not caught
        distance = similarity_to_distance(cosine_similarity(state["embedding"], job_vector))
        return [Neighbor(entity_id=job.job_id, distance=distance)]

    async def _score(self, state: MatchState):
        candidate: CandidateRecord = state["context"]["candidate"]
        job: JobRecord = state["context"]["job"]
        if state.get("degraded") or not state["neighbors"]:
            return [self.scorer.score(candidate, job, None).overall]
        return [round(distance_to_score(state["neighbors"][0].distance))]

    async def _sort(self, state: MatchState):
        return state["results"]

    async def _eligibility(self, candidate: CandidateRecord, job: JobRecord) -> EligibilityReasons:
        application = await self.store.get_job_application_by_candidate(job.job_id, candidate.candidate_id)
        return EligibilityReasons(
            has_video_intro=bool(candidate.video_intro_url),
            profile_complete=candidate.profile_complete,
            already_applied=application is not None,
            job_accepting_applications=job.status == JobStatus.ACTIVE,
            quick_apply_enabled=job.quick_apply_enabled,
        )

    @staticmethod
    def is_eligible(reasons: EligibilityReasons) -> bool:
        return (
            reasons.has_video_intro
            and reasons.profile_complete
            and not reasons.already_applied
            and reasons.job_accepting_applications
            and reasons.quick_apply_enabled
        )

    async def preview(self, job_id: str, candidate_id: str) -> QuickApplyPreview:
        candidate, job = await self._load(job_id, candidate_id)
        reasons = await self._eligibility(candidate, job)

        with PerformanceMonitor("Quick-apply preview", logger, threshold_ms=3000):
            state = await run_match_graph(self.graph, {"candidate": candidate, "job": job})

        return QuickApplyPreview(
            job_id=job.job_id,
            candidate_id=candidate.candidate_id,
            eligible=self.is_eligible(reasons),
            reasons=reasons,
            match_score=max(0, min(100, state["results"][0])),
            matching_skills=matching_skills(candidate.skills, job.skills),
            degraded=bool(state.get("degraded")),
            stages=state["stages"],
        )

    async def apply(self, job_id: str, request: QuickApplyRequest) -> QuickApplyReceipt:
        candidate, job = await self._load(job_id, request.candidate_id)
        reasons = await self._eligibility(candidate, job)

        blocking: Optional[str] = None
        if not reasons.has_video_intro:
            blocking = "Please complete your video introduction before applying to jobs."
        elif not reasons.profile_complete:
            blocking = "Please complete your profile before applying to jobs."
        elif reasons.already_applied:
            blocking = "You have already applied to this job."
        elif not reasons.job_accepting_applications:
            blocking = "This job is no longer accepting applications."
        elif not reasons.quick_apply_enabled:
            blocking = "Quick apply is not enabled for this job."
        if blocking:
            raise ValidationError(blocking, field="job_id", value=job_id, details=reasons.model_dump())

        applied_at = datetime.now(timezone.utc)
        application_id = await self.store.create_job_application({
            "job_id": job.job_id,
            "candidate_id": candidate.candidate_id,
            "company_id": job.company_id,
            "status": "pending",
            "cover_letter": request.cover_note,
            "application_method": "quick_apply",
            "video_intro_url": candidate.video_intro_url,
            "applied_at": applied_at,
        })

        company = await self.store.get_company_by_id(job.company_id)
        logger.info(f"Quick apply {application_id}: candidate {candidate.candidate_id} -> job {job.job_id}")
        return QuickApplyReceipt(
            application_id=application_id,
            job_id=job.job_id,
            candidate_id=candidate.candidate_id,
            applied_at=applied_at,
            message=f"Successfully applied to {job.title} at {company.name if company else 'the company'}",
        )
