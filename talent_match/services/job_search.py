"""
Job search and personalized job recommendations.
"""
from typing import Dict, List, Optional

from talent_match.helpers.parsing import format_salary_range
from talent_match.models.models import CandidateRecord, CompanyRecord, JobRecord, JobStatus, TaskType
from talent_match.models.response import JobSearchInsights, JobSearchResponse, JobSearchResult
from talent_match.models.schemas import JobSearchFilters, JobSearchRequest, JobSortKey
from talent_match.models.settings import RetrievalSettings
from talent_match.services.db import DocumentStore
from talent_match.services.embeddings import EmbeddingGenerator, ensure_candidate_embedding
from talent_match.services.graph import MatchState, build_match_graph, run_match_graph
from talent_match.services.matching import MultiFactorScorer, job_experience_level
from talent_match.services.vector_index import VectorRetriever
from talent_match.utils.exceptions import NotFoundError
from talent_match.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)

DEGRADED_NOTE = "Semantic search is temporarily unavailable; results are ranked by skill overlap only."


def passes_filters(job: JobRecord, filters: Optional[JobSearchFilters]) -> bool:
    if filters is None:
        return True
    if filters.location and filters.location.lower() not in (job.location or "").lower():
        return False
    if filters.job_type and job.job_type != filters.job_type:
        return False
    if filters.salary_min and job.salary_max and job.salary_max < filters.salary_min:
        return False
    if filters.salary_max and job.salary_min and job.salary_min > filters.salary_max:
        return False
    if filters.department and job.department != filters.department:
        return False
    return True


def sort_job_results(results: List[JobSearchResult], sort_by: JobSortKey) -> List[JobSearchResult]:
    # sorted() keeps ties in retrieval order
    if sort_by == JobSortKey.SALARY:
        return sorted(results, key=lambda r: r.salary_max or 0, reverse=True)
    if sort_by == JobSortKey.POSTED_DATE:
        return sorted(
            results,
            key=lambda r: r.posted_date.timestamp() if r.posted_date else float("-inf"),
            reverse=True,
        )
    return sorted(results, key=lambda r: r.match_score, reverse=True)


def job_recommendations(results: List[JobSearchResult], personalized: bool) -> List[str]:
    recs = []
    if not results:
        recs.append("Try broader search terms or consider related job titles")
        recs.append("Update your profile with more skills to get better matches")
    elif len(results) < 5:
        recs.append("Consider expanding your location preferences")
        recs.append("Look into related job titles or industries")

    if any(r.is_remote for r in results):
        recs.append("Several remote opportunities available")

    if personalized and results:
        avg = sum(r.match_score for r in results) / len(results)
        if avg < 70:
            recs.append("Consider adding more relevant skills to your profile")
    return recs


def _unique(items: List[str], limit: int) -> List[str]:
    out = []
    for x in items:
        if x and x not in out:
            out.append(x)
    return out[:limit]


def job_search_insights(results: List[JobSearchResult], personalized: bool, degraded: bool) -> JobSearchInsights:
    return JobSearchInsights(
        search_effectiveness="effective" if results else "limited",
        avg_match_score=round(sum(r.match_score for r in results) / len(results)) if results else 0,
        top_companies=_unique([r.company_name for r in results[:10]], 5),
        salary_ranges=[r.salary_range for r in results if r.salary_range][:5],
        locations=_unique([r.location for r in results], 5),
        recommendations=job_recommendations(results, personalized),
        reduced_confidence=degraded,
        note=DEGRADED_NOTE if degraded else None,
    )


class JobSearchOrchestrator:
    """Query-driven, personalized or recent job listings, scored per candidate when known"""

    def __init__(self, store: DocumentStore, embedder: EmbeddingGenerator, retriever: VectorRetriever,
                 scorer: MultiFactorScorer, settings: RetrievalSettings = None):
        self.store = store
        self.embedder = embedder
        self.retriever = retriever
        self.scorer = scorer
        self.settings = settings or RetrievalSettings()
        self.graph = build_match_graph(self._embed, self._retrieve, self._score, self._sort)

    async def _embed(self, state: MatchState):
        ctx = state["context"]
        request: JobSearchRequest = ctx["request"]
        candidate: Optional[CandidateRecord] = ctx["candidate"]

        if request.query:
            return await self.embedder.aembed(request.query, TaskType.QUERY)
        if candidate is None:
            return None
        return await ensure_candidate_embedding(self.store, self.embedder, candidate)

    async def _retrieve(self, state: MatchState):
        request: JobSearchRequest = state["context"]["request"]
        return await self.retriever.search(state["embedding"], request.top_n * 2)

    async def _company(self, company_id: Optional[str], cache: Dict[str, Optional[CompanyRecord]]):
        if not company_id:
            return None
        if company_id not in cache:
            cache[company_id] = await self.store.get_company_by_id(company_id)
        return cache[company_id]

    async def _candidate_pool(self, state: MatchState):
        """(job, distance) pairs to score, in consumption order"""
        ctx = state["context"]
        request: JobSearchRequest = ctx["request"]
        pool_limit = request.top_n * 2

        if state.get("degraded"):
            limit = self.settings.fallback_pool_size
            if ctx["candidate"] is None:
                limit = min(pool_limit, limit)
            jobs = await self.store.list_active_jobs(limit)
            return [(job, None) for job in jobs]

        if state.get("embedding") is None:
            jobs = await self.store.get_recent_jobs(pool_limit)
            return [(job, None) for job in jobs]

        pairs = []
        for neighbor in state["neighbors"]:
            job = await self.store.get_job_by_id(neighbor.entity_id)
            if job is None:
                logger.debug(f"Retrieved job {neighbor.entity_id} no longer exists, skipping")
                continue
            pairs.append((job, neighbor.distance))
        return pairs

    async def _score(self, state: MatchState):
        ctx = state["context"]
        request: JobSearchRequest = ctx["request"]
        candidate: Optional[CandidateRecord] = ctx["candidate"]
        companies: Dict[str, Optional[CompanyRecord]] = {}

        results = []
        for job, distance in await self._candidate_pool(state):
            if job.status != JobStatus.ACTIVE:
                continue
            if not passes_filters(job, request.filters):
                continue

            breakdown = self.scorer.score(candidate, job, distance, request.query)
            company = await self._company(job.company_id, companies)
            results.append(JobSearchResult(
                job_id=job.job_id,
                title=job.title,
                company_name=company.name if company else (job.company_id or ""),
                location=job.location,
                job_type=job.job_type.value,
                salary_range=format_salary_range(job.salary_min, job.salary_max),
                department=job.department,
                match_score=breakdown.overall,
                match_reasons=breakdown.reasons,
                description=job.description,
                posted_date=job.posted_at,
                is_remote=job.is_remote or "remote" in (job.location or "").lower(),
                experience_required=job_experience_level(job).value,
                skills_required=job.skills,
                company_logo=company.logo_url if company else None,
                salary_max=max(job.salary_min or 0, job.salary_max or 0) or None,
            ))
        return results

    async def _sort(self, state: MatchState):
        request: JobSearchRequest = state["context"]["request"]
        return sort_job_results(state["results"], request.sort_by)[:request.top_n]

    async def search(self, request: JobSearchRequest) -> JobSearchResponse:
        candidate = None
        if request.candidate_id:
            candidate = await self.store.get_candidate_profile(request.candidate_id)
            if candidate is None:
                raise NotFoundError(
                    f"Candidate {request.candidate_id} not found",
                    entity_type="candidate", entity_id=request.candidate_id,
                )

        if request.query:
            search_type = "query"
        elif candidate is not None:
            search_type = "personalized"
        else:
            search_type = "recent"

        with PerformanceMonitor(f"Job search ({search_type})", logger, threshold_ms=5000):
            state = await run_match_graph(self.graph, {"request": request, "candidate": candidate})

        results = state["results"]
        degraded = bool(state.get("degraded"))
        logger.info(
            f"Job search ({search_type}) returned {len(results)} results"
            + (" [degraded]" if degraded else "")
        )
        return JobSearchResponse(
            results=results,
            total_results=len(results),
            search_query=request.query,
            candidate_id=request.candidate_id,
            search_type=search_type,
            sort_by=request.sort_by.value,
            insights=job_search_insights(results, candidate is not None, degraded),
            stages=state["stages"],
        )
