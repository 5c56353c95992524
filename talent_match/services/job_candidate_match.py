"""
Fast job -> candidates match: vector distance only, no LLM judge.
"""
import asyncio

from talent_match.models.models import JobRecord
from talent_match.models.response import CandidateMatch, JobCandidateMatchResponse
from talent_match.models.schemas import MatchCandidatesRequest
from talent_match.services.db import DocumentStore
from talent_match.services.embeddings import EmbeddingGenerator, ensure_job_embedding
from talent_match.services.graph import MatchState, build_match_graph, run_match_graph
from talent_match.services.matching import candidate_match_reasons, clamp, semantic_score
from talent_match.services.vector_index import VectorRetriever
from talent_match.utils.exceptions import NotFoundError
from talent_match.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)


class JobCandidateMatchOrchestrator:
    """Ranks candidates for a job by semantic score and drops those under min_score.

    Embedding or retrieval failure aborts: a distance-only ranking has nothing
    to fall back on.
    """

    def __init__(self, store: DocumentStore, embedder: EmbeddingGenerator, retriever: VectorRetriever):
        self.store = store
        self.embedder = embedder
        self.retriever = retriever
        self.graph = build_match_graph(
            self._embed, self._retrieve, self._score, self._sort, allow_degraded=False,
        )

    async def _embed(self, state: MatchState):
        return await ensure_job_embedding(self.store, self.embedder, state["context"]["job"])

    async def _retrieve(self, state: MatchState):
        request: MatchCandidatesRequest = state["context"]["request"]
        # over-fetch, min_score filtering thins the list
        return await self.retriever.search(state["embedding"], request.top_n * 2)

    async def _score(self, state: MatchState):
        job: JobRecord = state["context"]["job"]
        request: MatchCandidatesRequest = state["context"]["request"]
        neighbors = state["neighbors"]

        profiles = await asyncio.gather(*(self.store.get_candidate_profile(n.entity_id) for n in neighbors))
        matches = []
        for neighbor, candidate in zip(neighbors, profiles):
            if candidate is None:
                logger.debug(f"Retrieved candidate {neighbor.entity_id} has no profile, skipping")
                continue
            score = int(clamp(round(semantic_score(neighbor.distance))))
            if score < request.min_score:
                continue
            matches.append(CandidateMatch(
                candidate_id=candidate.candidate_id,
                full_name=candidate.full_name,
                current_title=candidate.current_title,
                skills=candidate.skills,
                match_score=score,
                match_reasons=candidate_match_reasons(candidate, job, score),
                distance=neighbor.distance,
                profile_picture_url=candidate.profile_picture_url,
                video_intro_url=candidate.video_intro_url,
                experience_summary=candidate.experience_summary or None,
                ai_generated_summary=candidate.ai_generated_summary,
                availability=candidate.availability,
            ))
        return matches

    async def _sort(self, state: MatchState):
        # stable: equal scores keep index order
        return sorted(state["results"], key=lambda m: m.match_score, reverse=True)

    async def match(self, job_id: str, request: MatchCandidatesRequest) -> JobCandidateMatchResponse:
        job = await self.store.get_job_by_id(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found", entity_type="job", entity_id=job_id)

        with PerformanceMonitor("Job candidate match", logger, threshold_ms=3000):
            state = await run_match_graph(self.graph, {"job": job, "request": request})

        qualified = state["results"]
        logger.info(
            f"Candidate match for job {job_id}: {len(state['neighbors'])} retrieved, "
            f"{len(qualified)} at or above {request.min_score}"
        )
        return JobCandidateMatchResponse(
            job_id=job.job_id,
            job_title=job.title,
            total_matches=len(qualified),
            matches=qualified[:request.top_n],
            min_score=request.min_score,
            embedding_generated=not job.job_embedding,
            stages=state["stages"],
        )
