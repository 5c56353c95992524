"""
Deep job/candidate match: semantic shortlist re-ranked by the LLM judge.
"""
import asyncio
from typing import List, Optional, Tuple

from talent_match.helpers.parsing import clean_text, company_info_text, job_document_text
from talent_match.models.models import JobRecord, TaskType
from talent_match.models.response import DeepMatchResponse
from talent_match.models.schemas import DeepMatchRequest
from talent_match.services.db import DocumentStore
from talent_match.services.embeddings import EmbeddingGenerator, ensure_job_embedding
from talent_match.services.graph import RERANKING, MatchState, build_match_graph, run_match_graph
from talent_match.services.reranker import LLMReranker
from talent_match.services.vector_index import VectorRetriever
from talent_match.utils.exceptions import NotFoundError
from talent_match.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)


class DeepMatchOrchestrator:
    """Finds the best candidates for one job.

    Embedding or retrieval failure aborts the request: there is no degraded
    answer for a deep match.
    """

    def __init__(self, store: DocumentStore, embedder: EmbeddingGenerator,
                 retriever: VectorRetriever, reranker: LLMReranker):
        self.store = store
        self.embedder = embedder
        self.retriever = retriever
        self.reranker = reranker
        self.graph = build_match_graph(
            self._embed, self._retrieve, self._rerank, self._sort,
            allow_degraded=False, score_stage=RERANKING,
        )

    async def _resolve_job(self, request: DeepMatchRequest) -> Tuple[Optional[JobRecord], str, str]:
        job = await self.store.get_job_by_id(request.job_id) if request.job_id else None

        if job is None:
            if request.job_description_text and request.company_information:
                if request.job_id:
                    logger.info(f"Job {request.job_id} not found, using the provided description")
                return None, clean_text(request.job_description_text), request.company_information.strip()
            raise NotFoundError(
                f"Job {request.job_id} not found and no job description provided",
                entity_type="job", entity_id=request.job_id,
            )

        job_text = job_document_text(job)
        if job.must_have_requirements:
            job_text += "\nMust-have requirements: " + "; ".join(job.must_have_requirements)
        company = await self.store.get_company_by_id(job.company_id)
        company_info = company_info_text(company, job) or (request.company_information or "")
        return job, job_text, company_info

    async def _embed(self, state: MatchState):
        ctx = state["context"]
        job: Optional[JobRecord] = ctx["job"]
        if job is None:
            return await self.embedder.aembed(ctx["job_text"], TaskType.DOCUMENT)
        return await ensure_job_embedding(self.store, self.embedder, job, ctx["job_text"])

    async def _retrieve(self, state: MatchState):
        request: DeepMatchRequest = state["context"]["request"]
        return await self.retriever.search(state["embedding"], request.semantic_search_result_count)

    async def _rerank(self, state: MatchState):
        ctx = state["context"]
        neighbors = state["neighbors"]
        if not neighbors:
            return []

        profiles = await asyncio.gather(*(self.store.get_candidate_profile(n.entity_id) for n in neighbors))
        shortlist = []
        for neighbor, candidate in zip(neighbors, profiles):
            if candidate is None:
                logger.warning(f"Retrieved candidate {neighbor.entity_id} has no profile, skipping")
                continue
            shortlist.append((candidate, neighbor))

        return await self.reranker.rerank_shortlist(
            shortlist, ctx["job_text"], ctx["company_info"], ctx["request"].final_result_count
        )

    async def _sort(self, state: MatchState):
        final_count = state["context"]["request"].final_result_count
        ranked = sorted(state["results"], key=lambda r: r.llm_match_score, reverse=True)
        return ranked[:final_count]

    async def match(self, request: DeepMatchRequest) -> DeepMatchResponse:
        with PerformanceMonitor("Deep match", logger, threshold_ms=30000):
            job, job_text, company_info = await self._resolve_job(request)
            state = await run_match_graph(self.graph, {
                "request": request,
                "job": job,
                "job_text": job_text,
                "company_info": company_info,
            })

        results: List = state["results"]
        retrieved = len(state["neighbors"])
        if not retrieved:
            summary = "No semantically similar candidates were found for this job."
        elif not results:
            summary = f"Retrieved {retrieved} candidates but none could be re-ranked."
        else:
            summary = f"Re-ranked {retrieved} semantically retrieved candidates; returning the top {len(results)}."

        logger.info(f"Deep match for job {request.job_id or '<ad-hoc>'}: {retrieved} retrieved, {len(results)} returned")
        return DeepMatchResponse(
            reranked_candidates=results,
            job_title_used=job.title if job else None,
            search_summary=summary,
            stages=state["stages"],
        )
