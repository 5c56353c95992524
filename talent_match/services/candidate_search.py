"""
Recruiter-facing semantic candidate search.
"""
import re
from collections import Counter
from typing import List, Optional

from talent_match.models.models import CandidateRecord, ExperienceLevel, TaskType
from talent_match.models.response import CandidateSearchInsights, CandidateSearchResponse, CandidateSearchResult
from talent_match.models.schemas import CandidateSearchFilters, CandidateSearchRequest, CandidateSortKey
from talent_match.models.settings import RetrievalSettings
from talent_match.services.db import DocumentStore
from talent_match.services.embeddings import EmbeddingGenerator
from talent_match.services.graph import MatchState, build_match_graph, run_match_graph
from talent_match.services.matching import (
    EXPERIENCE_RANK,
    GENERIC_REASON,
    candidate_experience_level,
    clamp,
    query_terms,
    semantic_score,
)
from talent_match.services.vector_index import VectorRetriever
from talent_match.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)

DEGRADED_NOTE = "Semantic search is temporarily unavailable; results are ranked by keyword relevance only."


def _search_terms(query: str) -> List[str]:
    return query_terms(query, min_length=2)


def candidate_search_text(candidate: CandidateRecord) -> str:
    return " ".join([
        candidate.full_name,
        candidate.current_title,
        candidate.experience_summary,
        candidate.ai_generated_summary or "",
        " ".join(candidate.skills),
    ]).lower()


def relevance_score(candidate: CandidateRecord, query: str) -> int:
    """Share of query terms (longer than 2 chars) found in the candidate's text"""
    terms = _search_terms(query)
    if not terms:
        return 0
    text = candidate_search_text(candidate)
    found = [t for t in terms if t in text]
    return round(100 * len(found) / len(terms))


def highlighted_matches(candidate: CandidateRecord, query: str) -> List[str]:
    terms = _search_terms(query)
    matches = []

    skills = [s for s in candidate.skills if any(t in s.lower() for t in terms)]
    if skills:
        matches.append(f"Skills: {', '.join(skills)}")

    if candidate.current_title and any(t in candidate.current_title.lower() for t in terms):
        matches.append(f"Title: {candidate.current_title}")

    summary = candidate.summary
    if summary:
        for sentence in re.split(r"[.!?]+", summary):
            if sentence.strip() and any(t in sentence.lower() for t in terms):
                matches.append(f"Experience: {sentence.strip()}")
                break

    return matches[:3]


def search_match_reasons(candidate: CandidateRecord, query: str) -> List[str]:
    """Why a candidate surfaced for a recruiter query. Never empty."""
    terms = _search_terms(query)
    reasons = []

    skills = [s for s in candidate.skills if any(t in s.lower() for t in terms)]
    if skills:
        reasons.append(f"{len(skills)} matching skills: {', '.join(skills[:3])}")

    if candidate.current_title and any(t in candidate.current_title.lower() for t in terms):
        reasons.append(f"Title matches your search: {candidate.current_title}")

    text = candidate_search_text(candidate)
    found = [t for t in terms if t in text]
    if found:
        reasons.append(f"Profile mentions: {', '.join(found[:3])}")

    return reasons or [GENERIC_REASON]


def passes_filters(candidate: CandidateRecord, filters: Optional[CandidateSearchFilters]) -> bool:
    if filters is None:
        return True
    if filters.skills:
        wanted = [s.lower() for s in filters.skills]
        if not any(w in cs.lower() for w in wanted for cs in candidate.skills):
            return False
    if filters.experience and candidate_experience_level(candidate) != filters.experience:
        return False
    # location and availability only filter when the candidate states one
    if filters.location and candidate.location:
        if filters.location.lower() not in candidate.location.lower():
            return False
    if filters.availability and candidate.availability:
        if candidate.availability != filters.availability:
            return False
    return True


def sort_candidate_results(results: List[CandidateSearchResult], sort_by: CandidateSortKey) -> List[CandidateSearchResult]:
    if sort_by == CandidateSortKey.EXPERIENCE:
        return sorted(results, key=lambda r: EXPERIENCE_RANK.get(ExperienceLevel(r.experience_level), 0), reverse=True)
    if sort_by == CandidateSortKey.UPDATED:
        return sorted(
            results,
            key=lambda r: r.last_updated.timestamp() if r.last_updated else float("-inf"),
            reverse=True,
        )
    return sorted(results, key=lambda r: r.match_score, reverse=True)


def search_suggestions(results: List[CandidateSearchResult], total_considered: int) -> List[str]:
    suggestions = []
    if not results:
        suggestions.append("Try broader search terms or remove some filters")
        suggestions.append("Consider searching for related skills or job titles")
    elif len(results) < 5:
        suggestions.append("Try adding more related keywords to find additional candidates")
        suggestions.append("Consider expanding location or experience level filters")

    if total_considered > len(results) * 2:
        suggestions.append("Many candidates were filtered out - consider relaxing filter criteria")
    return suggestions


def candidate_search_insights(results: List[CandidateSearchResult], total_considered: int,
                              degraded: bool) -> CandidateSearchInsights:
    skill_counts = Counter(s for r in results for s in r.skills)
    return CandidateSearchInsights(
        search_effectiveness="effective" if results else "limited",
        avg_match_score=round(sum(r.match_score for r in results) / len(results)) if results else 0,
        top_skills=[s for s, _ in skill_counts.most_common(5)],
        experience_levels=dict(Counter(r.experience_level for r in results)),
        recommendations=search_suggestions(results, total_considered),
        reduced_confidence=degraded,
        note=DEGRADED_NOTE if degraded else None,
    )


class CandidateSearchOrchestrator:
    def __init__(self, store: DocumentStore, embedder: EmbeddingGenerator, retriever: VectorRetriever,
                 settings: RetrievalSettings = None):
        self.store = store
        self.embedder = embedder
        self.retriever = retriever
        self.settings = settings or RetrievalSettings()
        self.graph = build_match_graph(self._embed, self._retrieve, self._score, self._sort)

    async def _embed(self, state: MatchState):
        return await self.embedder.aembed(state["context"]["request"].query, TaskType.QUERY)

    async def _retrieve(self, state: MatchState):
        request: CandidateSearchRequest = state["context"]["request"]
        return await self.retriever.search(state["embedding"], request.top_n * 2)

    async def _score(self, state: MatchState):
        request: CandidateSearchRequest = state["context"]["request"]

        if state.get("degraded"):
            candidates = await self.store.list_candidates(self.settings.fallback_pool_size)
            pool = [(c, None) for c in candidates]
        else:
            pool = []
            for neighbor in state["neighbors"]:
                candidate = await self.store.get_candidate_profile(neighbor.entity_id)
                if candidate is None:
                    logger.debug(f"Retrieved candidate {neighbor.entity_id} has no profile, skipping")
                    continue
                pool.append((candidate, neighbor.distance))

        results = []
        for candidate, distance in pool:
            if not passes_filters(candidate, request.filters):
                continue
            relevance = relevance_score(candidate, request.query)
            semantic = semantic_score(distance)
            match = relevance if semantic is None else semantic
            results.append(CandidateSearchResult(
                candidate_id=candidate.candidate_id,
                full_name=candidate.full_name,
                current_title=candidate.current_title,
                skills=candidate.skills,
                match_score=int(clamp(round(match))),
                relevance_score=relevance,
                experience_level=candidate_experience_level(candidate).value,
                location=candidate.location,
                availability=candidate.availability,
                profile_picture_url=candidate.profile_picture_url,
                summary=candidate.summary or None,
                match_reasons=search_match_reasons(candidate, request.query),
                highlighted_matches=highlighted_matches(candidate, request.query),
                last_updated=candidate.updated_at,
            ))
        return {"results": results, "considered": len(pool)}

    async def _sort(self, state: MatchState):
        request: CandidateSearchRequest = state["context"]["request"]
        return sort_candidate_results(state["results"], request.sort_by)[:request.top_n]

    async def search(self, request: CandidateSearchRequest) -> CandidateSearchResponse:
        with PerformanceMonitor("Candidate search", logger, threshold_ms=5000):
            state = await run_match_graph(self.graph, {"request": request})

        results = state["results"]
        degraded = bool(state.get("degraded"))
        logger.info(f"Candidate search returned {len(results)} results" + (" [degraded]" if degraded else ""))
        return CandidateSearchResponse(
            results=results,
            total_results=len(results),
            search_query=request.query,
            sort_by=request.sort_by.value,
            insights=candidate_search_insights(results, state["considered"], degraded),
            stages=state["stages"],
        )
