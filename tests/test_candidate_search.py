import pytest

from conftest import FailingIndex, make_candidate
from talent_match.models.models import ExperienceLevel
from talent_match.models.schemas import CandidateSearchFilters, CandidateSearchRequest, CandidateSortKey
from talent_match.services.candidate_search import (
    CandidateSearchOrchestrator,
    highlighted_matches,
    relevance_score,
    search_match_reasons,
)
from talent_match.services.matching import GENERIC_REASON
from talent_match.services.vector_index import VectorRetriever


@pytest.fixture
def orchestrator(store, embedder, candidate_retriever, retrieval_settings):
    return CandidateSearchOrchestrator(store, embedder, candidate_retriever, retrieval_settings)


class TestRelevanceAndHighlights:
    """Test cases for keyword relevance helpers"""

    def test_relevance_counts_terms_longer_than_two_chars(self):
        candidate = make_candidate()
        # "go" is ignored, "react" and "node" are found
        assert relevance_score(candidate, "react node go") == 100
        assert relevance_score(candidate, "react kubernetes") == 50
        assert relevance_score(candidate, "go") == 0

    def test_highlights(self):
        candidate = make_candidate()
        highlights = highlighted_matches(candidate, "react engineer")
        assert highlights == [
            "Skills: React",
            "Title: Senior Software Engineer",
            # sentences split on every period, "Node.js" included
            "Experience: Builds React and Node",
        ]

    def test_search_match_reasons(self):
        candidate = make_candidate()
        assert search_match_reasons(candidate, "react engineer") == [
            "1 matching skills: React",
            "Title matches your search: Senior Software Engineer",
            "Profile mentions: react, engineer",
        ]

    def test_highlights_capped_at_three(self):
        candidate = make_candidate()
        assert len(highlighted_matches(candidate, "react node senior team")) <= 3


class TestCandidateSearch:
    """Test cases for CandidateSearchOrchestrator"""

    @pytest.mark.asyncio
    async def test_search(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(query="python sql analyst"))

        assert response.stages == ["EMBEDDING", "RETRIEVING", "SCORING", "SORTING", "DONE"]
        assert response.results[0].candidate_id == "c2"
        scores = [r.match_score for r in response.results]
        assert scores == sorted(scores, reverse=True)
        assert response.insights.reduced_confidence is False

    @pytest.mark.asyncio
    async def test_never_more_than_top_n(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(query="engineer", top_n=2))
        assert len(response.results) <= 2

    @pytest.mark.asyncio
    async def test_skill_filter(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(
            query="engineer", filters=CandidateSearchFilters(skills=["react"])
        ))
        assert {r.candidate_id for r in response.results} == {"c1", "c3"}

    @pytest.mark.asyncio
    async def test_experience_filter(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(
            query="engineer", filters=CandidateSearchFilters(experience=ExperienceLevel.MANAGEMENT)
        ))
        assert [r.candidate_id for r in response.results] == ["c3"]

    @pytest.mark.asyncio
    async def test_sort_by_experience(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(
            query="engineer", sort_by=CandidateSortKey.EXPERIENCE
        ))
        assert [r.experience_level for r in response.results] == ["management", "senior", "junior"]

    @pytest.mark.asyncio
    async def test_sort_by_updated(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(
            query="engineer", sort_by=CandidateSortKey.UPDATED
        ))
        assert response.results[-1].candidate_id == "c3"

    @pytest.mark.asyncio
    async def test_degraded_uses_relevance(self, store, embedder, retrieval_settings):
        orchestrator = CandidateSearchOrchestrator(store, embedder, VectorRetriever(FailingIndex()), retrieval_settings)
        response = await orchestrator.search(CandidateSearchRequest(query="python sql"))

        assert "DEGRADED" in response.stages
        assert response.insights.reduced_confidence is True
        for r in response.results:
            assert r.match_score == r.relevance_score
        assert response.results[0].candidate_id == "c2"

    @pytest.mark.asyncio
    async def test_insights(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(query="engineer"))
        insights = response.insights
        assert insights.top_skills[0] == "React"
        assert sum(insights.experience_levels.values()) == len(response.results)

    @pytest.mark.asyncio
    async def test_every_result_has_reasons_even_without_shared_terms(self, orchestrator):
        response = await orchestrator.search(CandidateSearchRequest(query="zzzqqq xxyyww"))

        assert response.results
        for r in response.results:
            assert r.highlighted_matches == []
            assert r.match_reasons == [GENERIC_REASON]

    @pytest.mark.asyncio
    async def test_degraded_pool_counts_toward_filtered_out_hint(self, store, embedder, retrieval_settings):
        orchestrator = CandidateSearchOrchestrator(store, embedder, VectorRetriever(FailingIndex()), retrieval_settings)
        response = await orchestrator.search(CandidateSearchRequest(
            query="python", filters=CandidateSearchFilters(skills=["python"])
        ))

        # three stored candidates scored, one survives the filter
        assert [r.candidate_id for r in response.results] == ["c2"]
        assert any("Many candidates were filtered out" in s for s in response.insights.recommendations)
