import pytest

from conftest import FailingIndex
from talent_match.models.models import JudgeVerdict
from talent_match.models.schemas import DeepMatchRequest
from talent_match.services.deep_match import DeepMatchOrchestrator
from talent_match.services.reranker import LLMReranker
from talent_match.services.vector_index import InMemoryVectorIndex, VectorRetriever
from talent_match.utils.exceptions import EmbeddingGenerationError, NotFoundError, RetrievalError


class KeywordJudge:
    """Scores by how many job words appear in the profile"""

    def __init__(self):
        self.company_infos = []

    def judge_match(self, candidate_profile, job_description, company_info):
        self.company_infos.append(company_info)
        words = {w.strip(".,").lower() for w in job_description.split()}
        profile = candidate_profile.lower()
        hits = sum(1 for w in words if len(w) > 3 and w in profile)
        return JudgeVerdict(match_score=min(1.0, hits / 5), justification=f"{hits} shared terms")


@pytest.fixture
def judge():
    return KeywordJudge()


@pytest.fixture
def orchestrator(store, embedder, candidate_retriever, judge):
    return DeepMatchOrchestrator(store, embedder, candidate_retriever, LLMReranker(judge))


class TestDeepMatchOrchestrator:
    """Test cases for the deep match flow"""

    @pytest.mark.asyncio
    async def test_match_by_job_id(self, orchestrator, store, judge):
        response = await orchestrator.match(DeepMatchRequest(job_id="j1", final_result_count=2))

        assert len(response.reranked_candidates) <= 2
        scores = [c.llm_match_score for c in response.reranked_candidates]
        assert scores == sorted(scores, reverse=True)
        assert response.job_title_used == "Senior Frontend Engineer"
        assert response.stages == ["EMBEDDING", "RETRIEVING", "RERANKING", "SORTING", "DONE"]
        for c in response.reranked_candidates:
            assert 0.0 <= c.semantic_match_score <= 1.0
        assert "Acme" in judge.company_infos[0]

    @pytest.mark.asyncio
    async def test_job_embedding_generated_and_persisted(self, orchestrator, store):
        assert store.jobs["j1"].job_embedding is None
        await orchestrator.match(DeepMatchRequest(job_id="j1"))
        assert "j1" in store.saved_job_embeddings

    @pytest.mark.asyncio
    async def test_stored_job_embedding_reused(self, orchestrator, store, provider):
        store.jobs["j1"] = store.jobs["j1"].model_copy(update={"job_embedding": [1.0] * 64})
        provider.calls.clear()  # the retriever fixture embeds candidates up front
        await orchestrator.match(DeepMatchRequest(job_id="j1"))
        assert provider.calls == []
        assert store.saved_job_embeddings == {}

    @pytest.mark.asyncio
    async def test_missing_job_falls_back_to_text(self, orchestrator):
        response = await orchestrator.match(DeepMatchRequest(
            job_id="nope",
            job_description_text="Python data analyst working with SQL",
            company_information="Numbers Inc, analytics consultancy",
        ))
        assert response.job_title_used is None
        assert response.reranked_candidates

    @pytest.mark.asyncio
    async def test_missing_job_without_text(self, orchestrator):
        with pytest.raises(NotFoundError):
            await orchestrator.match(DeepMatchRequest(job_id="nope"))

    @pytest.mark.asyncio
    async def test_empty_retrieval(self, store, embedder, judge):
        orchestrator = DeepMatchOrchestrator(store, embedder, VectorRetriever(InMemoryVectorIndex()), LLMReranker(judge))
        response = await orchestrator.match(DeepMatchRequest(job_id="j1"))
        assert response.reranked_candidates == []
        assert "No semantically similar candidates" in response.search_summary

    @pytest.mark.asyncio
    async def test_embedding_failure_aborts(self, store, failing_embedder, candidate_retriever, judge):
        orchestrator = DeepMatchOrchestrator(store, failing_embedder, candidate_retriever, LLMReranker(judge))
        with pytest.raises(EmbeddingGenerationError):
            await orchestrator.match(DeepMatchRequest(job_id="j1"))

    @pytest.mark.asyncio
    async def test_retrieval_failure_aborts(self, store, embedder, judge):
        orchestrator = DeepMatchOrchestrator(store, embedder, VectorRetriever(FailingIndex()), LLMReranker(judge))
        with pytest.raises(RetrievalError):
            await orchestrator.match(DeepMatchRequest(job_id="j1"))

    @pytest.mark.asyncio
    async def test_candidates_missing_from_store_are_skipped(self, orchestrator, store):
        del store.candidates["c2"]
        response = await orchestrator.match(DeepMatchRequest(job_id="j1", final_result_count=10))
        assert "c2" not in {c.candidate_id for c in response.reranked_candidates}
        assert len(response.reranked_candidates) == 2


class TestDeepMatchRequest:
    """Test cases for request validation"""

    def test_requires_job_source(self):
        with pytest.raises(ValueError):
            DeepMatchRequest(job_description_text="only a description")

    def test_counts_bounded(self):
        with pytest.raises(ValueError):
            DeepMatchRequest(job_id="j1", semantic_search_result_count=4)
        with pytest.raises(ValueError):
            DeepMatchRequest(job_id="j1", final_result_count=11)
