"""
Service wiring for the HTTP layer.

Services are built once at startup from settings and handed to routes through
FastAPI dependencies; nothing below is a module-level singleton.
"""
from dataclasses import dataclass

from fastapi import Request

from talent_match.models.settings import MatchingSettings
from talent_match.services.candidate_search import CandidateSearchOrchestrator
from talent_match.services.db import CANDIDATES, JOBS, MongoDocumentStore
from talent_match.services.deep_match import DeepMatchOrchestrator
from talent_match.services.embeddings import EmbeddingGenerator, OllamaEmbeddingProvider
from talent_match.services.job_candidate_match import JobCandidateMatchOrchestrator
from talent_match.services.job_search import JobSearchOrchestrator
from talent_match.services.matching import MultiFactorScorer
from talent_match.services.quick_apply import QuickApplyOrchestrator
from talent_match.services.reranker import LLMReranker, OllamaJudge
from talent_match.services.vector_index import MongoVectorIndex, VectorRetriever


@dataclass
class Services:
    deep_match: DeepMatchOrchestrator
    job_search: JobSearchOrchestrator
    candidate_search: CandidateSearchOrchestrator
    quick_apply: QuickApplyOrchestrator
    job_candidate_match: JobCandidateMatchOrchestrator


def build_services(settings: MatchingSettings, db) -> Services:
    store = MongoDocumentStore(db)
    embedder = EmbeddingGenerator(OllamaEmbeddingProvider(settings.embedding), settings.embedding)
    scorer = MultiFactorScorer(settings.weights)
    retrieval = settings.retrieval

    candidate_retriever = VectorRetriever(
        MongoVectorIndex(db[CANDIDATES], retrieval.candidate_index_name, "candidate_id", "resume_embedding",
                         retrieval.num_candidates_multiplier),
        max_top_k=retrieval.max_top_k,
    )
    job_retriever = VectorRetriever(
        MongoVectorIndex(db[JOBS], retrieval.job_index_name, "job_id", "job_embedding",
                         retrieval.num_candidates_multiplier),
        max_top_k=retrieval.max_top_k,
    )
    reranker = LLMReranker(OllamaJudge(settings.llm), max_concurrent=settings.rerank.max_concurrent)

    return Services(
        deep_match=DeepMatchOrchestrator(store, embedder, candidate_retriever, reranker),
        job_search=JobSearchOrchestrator(store, embedder, job_retriever, scorer, retrieval),
        candidate_search=CandidateSearchOrchestrator(store, embedder, candidate_retriever, retrieval),
        quick_apply=QuickApplyOrchestrator(store, embedder, scorer),
        job_candidate_match=JobCandidateMatchOrchestrator(store, embedder, candidate_retriever),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_deep_match(request: Request) -> DeepMatchOrchestrator:
    return get_services(request).deep_match


def get_job_search(request: Request) -> JobSearchOrchestrator:
    return get_services(request).job_search


def get_candidate_search(request: Request) -> CandidateSearchOrchestrator:
    return get_services(request).candidate_search


def get_quick_apply(request: Request) -> QuickApplyOrchestrator:
    return get_services(request).quick_apply


def get_job_candidate_match(request: Request) -> JobCandidateMatchOrchestrator:
    return get_services(request).job_candidate_match
