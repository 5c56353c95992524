import hashlib
import os
import re
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

os.environ.setdefault("ENVIRONMENT", "testing")

from talent_match.models.models import CandidateRecord, CompanyRecord, JobRecord, JobStatus, JobType
from talent_match.models.settings import EmbeddingSettings, RetrievalSettings
from talent_match.helpers.parsing import candidate_document_text, job_document_text
from talent_match.services.embeddings import EmbeddingGenerator
from talent_match.services.vector_index import InMemoryVectorIndex, VectorRetriever
from talent_match.utils.exceptions import DocumentStoreError

DIM = 64


class HashEmbeddingProvider:
    """Deterministic bag-of-words vectors; texts sharing words land close together"""

    model_name = "hash-embed"

    def __init__(self, dimension: int = DIM, fail: bool = False):
        self.dimension = dimension
        self.fail = fail
        self.calls = []

    def embed(self, text, task_type):
        self.calls.append((text, task_type))
        if self.fail:
            raise ConnectionError("embedding provider unreachable")
        vec = np.zeros(self.dimension)
        for word in re.findall(r"\w+", text.lower()):
            h = int(hashlib.md5(word.encode()).hexdigest(), 16)
            vec[h % self.dimension] += 1.0
        if not vec.any():
            vec[0] = 1.0
        return vec.tolist()


class FailingIndex:
    name = "broken_index"

    async def search(self, query_embedding, top_k):
        raise ConnectionError("vector index unreachable")


class FakeDocumentStore:
    """Dict-backed document store"""

    def __init__(self, candidates=(), jobs=(), companies=(), applications=()):
        self.candidates = {c.candidate_id: c for c in candidates}
        self.jobs = {j.job_id: j for j in jobs}
        self.companies = {c.company_id: c for c in companies}
        self.applications = list(applications)
        self.saved_candidate_embeddings = {}
        self.saved_job_embeddings = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise DocumentStoreError("store down", operation="find_one")

    async def get_candidate_profile(self, candidate_id):
        self._check()
        return self.candidates.get(candidate_id)

    async def get_job_by_id(self, job_id):
        self._check()
        return self.jobs.get(job_id)

    async def get_company_by_id(self, company_id):
        self._check()
        return self.companies.get(company_id)

    async def create_job_application(self, application):
        self._check()
        self.applications.append(application)
        return f"app-{len(self.applications)}"

    async def get_job_application_by_candidate(self, job_id, candidate_id):
        self._check()
        for a in self.applications:
            if a["job_id"] == job_id and a["candidate_id"] == candidate_id:
                return a
        return None

    async def save_candidate_embedding(self, candidate_id, embedding, source_text):
        self._check()
        self.saved_candidate_embeddings[candidate_id] = embedding

    async def save_job_embedding(self, job_id, embedding, source_text):
        self._check()
        self.saved_job_embeddings[job_id] = embedding

    async def get_recent_jobs(self, limit):
        self._check()
        active = [j for j in self.jobs.values() if j.status == JobStatus.ACTIVE]
        active.sort(key=lambda j: j.posted_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return active[:limit]

    async def list_active_jobs(self, limit):
        self._check()
        return [j for j in self.jobs.values() if j.status == JobStatus.ACTIVE][:limit]

    async def list_candidates(self, limit):
        self._check()
        return list(self.candidates.values())[:limit]


NOW = datetime(2026, 10, 1, tzinfo=timezone.utc)


def make_candidate(candidate_id="c1", **overrides):
    data = dict(
        candidate_id=candidate_id,
        full_name="Alice Smith",
        current_title="Senior Software Engineer",
        experience_summary="Builds React and Node.js services. Led a frontend team of five.",
        skills=["React", "Node.js"],
        location="Berlin",
        availability="immediately",
        video_intro_url="https://videos.example.com/alice.mp4",
        profile_complete=True,
        updated_at=NOW,
    )
    data.update(overrides)
    return CandidateRecord(**data)


def make_job(job_id="j1", **overrides):
    data = dict(
        job_id=job_id,
        company_id="co1",
        title="Senior Frontend Engineer",
        description="Build our web platform with React, TypeScript and Node.js.",
        skills=["React", "TypeScript", "Node.js"],
        location="Berlin, Germany",
        job_type=JobType.FULL_TIME,
        salary_min=90000,
        salary_max=120000,
        department="Engineering",
        status=JobStatus.ACTIVE,
        posted_at=NOW - timedelta(days=3),
    )
    data.update(overrides)
    return JobRecord(**data)


@pytest.fixture
def embedding_settings():
    return EmbeddingSettings(model_name="hash-embed", dimension=DIM, max_tokens=512)


@pytest.fixture
def provider():
    return HashEmbeddingProvider()


@pytest.fixture
def embedder(provider, embedding_settings):
    return EmbeddingGenerator(provider, embedding_settings)


@pytest.fixture
def failing_embedder(embedding_settings):
    return EmbeddingGenerator(HashEmbeddingProvider(fail=True), embedding_settings)


@pytest.fixture
def retrieval_settings():
    return RetrievalSettings(max_top_k=50, fallback_pool_size=100)


@pytest.fixture
def company():
    return CompanyRecord(company_id="co1", name="Acme", description="Developer tools", logo_url="https://acme.example/logo.png")


@pytest.fixture
def jobs():
    return [
        make_job(),
        make_job(
            "j2",
            company_id="co2",
            title="Data Scientist",
            description="Python and SQL for machine learning models.",
            skills=["Python", "SQL"],
            location="Remote",
            salary_min=100000,
            salary_max=None,
            department="Data",
            is_remote=True,
            posted_at=NOW - timedelta(days=1),
        ),
        make_job(
            "j3",
            title="Frontend Engineer",
            description="React work on a product that has since shipped.",
            status=JobStatus.CLOSED,
        ),
    ]


@pytest.fixture
def candidates():
    return [
        make_candidate(),
        make_candidate(
            "c2",
            full_name="Bob Jones",
            current_title="Junior Data Analyst",
            experience_summary="SQL reporting and Python notebooks.",
            skills=["Python", "SQL"],
            location="Remote",
        ),
        make_candidate(
            "c3",
            full_name="Carol White",
            current_title="Engineering Manager",
            experience_summary="Manages React and Node.js teams. Hiring and delivery.",
            skills=["React", "Leadership"],
            location="Munich",
            updated_at=NOW - timedelta(days=30),
        ),
    ]


@pytest.fixture
def store(candidates, jobs, company):
    return FakeDocumentStore(candidates=candidates, jobs=jobs, companies=[company])


@pytest.fixture
def job_retriever(embedder, jobs):
    index = InMemoryVectorIndex("jobs")
    for job in jobs:
        index.add(job.job_id, embedder.embed(job_document_text(job)))
    return VectorRetriever(index, max_top_k=50)


@pytest.fixture
def candidate_retriever(embedder, candidates):
    index = InMemoryVectorIndex("candidates")
    for c in candidates:
        index.add(c.candidate_id, embedder.embed(candidate_document_text(c)))
    return VectorRetriever(index, max_top_k=50)
