"""
Embedding generation for resumes, job descriptions and search queries.
"""
import asyncio
from typing import List, Optional, Protocol

from talent_match.helpers.parsing import candidate_document_text, job_document_text
from talent_match.models.models import CandidateRecord, JobRecord, TaskType
from talent_match.models.settings import EmbeddingSettings
from talent_match.utils.exceptions import DocumentStoreError, EmbeddingGenerationError
from talent_match.utils.logging_config import get_logger
from talent_match.utils.utils import ollama_embed

logger = get_logger(__name__)

CHARS_PER_TOKEN = 4
WORD_BOUNDARY_WINDOW = 0.8

# nomic-embed-text encodes the task as a text prefix
NOMIC_TASK_PREFIXES = {
    TaskType.QUERY: "search_query: ",
    TaskType.DOCUMENT: "search_document: ",
    TaskType.SIMILARITY: "clustering: ",
}


class EmbeddingProvider(Protocol):
    model_name: str

    def embed(self, text: str, task_type: TaskType) -> List[float]:
        ...


class OllamaEmbeddingProvider:
    """Embedding provider backed by a local Ollama server"""

    def __init__(self, settings: EmbeddingSettings):
        self.settings = settings
        self.model_name = settings.model_name

    def embed(self, text: str, task_type: TaskType) -> List[float]:
        prefix = NOMIC_TASK_PREFIXES.get(task_type, "") if "nomic" in self.model_name else ""
        return ollama_embed(
            prefix + text,
            model=self.model_name,
            base_url=self.settings.base_url,
            timeout=self.settings.timeout,
        )


def truncate_text(text: str, max_chars: int) -> str:
    """Cut text to max_chars, preferring the last whitespace in the final 20%."""
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    if text[max_chars].isspace():
        # the cut already falls on a word boundary
        return truncated.rstrip()
    last_space = max(truncated.rfind(ch) for ch in (" ", "\n", "\t", "\r"))
    if last_space > max_chars * WORD_BOUNDARY_WINDOW:
        return truncated[:last_space]
    return truncated


class EmbeddingGenerator:
    """Turns text into a fixed-dimension vector through a provider.

    Never caches and never substitutes a placeholder vector: any provider
    problem surfaces as EmbeddingGenerationError.
    """

    def __init__(self, provider: EmbeddingProvider, settings: EmbeddingSettings):
        self.provider = provider
        self.settings = settings
        self.max_chars = settings.max_tokens * CHARS_PER_TOKEN

    def embed(self, text: str, task_type: TaskType = TaskType.DOCUMENT) -> List[float]:
        model = getattr(self.provider, "model_name", self.settings.model_name)
        if not text or not text.strip():
            raise EmbeddingGenerationError(
                "Cannot embed empty text", model_name=model, task_type=task_type.value
            )

        prepared = truncate_text(text, self.max_chars)
        if len(prepared) < len(text):
            logger.debug(f"Truncated text from {len(text)} to {len(prepared)} characters before embedding")

        try:
            vector = self.provider.embed(prepared, task_type)
        except Exception as e:
            logger.error(f"Embedding provider failed for {task_type.value} text (length: {len(prepared)}): {e}")
            raise EmbeddingGenerationError(
                f"Failed to generate text embedding: {e}",
                model_name=model,
                task_type=task_type.value,
                cause=e,
            ) from e

        if not vector:
            raise EmbeddingGenerationError(
                "Failed to generate text embedding: no embedding vector returned",
                model_name=model,
                task_type=task_type.value,
            )
        if len(vector) != self.settings.dimension:
            raise EmbeddingGenerationError(
                f"Invalid embedding dimension: expected {self.settings.dimension}, got {len(vector)}",
                model_name=model,
                task_type=task_type.value,
            )

        logger.debug(f"Generated {task_type.value} embedding with {model} (dimension: {len(vector)})")
        return list(vector)

    async def aembed(self, text: str, task_type: TaskType = TaskType.DOCUMENT) -> List[float]:
        # provider calls block on HTTP, keep them off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.embed, text, task_type)


async def ensure_job_embedding(store, embedder: EmbeddingGenerator, job: JobRecord,
                               text: Optional[str] = None) -> List[float]:
    """Stored job vector, or a freshly generated DOCUMENT vector saved back to the store.

    A failed save is logged; the generated vector is still returned.
    """
    if job.job_embedding:
        return job.job_embedding
    text = text or job_document_text(job)
    vector = await embedder.aembed(text, TaskType.DOCUMENT)
    try:
        await store.save_job_embedding(job.job_id, vector, text)
    except DocumentStoreError as e:
        logger.warning(f"Could not persist embedding for job {job.job_id}: {e.message}")
    return vector


async def ensure_candidate_embedding(store, embedder: EmbeddingGenerator, candidate: CandidateRecord) -> List[float]:
    if candidate.resume_embedding:
        return candidate.resume_embedding
    text = candidate_document_text(candidate)
    vector = await embedder.aembed(text, TaskType.DOCUMENT)
    try:
        await store.save_candidate_embedding(candidate.candidate_id, vector, text)
    except DocumentStoreError as e:
        logger.warning(f"Could not persist embedding for candidate {candidate.candidate_id}: {e.message}")
    return vector
