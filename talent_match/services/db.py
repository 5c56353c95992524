from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from talent_match.helpers.parsing import excerpt
from talent_match.models.models import CandidateRecord, CompanyRecord, JobRecord, JobStatus
from talent_match.models.settings import DatabaseSettings
from talent_match.utils.exceptions import DocumentStoreError
from talent_match.utils.logging_config import get_logger

logger = get_logger(__name__)

CANDIDATES = "candidates"
JOBS = "jobs"
COMPANIES = "companies"
APPLICATIONS = "applications"

_client = None


def get_client(settings: DatabaseSettings):
    """Create the motor client on first use; motor connects lazily as well"""
    global _client
    if _client is None:
        logger.info("Initializing MongoDB client")
        _client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_details)
    return _client


def get_database(settings: DatabaseSettings):
    return get_client(settings)[settings.db_name]


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB client closed")


async def init_indexes(db):
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    unique_indexes = [
        (CANDIDATES, "candidate_id"),
        (JOBS, "job_id"),
        (COMPANIES, "company_id"),
    ]
    for coll, field in unique_indexes:
        try:
            await db[coll].create_index([(field, ASCENDING)], unique=True)
            logger.debug(f"Created unique index on {coll}.{field}")
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.debug(f"Index on {coll}.{field} already exists")
            else:
                logger.warning(f"Could not create unique index on {coll}.{field}: {e}")

    # Non-unique indexes (these are safer)
    try:
        await db[JOBS].create_index([("status", ASCENDING)])
        await db[JOBS].create_index([("posted_at", DESCENDING)])
        await db[APPLICATIONS].create_index([("job_id", ASCENDING), ("candidate_id", ASCENDING)])
        await db[CANDIDATES].create_index([("updated_at", DESCENDING)])
        logger.debug("Created additional indexes on jobs/applications/candidates")
    except Exception as e:
        logger.warning(f"Could not create some secondary indexes: {e}")

    logger.info("Database index initialization completed")


def to_dict(doc):
    if not doc:
        return None
    doc.pop("_id", None)
    return doc


class DocumentStore(Protocol):
    async def get_candidate_profile(self, candidate_id: str) -> Optional[CandidateRecord]: ...
    async def get_job_by_id(self, job_id: str) -> Optional[JobRecord]: ...
    async def get_company_by_id(self, company_id: str) -> Optional[CompanyRecord]: ...
    async def create_job_application(self, application: Dict[str, Any]) -> str: ...
    async def get_job_application_by_candidate(self, job_id: str, candidate_id: str) -> Optional[Dict[str, Any]]: ...
    async def save_candidate_embedding(self, candidate_id: str, embedding: List[float], source_text: str) -> None: ...
    async def save_job_embedding(self, job_id: str, embedding: List[float], source_text: str) -> None: ...
    async def get_recent_jobs(self, limit: int) -> List[JobRecord]: ...
    async def list_active_jobs(self, limit: int) -> List[JobRecord]: ...
    async def list_candidates(self, limit: int) -> List[CandidateRecord]: ...


class MongoDocumentStore:
    """Document store contract over MongoDB collections"""

    def __init__(self, db):
        self.db = db
        self.candidates = db[CANDIDATES]
        self.jobs = db[JOBS]
        self.companies = db[COMPANIES]
        self.applications = db[APPLICATIONS]

    def _wrap(self, e: Exception, operation: str, collection: str) -> DocumentStoreError:
        logger.error(f"Document store {operation} on {collection} failed: {e}")
        return DocumentStoreError(
            f"Document store unavailable: {e}", operation=operation, collection=collection, cause=e
        )

    async def get_candidate_profile(self, candidate_id: str) -> Optional[CandidateRecord]:
        try:
            doc = await self.candidates.find_one({"candidate_id": candidate_id})
        except PyMongoError as e:
            raise self._wrap(e, "find_one", CANDIDATES) from e
        return CandidateRecord(**to_dict(doc)) if doc else None

    async def get_job_by_id(self, job_id: str) -> Optional[JobRecord]:
        try:
            doc = await self.jobs.find_one({"job_id": job_id})
        except PyMongoError as e:
            raise self._wrap(e, "find_one", JOBS) from e
        return JobRecord(**to_dict(doc)) if doc else None

    async def get_company_by_id(self, company_id: str) -> Optional[CompanyRecord]:
        if not company_id:
            return None
        try:
            doc = await self.companies.find_one({"company_id": company_id})
        except PyMongoError as e:
            raise self._wrap(e, "find_one", COMPANIES) from e
        return CompanyRecord(**to_dict(doc)) if doc else None

    async def create_job_application(self, application: Dict[str, Any]) -> str:
        doc = {**application, "created_at": datetime.now(timezone.utc)}
        try:
            res = await self.applications.insert_one(doc)
        except PyMongoError as e:
            raise self._wrap(e, "insert_one", APPLICATIONS) from e
        return str(res.inserted_id)

    async def get_job_application_by_candidate(self, job_id: str, candidate_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = await self.applications.find_one({"job_id": job_id, "candidate_id": candidate_id})
        except PyMongoError as e:
            raise self._wrap(e, "find_one", APPLICATIONS) from e
        return to_dict(doc)

    async def _save_embedding(self, coll, collection: str, id_field: str, entity_id: str,
                              field: str, embedding: List[float], source_text: str) -> None:
        update = {
            field: [float(x) for x in embedding],
            "embedding_source": excerpt(source_text, 500),
            "embedding_updated_at": datetime.now(timezone.utc),
        }
        try:
            await coll.update_one({id_field: entity_id}, {"$set": update})
        except PyMongoError as e:
            raise self._wrap(e, "update_one", collection) from e
        logger.debug(f"Persisted {field} for {collection}.{entity_id}")

    async def save_candidate_embedding(self, candidate_id: str, embedding: List[float], source_text: str) -> None:
        await self._save_embedding(self.candidates, CANDIDATES, "candidate_id", candidate_id,
                                   "resume_embedding", embedding, source_text)

    async def save_job_embedding(self, job_id: str, embedding: List[float], source_text: str) -> None:
        await self._save_embedding(self.jobs, JOBS, "job_id", job_id,
                                   "job_embedding", embedding, source_text)

    async def _find_jobs(self, query: Dict[str, Any], limit: int, newest_first: bool = False) -> List[JobRecord]:
        try:
            cursor = self.jobs.find(query)
            if newest_first:
                cursor = cursor.sort("posted_at", DESCENDING)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise self._wrap(e, "find", JOBS) from e
        return [JobRecord(**to_dict(d)) for d in docs]

    async def get_recent_jobs(self, limit: int) -> List[JobRecord]:
        return await self._find_jobs({"status": JobStatus.ACTIVE.value}, limit, newest_first=True)

    async def list_active_jobs(self, limit: int) -> List[JobRecord]:
        return await self._find_jobs({"status": JobStatus.ACTIVE.value}, limit)

    async def list_candidates(self, limit: int) -> List[CandidateRecord]:
        try:
            cursor = self.candidates.find({}).sort("updated_at", DESCENDING).limit(limit)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise self._wrap(e, "find", CANDIDATES) from e
        return [CandidateRecord(**to_dict(d)) for d in docs]
