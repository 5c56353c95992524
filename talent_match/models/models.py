from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class TaskType(str, Enum):
    """How the embedding provider should encode a text"""
    QUERY = "RETRIEVAL_QUERY"
    DOCUMENT = "RETRIEVAL_DOCUMENT"
    SIMILARITY = "SEMANTIC_SIMILARITY"


class JobType(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    REMOTE = "remote"


class JobStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    DRAFT = "draft"
    ARCHIVED = "archived"


class ExperienceLevel(str, Enum):
    JUNIOR = "junior"
    MID_LEVEL = "mid-level"
    SENIOR = "senior"
    MANAGEMENT = "management"


def _ordered_skills(skills: List[str]) -> List[str]:
    # case-insensitive de-duplication, first spelling wins
    seen = set()
    out = []
    for s in skills or []:
        s = str(s).strip()
        key = s.lower()
        if s and key not in seen:
            seen.add(key)
            out.append(s)
    return out


class CandidateRecord(BaseModel):
    candidate_id: str
    full_name: str = ""
    current_title: str = ""
    experience_summary: str = ""
    ai_generated_summary: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    resume_embedding: Optional[List[float]] = None
    location: Optional[str] = None
    availability: Optional[str] = None
    # profile completeness flags, owned by onboarding
    video_intro_url: Optional[str] = None
    profile_complete: bool = False
    profile_picture_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    @field_validator("skills")
    @classmethod
    def dedupe_skills(cls, v):
        return _ordered_skills(v)

    @property
    def summary(self) -> str:
        return self.experience_summary or self.ai_generated_summary or ""


class JobRecord(BaseModel):
    job_id: str
    company_id: Optional[str] = None
    title: str
    description: str = ""
    skills: List[str] = Field(default_factory=list)
    must_have_requirements: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    location: str = ""
    job_type: JobType = JobType.FULL_TIME
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    department: Optional[str] = None
    job_embedding: Optional[List[float]] = None
    status: JobStatus = JobStatus.ACTIVE
    posted_at: Optional[datetime] = None
    application_deadline: Optional[datetime] = None
    quick_apply_enabled: bool = True
    is_remote: bool = False

    @field_validator("skills")
    @classmethod
    def dedupe_skills(cls, v):
        return _ordered_skills(v)


class CompanyRecord(BaseModel):
    company_id: str
    name: str
    description: str = ""
    benefits: List[str] = Field(default_factory=list)
    logo_url: Optional[str] = None


class Neighbor(BaseModel):
    """One nearest-neighbour hit; distance 0 means identical"""
    entity_id: str
    distance: float


class ScoreBreakdown(BaseModel):
    overall: int
    semantic: Optional[float] = None
    skill: float
    experience: Optional[float] = None
    location: Optional[float] = None
    matching_skills: List[str] = Field(default_factory=list)
    reasons: List[str]
    degraded: bool = False


class JudgeVerdict(BaseModel):
    match_score: float = Field(ge=0.0, le=1.0)
    justification: str
