from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from talent_match.models.models import ExperienceLevel, JobType


# -------- Job search --------
class JobSortKey(str, Enum):
    RELEVANCE = "relevance"
    MATCH_SCORE = "match_score"
    SALARY = "salary"
    POSTED_DATE = "posted_date"


class JobSearchFilters(BaseModel):
    location: Optional[str] = None
    job_type: Optional[JobType] = None
    salary_min: Optional[float] = Field(default=None, ge=0)
    salary_max: Optional[float] = Field(default=None, ge=0)
    department: Optional[str] = None


class JobSearchRequest(BaseModel):
    query: Optional[str] = Field(default=None, min_length=1, max_length=500)
    candidate_id: Optional[str] = None  # personalization
    filters: Optional[JobSearchFilters] = None
    sort_by: JobSortKey = JobSortKey.RELEVANCE
    top_n: int = Field(default=20, ge=1, le=50)


# -------- Candidate search --------
class CandidateSortKey(str, Enum):
    RELEVANCE = "relevance"
    EXPERIENCE = "experience"
    UPDATED = "updated"


class CandidateSearchFilters(BaseModel):
    skills: List[str] = Field(default_factory=list)
    experience: Optional[ExperienceLevel] = None
    location: Optional[str] = None
    availability: Optional[str] = None


class CandidateSearchRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)
    filters: Optional[CandidateSearchFilters] = None
    sort_by: CandidateSortKey = CandidateSortKey.RELEVANCE
    top_n: int = Field(default=20, ge=1, le=50)


# -------- Deep match --------
class DeepMatchRequest(BaseModel):
    job_id: Optional[str] = None
    job_description_text: Optional[str] = None
    company_information: Optional[str] = None
    semantic_search_result_count: int = Field(default=20, ge=5, le=50)
    final_result_count: int = Field(default=5, ge=1, le=10)

    @model_validator(mode="after")
    def require_job_source(self):
        if not self.job_id and not (self.job_description_text and self.company_information):
            raise ValueError("Provide job_id or both job_description_text and company_information")
        return self


# -------- Quick apply --------
class QuickApplyRequest(BaseModel):
    candidate_id: str = Field(min_length=1)
    cover_note: Optional[str] = Field(default=None, max_length=1000)


# -------- Job -> candidates --------
class MatchCandidatesRequest(BaseModel):
    top_n: int = Field(default=20, ge=1, le=50)
    min_score: int = Field(default=60, ge=0, le=100)
