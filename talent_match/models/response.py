# models/response.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SearchInsights(BaseModel):
    search_effectiveness: str
    avg_match_score: int
    recommendations: List[str] = Field(default_factory=list)
    reduced_confidence: bool = False
    note: Optional[str] = None


class JobSearchInsights(SearchInsights):
    top_companies: List[str] = Field(default_factory=list)
    salary_ranges: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)


class CandidateSearchInsights(SearchInsights):
    top_skills: List[str] = Field(default_factory=list)
    experience_levels: Dict[str, int] = Field(default_factory=dict)


class JobSearchResult(BaseModel):
    job_id: str
    title: str
    company_name: str
    location: str
    job_type: str
    salary_range: Optional[str] = None
    department: Optional[str] = None
    match_score: int
    match_reasons: List[str]
    description: str
    posted_date: Optional[datetime] = None
    is_remote: bool
    experience_required: str
    skills_required: List[str]
    company_logo: Optional[str] = None
    # sort key for salary ordering, not part of the display payload
    salary_max: Optional[float] = Field(default=None, exclude=True)


class JobSearchResponse(BaseModel):
    results: List[JobSearchResult]
    total_results: int
    search_query: Optional[str] = None
    candidate_id: Optional[str] = None
    search_type: str
    sort_by: str
    insights: JobSearchInsights
    stages: List[str]


class CandidateSearchResult(BaseModel):
    candidate_id: str
    full_name: str
    current_title: str
    skills: List[str]
    match_score: int
    relevance_score: int
    experience_level: str
    location: Optional[str] = None
    availability: Optional[str] = None
    profile_picture_url: Optional[str] = None
    summary: Optional[str] = None
    match_reasons: List[str]
    highlighted_matches: List[str]
    last_updated: Optional[datetime] = None


class CandidateSearchResponse(BaseModel):
    results: List[CandidateSearchResult]
    total_results: int
    search_query: str
    sort_by: str
    insights: CandidateSearchInsights
    stages: List[str]


class RerankedCandidate(BaseModel):
    candidate_id: str
    full_name: str
    current_title: str
    profile_summary_excerpt: Optional[str] = None
    semantic_match_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    distance: Optional[float] = None
    llm_match_score: float = Field(ge=0.0, le=1.0)
    llm_justification: str
    top_skills: List[str] = Field(default_factory=list)
    availability: Optional[str] = None


class DeepMatchResponse(BaseModel):
    reranked_candidates: List[RerankedCandidate]
    job_title_used: Optional[str] = None
    search_summary: str
    stages: List[str]


class CandidateMatch(BaseModel):
    candidate_id: str
    full_name: str
    current_title: str
    skills: List[str]
    match_score: int = Field(ge=0, le=100)
    match_reasons: List[str]
    distance: float
    profile_picture_url: Optional[str] = None
    video_intro_url: Optional[str] = None
    experience_summary: Optional[str] = None
    ai_generated_summary: Optional[str] = None
    availability: Optional[str] = None


class JobCandidateMatchResponse(BaseModel):
    job_id: str
    job_title: str
    # every candidate at or above min_score, before the top_n cut
    total_matches: int
    matches: List[CandidateMatch]
    min_score: int
    embedding_generated: bool
    stages: List[str]


class EligibilityReasons(BaseModel):
    has_video_intro: bool
    profile_complete: bool
    already_applied: bool
    job_accepting_applications: bool
    quick_apply_enabled: bool


class QuickApplyPreview(BaseModel):
    job_id: str
    candidate_id: str
    eligible: bool
    reasons: EligibilityReasons
    match_score: int = Field(ge=0, le=100)
    matching_skills: List[str]
    degraded: bool = False
    stages: List[str]


class QuickApplyReceipt(BaseModel):
    application_id: str
    job_id: str
    candidate_id: str
    status: str = "pending"
    applied_at: datetime
    message: str
