from fastapi import APIRouter, Depends, Query

from talent_match.dependencies import get_job_candidate_match, get_job_search, get_quick_apply
from talent_match.models.response import JobCandidateMatchResponse, JobSearchResponse, QuickApplyPreview, QuickApplyReceipt
from talent_match.models.schemas import JobSearchRequest, MatchCandidatesRequest, QuickApplyRequest
from talent_match.services.job_candidate_match import JobCandidateMatchOrchestrator
from talent_match.services.job_search import JobSearchOrchestrator
from talent_match.services.quick_apply import QuickApplyOrchestrator
from talent_match.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


@router.post("/search", response_model=JobSearchResponse)
@log_api_call("job search")
async def search_jobs(
    payload: JobSearchRequest,
    orchestrator: JobSearchOrchestrator = Depends(get_job_search),
):
    """Semantic job search, personalized when a candidate_id is given"""
    return await orchestrator.search(payload)


@router.get("/{job_id}/quick-apply", response_model=QuickApplyPreview)
@log_api_call("quick-apply preview")
async def quick_apply_preview(
    job_id: str,
    candidate_id: str = Query(..., min_length=1),
    orchestrator: QuickApplyOrchestrator = Depends(get_quick_apply),
):
    """Check whether a candidate can quick-apply, with a match score"""
    return await orchestrator.preview(job_id, candidate_id)


@router.post("/{job_id}/quick-apply", response_model=QuickApplyReceipt, status_code=201)
@log_api_call("quick apply")
async def quick_apply(
    job_id: str,
    payload: QuickApplyRequest,
    orchestrator: QuickApplyOrchestrator = Depends(get_quick_apply),
):
    return await orchestrator.apply(job_id, payload)


@router.post("/{job_id}/match-candidates", response_model=JobCandidateMatchResponse)
@log_api_call("job candidate match")
async def match_candidates(
    job_id: str,
    payload: MatchCandidatesRequest,
    orchestrator: JobCandidateMatchOrchestrator = Depends(get_job_candidate_match),
):
    """Best candidates for a job by semantic score, without LLM re-ranking"""
    return await orchestrator.match(job_id, payload)
