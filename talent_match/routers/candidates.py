from fastapi import APIRouter, Depends

from talent_match.dependencies import get_candidate_search
from talent_match.models.response import CandidateSearchResponse
from talent_match.models.schemas import CandidateSearchRequest
from talent_match.services.candidate_search import CandidateSearchOrchestrator
from talent_match.utils.logging_config import log_api_call

router = APIRouter()


@router.post("/search", response_model=CandidateSearchResponse)
@log_api_call("candidate search")
async def search_candidates(
    payload: CandidateSearchRequest,
    orchestrator: CandidateSearchOrchestrator = Depends(get_candidate_search),
):
    """Recruiter search over candidate profiles"""
    return await orchestrator.search(payload)
