from fastapi import APIRouter, Depends

from talent_match.dependencies import get_deep_match
from talent_match.models.response import DeepMatchResponse
from talent_match.models.schemas import DeepMatchRequest
from talent_match.services.deep_match import DeepMatchOrchestrator
from talent_match.utils.logging_config import log_api_call

router = APIRouter()


@router.post("/advanced", response_model=DeepMatchResponse)
@log_api_call("deep match")
async def advanced_match(
    payload: DeepMatchRequest,
    orchestrator: DeepMatchOrchestrator = Depends(get_deep_match),
):
    """Retrieve a semantic shortlist for a job and re-rank it with the LLM judge"""
    return await orchestrator.match(payload)
