"""
LLM re-ranking of a semantic shortlist.
"""
import asyncio
from typing import List, Optional, Protocol, Sequence, Tuple

import requests

from talent_match.helpers.parsing import candidate_profile_text, excerpt
from talent_match.helpers.prompts import JUDGE_PROMPT
from talent_match.models.models import CandidateRecord, JudgeVerdict, Neighbor
from talent_match.models.response import RerankedCandidate
from talent_match.models.settings import LLMSettings
from talent_match.services.similarity import distance_to_score
from talent_match.utils.exceptions import JudgeError
from talent_match.utils.logging_config import get_logger
from talent_match.utils.utils import ollama_generate, safe_json

logger = get_logger(__name__)


class MatchJudge(Protocol):
    def judge_match(self, candidate_profile: str, job_description: str, company_info: str) -> JudgeVerdict:
        ...


class OllamaJudge:
    """LLM judge served by Ollama; expects a JSON verdict"""

    def __init__(self, settings: LLMSettings):
        self.settings = settings

    def judge_match(self, candidate_profile: str, job_description: str, company_info: str) -> JudgeVerdict:
        prompt = JUDGE_PROMPT.format(
            candidate_profile=candidate_profile,
            job_description=job_description,
            company_info=company_info or "(not provided)",
        )
        try:
            resp = ollama_generate(
                prompt,
                model=self.settings.model_name,
                base_url=self.settings.base_url,
                temperature=self.settings.temperature,
                timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            raise JudgeError(f"Judge request failed: {e}", model_name=self.settings.model_name, cause=e) from e

        data = safe_json(resp, fallback={})
        raw_score = data.get("score", data.get("match_score"))
        try:
            score = float(raw_score)
        except (TypeError, ValueError) as e:
            raise JudgeError(
                "Judge returned no usable score",
                model_name=self.settings.model_name,
                details={"response": (resp or "")[:200]},
                cause=e,
            ) from e

        justification = str(data.get("justification") or data.get("why") or "").strip()
        return JudgeVerdict(match_score=max(0.0, min(1.0, score)), justification=justification)


class LLMReranker:
    """Runs the judge over a shortlist with bounded concurrency.

    A member whose judgement fails is logged and dropped; the rest of the
    batch still completes.
    """

    def __init__(self, judge: MatchJudge, max_concurrent: int = 5):
        self.judge = judge
        self.max_concurrent = max_concurrent

    async def rerank(self, candidate_profile: str, job_description: str, company_info: str) -> JudgeVerdict:
        loop = asyncio.get_running_loop()
        verdict = await loop.run_in_executor(
            None, self.judge.judge_match, candidate_profile, job_description, company_info
        )
        return JudgeVerdict(
            match_score=max(0.0, min(1.0, float(verdict.match_score))),
            justification=verdict.justification,
        )

    async def rerank_shortlist(
        self,
        shortlist: Sequence[Tuple[CandidateRecord, Optional[Neighbor]]],
        job_description: str,
        company_info: str,
        final_count: int,
    ) -> List[RerankedCandidate]:
        eligible = []
        for candidate, neighbor in shortlist:
            if not (candidate.candidate_id and candidate.full_name and candidate.current_title):
                logger.warning(f"Skipping candidate {candidate.candidate_id or '<unknown>'}: incomplete profile")
                continue
            eligible.append((candidate, neighbor))

        if not eligible:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def judge_one(candidate: CandidateRecord, neighbor: Optional[Neighbor]):
            async with semaphore:
                try:
                    verdict = await self.rerank(candidate_profile_text(candidate), job_description, company_info)
                except Exception as e:
                    logger.error(f"Re-ranking failed for candidate {candidate.candidate_id}: {e}")
                    return None

            distance = neighbor.distance if neighbor else None
            return RerankedCandidate(
                candidate_id=candidate.candidate_id,
                full_name=candidate.full_name,
                current_title=candidate.current_title,
                profile_summary_excerpt=excerpt(candidate.summary, 200) if candidate.summary else None,
                semantic_match_score=distance_to_score(distance) / 100.0 if distance is not None else None,
                distance=distance,
                llm_match_score=verdict.match_score,
                llm_justification=verdict.justification,
                top_skills=candidate.skills[:5],
                availability=candidate.availability,
            )

        results = await asyncio.gather(*(judge_one(c, n) for c, n in eligible))
        survivors = [r for r in results if r is not None]
        dropped = len(eligible) - len(survivors)
        if dropped:
            logger.warning(f"Re-ranking dropped {dropped}/{len(eligible)} candidates after judge failures")

        # sorted() is stable, ties keep shortlist order
        survivors = sorted(survivors, key=lambda r: r.llm_match_score, reverse=True)
        return survivors[:final_count]
