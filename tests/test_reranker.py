import re
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import requests

from conftest import make_candidate
from talent_match.models.models import JudgeVerdict, Neighbor
from talent_match.models.settings import LLMSettings
from talent_match.services.reranker import LLMReranker, OllamaJudge
from talent_match.utils.exceptions import JudgeError


class ScriptedJudge:
    """Scores candidates by name; names in `failing` raise"""

    def __init__(self, scores, failing=()):
        self.scores = scores
        self.failing = set(failing)
        self.judged = []

    def judge_match(self, candidate_profile, job_description, company_info):
        name = re.search(r"Name: (.+)", candidate_profile).group(1).strip()
        self.judged.append(name)
        if name in self.failing:
            raise JudgeError("model returned garbage", model_name="scripted")
        return JudgeVerdict(match_score=self.scores[name], justification=f"{name} fits")


def shortlist(n):
    return [
        (make_candidate(f"c{i}", full_name=f"Cand {i}"), Neighbor(entity_id=f"c{i}", distance=0.1 * i))
        for i in range(1, n + 1)
    ]


class TestLLMReranker:
    """Test cases for LLMReranker"""

    @pytest.mark.asyncio
    async def test_failing_member_is_dropped(self):
        judge = ScriptedJudge(
            {"Cand 1": 0.4, "Cand 2": 0.9, "Cand 4": 0.7, "Cand 5": 0.2},
            failing={"Cand 3"},
        )
        results = await LLMReranker(judge, max_concurrent=2).rerank_shortlist(
            shortlist(5), "job text", "company", final_count=10
        )

        assert len(results) == 4
        scores = [r.llm_match_score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert [r.candidate_id for r in results] == ["c2", "c4", "c1", "c5"]

    @pytest.mark.asyncio
    async def test_truncates_to_final_count(self):
        judge = ScriptedJudge({f"Cand {i}": i / 10 for i in range(1, 7)})
        results = await LLMReranker(judge).rerank_shortlist(shortlist(6), "job", "co", final_count=3)
        assert [r.candidate_id for r in results] == ["c6", "c5", "c4"]

    @pytest.mark.asyncio
    async def test_incomplete_profiles_skipped_before_judging(self):
        judge = ScriptedJudge({"Cand 1": 0.5, "Cand 2": 0.5})
        members = shortlist(2) + [(make_candidate("c9", full_name="Cand 9", current_title=""), None)]
        results = await LLMReranker(judge).rerank_shortlist(members, "job", "co", final_count=5)
        assert "Cand 9" not in judge.judged
        assert {r.candidate_id for r in results} == {"c1", "c2"}

    @pytest.mark.asyncio
    async def test_ties_keep_shortlist_order(self):
        judge = ScriptedJudge({f"Cand {i}": 0.5 for i in range(1, 4)})
        results = await LLMReranker(judge).rerank_shortlist(shortlist(3), "job", "co", final_count=3)
        assert [r.candidate_id for r in results] == ["c1", "c2", "c3"]

    @pytest.mark.asyncio
    async def test_semantic_score_from_distance(self):
        judge = ScriptedJudge({"Cand 1": 0.5})
        member = [(make_candidate("c1", full_name="Cand 1"), Neighbor(entity_id="c1", distance=0.4))]
        result = (await LLMReranker(judge).rerank_shortlist(member, "job", "co", final_count=1))[0]
        assert result.semantic_match_score == pytest.approx(0.8)
        assert result.distance == 0.4
        assert result.llm_justification == "Cand 1 fits"

    @pytest.mark.asyncio
    async def test_rerank_clamps_score(self):
        class OverconfidentJudge:
            def judge_match(self, *args):
                return SimpleNamespace(match_score=1.7, justification="perfect")

        verdict = await LLMReranker(OverconfidentJudge()).rerank("profile", "job", "co")
        assert verdict.match_score == 1.0

    @pytest.mark.asyncio
    async def test_empty_shortlist(self):
        assert await LLMReranker(ScriptedJudge({})).rerank_shortlist([], "job", "co", final_count=5) == []


class TestOllamaJudge:
    """Test cases for the Ollama-backed judge"""

    @pytest.fixture
    def judge(self):
        return OllamaJudge(LLMSettings(model_name="llama3.1:8b"))

    @patch("talent_match.services.reranker.ollama_generate")
    def test_parses_verdict(self, mock_generate, judge):
        mock_generate.return_value = 'Sure! {"score": 0.82, "justification": "Strong React background."}'
        verdict = judge.judge_match("profile", "job", "company")
        assert verdict.match_score == pytest.approx(0.82)
        assert verdict.justification == "Strong React background."
        prompt = mock_generate.call_args.args[0]
        assert "profile" in prompt and "company" in prompt

    @patch("talent_match.services.reranker.ollama_generate")
    def test_out_of_range_score_clamped(self, mock_generate, judge):
        mock_generate.return_value = '{"score": 1.4, "justification": "x"}'
        assert judge.judge_match("p", "j", "c").match_score == 1.0

    @patch("talent_match.services.reranker.ollama_generate")
    def test_unparseable_reply(self, mock_generate, judge):
        mock_generate.return_value = "I cannot score this candidate."
        with pytest.raises(JudgeError):
            judge.judge_match("p", "j", "c")

    @patch("talent_match.services.reranker.ollama_generate")
    def test_transport_failure(self, mock_generate, judge):
        mock_generate.side_effect = requests.Timeout("read timed out")
        with pytest.raises(JudgeError) as exc_info:
            judge.judge_match("p", "j", "c")
        assert isinstance(exc_info.value.cause, requests.Timeout)
