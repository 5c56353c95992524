"""
Stage graph shared by the match orchestrators.

EMBEDDING -> RETRIEVING -> SCORING|RERANKING -> SORTING -> DONE, with a
DEGRADED branch entered when embedding or retrieval fails and degradation
is allowed. Document store errors are never caught here.
"""
import operator
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from talent_match.models.models import Neighbor
from talent_match.utils.exceptions import EmbeddingGenerationError, RetrievalError
from talent_match.utils.logging_config import get_logger

logger = get_logger(__name__)

EMBEDDING = "EMBEDDING"
RETRIEVING = "RETRIEVING"
SCORING = "SCORING"
RERANKING = "RERANKING"
DEGRADED = "DEGRADED"
SORTING = "SORTING"
DONE = "DONE"


class MatchState(TypedDict, total=False):
    context: Dict[str, Any]
    stages: Annotated[List[str], operator.add]
    embedding: Optional[List[float]]
    neighbors: List[Neighbor]
    degraded: bool
    error: Optional[str]
    results: List[Any]
    considered: int


StageFn = Callable[[MatchState], Awaitable[Any]]


def build_match_graph(
    embed: StageFn,
    retrieve: StageFn,
    score: StageFn,
    sort: StageFn,
    allow_degraded: bool = True,
    score_stage: str = SCORING,
):
    """
    Compile a match pipeline from the orchestrator's stage callables.

    Args:
        embed: returns the query vector, or None when there is nothing to embed
        retrieve: returns neighbours for state["embedding"]
        score: returns scored results, or a {"results", "considered"} update
            when the pool it scored differs from state["neighbors"]; must honour
            state["degraded"]
        sort: returns the final ordered, truncated results
        allow_degraded: route embedding/retrieval failures to DEGRADED instead of raising
        score_stage: SCORING for the fast path, RERANKING for the LLM path
    """

    async def node_embed(state: MatchState):
        try:
            vector = await embed(state)
        except EmbeddingGenerationError as e:
            if not allow_degraded:
                raise
            logger.warning(f"Embedding unavailable, continuing degraded: {e.message}")
            return {"stages": [EMBEDDING], "degraded": True, "error": e.message}
        return {"stages": [EMBEDDING], "embedding": vector}

    async def node_retrieve(state: MatchState):
        try:
            neighbors = await retrieve(state)
        except (RetrievalError, EmbeddingGenerationError) as e:
            if not allow_degraded:
                raise
            logger.warning(f"Retrieval unavailable, continuing degraded: {e.message}")
            return {"stages": [RETRIEVING], "degraded": True, "error": e.message}
        return {"stages": [RETRIEVING], "neighbors": neighbors}

    async def node_degraded(state: MatchState):
        return {"stages": [DEGRADED], "neighbors": []}

    async def node_score(state: MatchState):
        out = await score(state)
        if isinstance(out, dict):
            return {"stages": [score_stage], **out}
        return {"stages": [score_stage], "results": out, "considered": len(state.get("neighbors") or [])}

    async def node_sort(state: MatchState):
        results = await sort(state)
        return {"stages": [SORTING], "results": results}

    async def node_done(state: MatchState):
        return {"stages": [DONE]}

    def after_embed(state: MatchState) -> str:
        if state.get("degraded"):
            return DEGRADED
        if state.get("embedding") is None:
            # nothing to search with, score directly
            return score_stage
        return RETRIEVING

    def after_retrieve(state: MatchState) -> str:
        return DEGRADED if state.get("degraded") else score_stage

    g = StateGraph(MatchState)
    g.add_node(EMBEDDING, node_embed)
    g.add_node(RETRIEVING, node_retrieve)
    g.add_node(DEGRADED, node_degraded)
    g.add_node(score_stage, node_score)
    g.add_node(SORTING, node_sort)
    g.add_node(DONE, node_done)
    g.set_entry_point(EMBEDDING)
    g.add_conditional_edges(EMBEDDING, after_embed, {
        DEGRADED: DEGRADED, RETRIEVING: RETRIEVING, score_stage: score_stage,
    })
    g.add_conditional_edges(RETRIEVING, after_retrieve, {
        DEGRADED: DEGRADED, score_stage: score_stage,
    })
    g.add_edge(DEGRADED, score_stage)
    g.add_edge(score_stage, SORTING)
    g.add_edge(SORTING, DONE)
    g.add_edge(DONE, END)
    return g.compile()


async def run_match_graph(graph, context: Dict[str, Any]) -> MatchState:
    initial: MatchState = {
        "context": context,
        "stages": [],
        "embedding": None,
        "neighbors": [],
        "degraded": False,
        "error": None,
        "results": [],
        "considered": 0,
    }
    return await graph.ainvoke(initial)
