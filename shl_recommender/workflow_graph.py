"""
LangGraph-based Workflow Orchestration

Implements the recommendation pipeline as an explicit state machine:

    START → extract → retrieve → balance → END

* extract:  heuristic requirement signal (plus optional Gemini narrative)
* retrieve: nearest neighbours from the embedding store (2 × top_k)
* balance:  test-type quotas, then truncation to top_k

Each request runs its own graph invocation; the only shared object is the
embedding store, which is initialized once and read-only afterwards.
"""

import asyncio
import threading
from functools import partial
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from .catalogue import load_catalogue
from .config import (
    CANDIDATE_MULTIPLIER,
    CATALOGUE_PATH,
    DEFAULT_TOP_K,
    EMBEDDINGS_PATH,
    ENABLE_NARRATIVE,
    MAX_TOP_K,
)
from .embedding_store import EmbeddingStore
from .embeddings import VectorEncoder
from .logging_config import get_logger
from .models import (
    CANONICAL_SCHEMA_VERSION,
    RequirementSignal,
    ScoredAssessment,
    format_recommendation,
)
from .requirement_signal import RequirementNarrator, classify
from .test_type_balancer import DEFAULT_QUOTAS, BalanceQuotas, balance

logger = get_logger(__name__)


class WorkflowState(TypedDict):
    """
    State object passed through the workflow graph.

    Attributes:
        query: Original user query
        top_k: Number of results requested (already clamped)
        signal: Requirement signal derived from the query
        narrative: Optional LLM narrative for display
        candidates: Retrieval results before balancing
        results: Final balanced, truncated results
        error: Error message if any step failed
    """
    query: str
    top_k: int
    signal: Optional[RequirementSignal]
    narrative: Optional[str]
    candidates: List[ScoredAssessment]
    results: List[ScoredAssessment]
    error: Optional[str]


def clamp_top_k(top_k: Optional[int]) -> int:
    if top_k is None:
        return DEFAULT_TOP_K
    return max(0, min(int(top_k), MAX_TOP_K))


def build_default_store() -> EmbeddingStore:
    """Store backed by the configured snapshot, falling back to the catalogue file."""
    return EmbeddingStore(
        encoder=VectorEncoder(),
        record_source=partial(load_catalogue, CATALOGUE_PATH),
        snapshot_path=EMBEDDINGS_PATH,
    )


class WorkflowOrchestrator:
    """
    LangGraph workflow orchestrator for assessment recommendations.

    Args:
        store: Embedding store to query; defaults to the configured one
        narrator: Optional narrative provider; defaults to a Gemini
            narrator when ``ENABLE_NARRATIVE`` is set
        quotas: Balancer quotas
    """

    def __init__(
        self,
        store: Optional[EmbeddingStore] = None,
        narrator: Optional[RequirementNarrator] = None,
        quotas: BalanceQuotas = DEFAULT_QUOTAS,
    ):
        logger.info("Initializing LangGraph Workflow Orchestrator")

        self.store = store if store is not None else build_default_store()
        if narrator is None and ENABLE_NARRATIVE:
            narrator = RequirementNarrator()
        self.narrator = narrator
        self.quotas = quotas

        self.graph = self._build_graph()
        logger.info("Workflow graph initialized successfully")

    def _build_graph(self):
        workflow = StateGraph(WorkflowState)

        workflow.add_node("extract", self._extract_node)
        workflow.add_node("retrieve", self._retrieve_node)
        workflow.add_node("balance", self._balance_node)

        workflow.set_entry_point("extract")
        workflow.add_edge("extract", "retrieve")
        workflow.add_edge("retrieve", "balance")
        workflow.add_edge("balance", END)

        return workflow.compile()

    async def ensure_ready(self) -> None:
        """Load or build the embedding store without blocking the event loop."""
        await asyncio.to_thread(self.store.ensure_ready)

    async def _extract_node(self, state: WorkflowState) -> WorkflowState:
        """Stage 1: requirement signal (always) and narrative (when enabled)."""
        signal = classify(state["query"])
        state["signal"] = signal
        logger.info(f"Stage 1: Extract - signal={signal.to_dict()}")

        if self.narrator is not None and self.narrator.enabled:
            # describe() never raises; a missing narrative leaves ranking untouched
            state["narrative"] = await asyncio.to_thread(self.narrator.describe, state["query"])
        return state

    async def _retrieve_node(self, state: WorkflowState) -> WorkflowState:
        """Stage 2: nearest neighbours, twice as many as will be returned."""
        k = state["top_k"] * CANDIDATE_MULTIPLIER
        try:
            candidates = await self.store.aquery(state["query"], k)
        except Exception as e:
            logger.error(f"  ✗ Retrieval failed: {e}", exc_info=True)
            state["error"] = f"Retrieval failed: {e}"
            candidates = []

        state["candidates"] = candidates
        logger.info(f"Stage 2: Retrieve - {len(candidates)} candidates (k={k})")
        return state

    async def _balance_node(self, state: WorkflowState) -> WorkflowState:
        """Stage 3: test-type balancing and truncation to top_k."""
        signal = state.get("signal") or RequirementSignal()
        balanced = balance(state.get("candidates") or [], signal, self.quotas)
        state["results"] = balanced[:state["top_k"]]
        logger.info(f"Stage 3: Balance - returning {len(state['results'])} results")
        return state

    async def run(self, query: str, top_k: Optional[int] = DEFAULT_TOP_K) -> Dict[str, Any]:
        """
        Execute the workflow for a given query.

        Args:
            query: User query string
            top_k: Number of results (default 10, capped at 10)

        Returns:
            Dictionary containing:
                - results: Ranked ScoredAssessment list (length <= top_k)
                - requirements: The RequirementSignal used for balancing
                - narrative: Optional display narrative
                - error: Error message if a stage failed, else None
        """
        query = str(query or "")
        logger.info(f"Starting workflow for query: {query[:80]}")

        initial_state: WorkflowState = {
            "query": query,
            "top_k": clamp_top_k(top_k),
            "signal": None,
            "narrative": None,
            "candidates": [],
            "results": [],
            "error": None,
        }

        final_state = await self.graph.ainvoke(initial_state)

        return {
            "query": query,
            "results": final_state.get("results") or [],
            "requirements": final_state.get("signal") or classify(query),
            "narrative": final_state.get("narrative"),
            "error": final_state.get("error"),
        }

    async def recommend(self, query: str, top_k: Optional[int] = DEFAULT_TOP_K) -> List[ScoredAssessment]:
        result = await self.run(query, top_k)
        return result["results"]

    async def get_recommendations(
        self,
        query: str,
        top_k: Optional[int] = DEFAULT_TOP_K,
        schema_version: int = CANONICAL_SCHEMA_VERSION,
    ) -> List[Dict[str, Any]]:
        """Ranked recommendations serialized for callers."""
        results = await self.recommend(query, top_k)
        return [format_recommendation(r, schema_version) for r in results]

    async def recommend_urls(self, query: str, top_k: Optional[int] = DEFAULT_TOP_K) -> List[str]:
        """Ranked urls only; the shape the evaluator consumes."""
        return [r.record.url for r in await self.recommend(query, top_k)]


# Singleton instance
_orchestrator: Optional[WorkflowOrchestrator] = None
_orchestrator_lock = threading.Lock()


def get_orchestrator() -> WorkflowOrchestrator:
    """Get or create the workflow orchestrator singleton."""
    global _orchestrator
    if _orchestrator is None:
        with _orchestrator_lock:
            if _orchestrator is None:
                _orchestrator = WorkflowOrchestrator()
    return _orchestrator


async def run_workflow_graph(query: str, top_k: int = DEFAULT_TOP_K) -> List[Dict[str, Any]]:
    """
    Convenience function to run the workflow and return serialized results.

    Args:
        query: User query string
        top_k: Number of results

    Returns:
        List of recommended assessments
    """
    orchestrator = get_orchestrator()
    return await orchestrator.get_recommendations(query, top_k)


if __name__ == "__main__":
    async def test():
        from .logging_config import setup_logging
        setup_logging(level="INFO")

        test_query = "I am hiring for Java developers who can also collaborate effectively with my business teams."
        results = await run_workflow_graph(test_query)

        print("\n" + "=" * 80)
        print("TOP 5 RESULTS:")
        print("=" * 80)
        for i, assessment in enumerate(results[:5], 1):
            print(f"{i}. {assessment['name']}")
            print(f"   Type: {assessment['test_type']}  Score: {assessment['relevance_score']:.3f}")
            print()

    asyncio.run(test())
