"""
Recall@K evaluation of a recommender against labeled queries.
"""

import inspect
import math
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Sequence, Union

from .logging_config import get_logger
from .models import EvaluationReport, EvaluationResult

logger = get_logger(__name__)

RecommenderFn = Callable[[str], Union[Sequence[str], Awaitable[Sequence[str]]]]


def recall_at_k(predicted: Sequence[str], ground_truth: Iterable[str], k: int = 10) -> float:
    """
    Fraction of ground-truth urls found in the first ``k`` predictions.

    Returns 0.0 when the ground truth is empty.
    """
    truth = set(ground_truth or ())
    if not truth:
        return 0.0
    top_k = set(list(predicted or ())[:max(k, 0)])
    hits = sum(1 for url in truth if url in top_k)
    return hits / len(truth)


def mean_recall_at_k(results: Sequence[EvaluationResult], k: int = 10) -> float:
    """
    Mean recall@k over evaluation results.

    The mean of nothing is undefined: an empty ``results`` gives ``nan`` and
    callers are expected to guard against it.
    """
    if not results:
        return math.nan
    recalls = [recall_at_k(r.predictions, r.ground_truth, k) for r in results]
    return sum(recalls) / len(recalls)


def _ground_truth_of(item: Mapping[str, Any]) -> List[str]:
    raw = item.get("ground_truth_urls")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple, set)):
        return []
    return [str(u).strip() for u in raw if isinstance(u, str) and u.strip()]


def _score_item(item: Mapping[str, Any], predictions: Sequence[str], k: int) -> EvaluationResult:
    query = str(item.get("query", ""))
    ground_truth = _ground_truth_of(item)
    if not ground_truth:
        logger.warning(f"Missing or malformed ground truth for query: {query[:80]}")
    predictions = [str(p) for p in predictions]
    return EvaluationResult(
        query=query,
        recall=recall_at_k(predictions, ground_truth, k),
        predictions=predictions,
        ground_truth=ground_truth,
        k=k,
    )


def _report(results: List[EvaluationResult], k: int) -> EvaluationReport:
    if not results:
        logger.warning("No labeled queries evaluated; reporting mean recall 0.0")
        mean = 0.0
    else:
        mean = mean_recall_at_k(results, k)
    logger.info(f"Recall@{k}: {mean:.4f} over {len(results)} queries")
    return EvaluationReport(mean_recall=mean, k=k, detailed_results=results)


def _as_item(item: Any) -> Mapping[str, Any]:
    return item if isinstance(item, Mapping) else {}


def evaluate(
    recommender_fn: Callable[[str], Sequence[str]],
    labeled_set: Iterable[Mapping[str, Any]],
    k: int = 10,
) -> EvaluationReport:
    """
    Score a synchronous recommender on a labeled set.

    Args:
        recommender_fn: Maps a query to its ranked list of urls
        labeled_set: Items shaped ``{"query", "ground_truth_urls"}``
        k: Cutoff for recall

    Returns:
        EvaluationReport with the mean and per-query results
    """
    results: List[EvaluationResult] = []
    for raw in labeled_set:
        item = _as_item(raw)
        predictions = recommender_fn(str(item.get("query", "")))
        results.append(_score_item(item, predictions, k))
    return _report(results, k)


async def aevaluate(
    recommender_fn: RecommenderFn,
    labeled_set: Iterable[Mapping[str, Any]],
    k: int = 10,
) -> EvaluationReport:
    """Like :func:`evaluate`, for recommenders that return awaitables."""
    results: List[EvaluationResult] = []
    for raw in labeled_set:
        item = _as_item(raw)
        predictions = recommender_fn(str(item.get("query", "")))
        if inspect.isawaitable(predictions):
            predictions = await predictions
        results.append(_score_item(item, predictions, k))
    return _report(results, k)
