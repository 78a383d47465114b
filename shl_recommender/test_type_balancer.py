"""
Test Type Balancer - Enforces a mix of Knowledge vs Personality assessments

Raw similarity ranking tends to return results of a single test type. When
the requirement signal asks for mixed needs, the balancer takes a fixed
quota from each type bucket and re-sorts the selection by similarity. This
can push a highly similar item of an over-represented type below the
cutoff; that trade-off is intended.

Example:
    Query: "Java developer who collaborates with teams"
    Result: up to 6 Knowledge (K) + 4 Personality (P) tests
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .logging_config import get_logger
from .models import RequirementSignal, ScoredAssessment, TestType

logger = get_logger(__name__)

Quota = Dict[TestType, int]


@dataclass(frozen=True)
class BalanceQuotas:
    """How many candidates to take from each type bucket, per query profile."""

    technical_and_behavioral: Quota
    technical_only: Quota
    behavioral_only: Quota


DEFAULT_QUOTAS = BalanceQuotas(
    technical_and_behavioral={TestType.KNOWLEDGE: 6, TestType.PERSONALITY: 4},
    technical_only={TestType.KNOWLEDGE: 8, TestType.OTHER: 2},
    behavioral_only={TestType.PERSONALITY: 8, TestType.OTHER: 2},
)


def partition_by_type(candidates: Sequence[ScoredAssessment]) -> Dict[TestType, List[ScoredAssessment]]:
    """Split candidates into K/P/O buckets, keeping their incoming order."""
    buckets: Dict[TestType, List[ScoredAssessment]] = {t: [] for t in TestType}
    for c in candidates:
        buckets[c.record.test_type].append(c)
    return buckets


def select_quota(signal: RequirementSignal, quotas: BalanceQuotas = DEFAULT_QUOTAS) -> Optional[Quota]:
    """Return the quota for ``signal``, or None when no balancing applies."""
    if signal.needs_technical and signal.needs_behavioral:
        return quotas.technical_and_behavioral
    if signal.needs_technical:
        return quotas.technical_only
    if signal.needs_behavioral:
        return quotas.behavioral_only
    return None


def balance(
    candidates: Sequence[ScoredAssessment],
    signal: RequirementSignal,
    quotas: BalanceQuotas = DEFAULT_QUOTAS,
) -> List[ScoredAssessment]:
    """
    Balance candidate assessments by test type.

    Algorithm:
    1. Categorize candidates into K/P/O buckets by test_type
    2. Pick the quota matching the signal (technical+behavioral,
       technical only, behavioral only)
    3. Take the first N of each bucket named by the quota
    4. Sort the selection by similarity, descending; ties keep bucket order

    When the signal is neither technical nor behavioral every candidate is
    passed through. Truncation to the caller's ``top_k`` is left to the
    caller.

    Args:
        candidates: Retrieval results in descending similarity order
        signal: Requirement signal of the query
        quotas: Per-profile bucket quotas

    Returns:
        Balanced list of candidates, sorted by similarity
    """
    quota = select_quota(signal, quotas)
    if quota is None:
        logger.info("Query is neither technical nor behavioral → no balancing")
        balanced = list(candidates)
    else:
        buckets = partition_by_type(candidates)
        logger.info(
            f"Available candidates: K={len(buckets[TestType.KNOWLEDGE])}, "
            f"P={len(buckets[TestType.PERSONALITY])}, O={len(buckets[TestType.OTHER])}"
        )

        balanced = []
        for typ, take in quota.items():
            picked = buckets[typ][:take]
            balanced.extend(picked)
            logger.debug(f"Picked {len(picked)}/{take} from type {typ.value}")

        logger.info(
            "Balancing allocation: "
            + ", ".join(f"{t.value}={n}" for t, n in quota.items())
        )

    # sorted() is stable, also with reverse=True
    balanced = sorted(balanced, key=lambda c: c.similarity, reverse=True)
    logger.info(f"Final balanced result: {len(balanced)} candidates")
    return balanced
