from collections import Counter

from conftest import make_scored
from shl_recommender.models import RequirementSignal, TestType
from shl_recommender.test_type_balancer import (
    DEFAULT_QUOTAS,
    BalanceQuotas,
    balance,
    partition_by_type,
    select_quota,
)

K, P, O = TestType.KNOWLEDGE, TestType.PERSONALITY, TestType.OTHER

TECH_AND_BEHAVIORAL = RequirementSignal(needs_technical=True, needs_behavioral=True)
TECH_ONLY = RequirementSignal(needs_technical=True)
BEHAVIORAL_ONLY = RequirementSignal(needs_behavioral=True)
NEITHER = RequirementSignal()


def _candidates(types):
    """Candidates in descending similarity order with the given types."""
    n = len(types)
    return [make_scored(f"Item {i}", t, 1.0 - i / (n + 1)) for i, t in enumerate(types)]


def _types(results):
    return Counter(r.record.test_type for r in results)


def test_technical_and_behavioral_takes_six_k_four_p():
    candidates = _candidates([K] * 10 + [P] * 6 + [O] * 4)
    result = balance(candidates, TECH_AND_BEHAVIORAL)
    assert _types(result) == Counter({K: 6, P: 4})
    assert [r.similarity for r in result] == sorted((r.similarity for r in result), reverse=True)


def test_technical_only_takes_eight_k_two_o():
    candidates = _candidates([P] * 5 + [O] * 5 + [K] * 10)
    result = balance(candidates, TECH_ONLY)
    assert _types(result) == Counter({K: 8, O: 2})


def test_behavioral_only_takes_eight_p_two_o():
    candidates = _candidates([K] * 8 + [P] * 9 + [O] * 3)
    result = balance(candidates, BEHAVIORAL_ONLY)
    assert _types(result) == Counter({P: 8, O: 2})


def test_quota_takes_most_similar_of_each_bucket():
    candidates = _candidates([K, P, K, P, K, P, P, P, P, P])
    result = balance(candidates, TECH_AND_BEHAVIORAL)
    kept_p = [r for r in result if r.record.test_type is P]
    all_p = [c for c in candidates if c.record.test_type is P]
    assert kept_p == all_p[:4]


def test_short_bucket_yields_fewer_results():
    candidates = _candidates([K] * 10 + [P] * 2)
    result = balance(candidates, TECH_AND_BEHAVIORAL)
    assert _types(result) == Counter({K: 6, P: 2})
    assert len(result) == 8


def test_neither_passes_all_candidates_through():
    candidates = _candidates([O, K, P, O, K])
    assert balance(candidates, NEITHER) == candidates


def test_cognitive_only_passes_through():
    candidates = _candidates([K, P, O])
    signal = RequirementSignal(needs_cognitive=True)
    assert balance(candidates, signal) == candidates


def test_result_is_resorted_by_similarity():
    # Bucket order is K then P; the merged list must interleave by score
    candidates = _candidates([P, K, P, K])
    result = balance(candidates, TECH_AND_BEHAVIORAL)
    assert result == candidates


def test_equal_scores_keep_bucket_order():
    candidates = [
        make_scored("P first", P, 0.5),
        make_scored("K second", K, 0.5),
    ]
    result = balance(candidates, TECH_AND_BEHAVIORAL)
    assert [r.record.name for r in result] == ["K second", "P first"]


def test_empty_candidates():
    assert balance([], TECH_AND_BEHAVIORAL) == []
    assert balance([], NEITHER) == []


def test_custom_quotas():
    quotas = BalanceQuotas(
        technical_and_behavioral={K: 1, P: 1},
        technical_only={K: 2},
        behavioral_only={P: 2},
    )
    candidates = _candidates([K] * 3 + [P] * 3 + [O] * 3)
    assert _types(balance(candidates, TECH_AND_BEHAVIORAL, quotas)) == Counter({K: 1, P: 1})
    assert _types(balance(candidates, TECH_ONLY, quotas)) == Counter({K: 2})


def test_select_quota():
    assert select_quota(TECH_AND_BEHAVIORAL) == DEFAULT_QUOTAS.technical_and_behavioral
    assert select_quota(TECH_ONLY) == {K: 8, O: 2}
    assert select_quota(BEHAVIORAL_ONLY) == {P: 8, O: 2}
    assert select_quota(NEITHER) is None


def test_partition_keeps_order():
    candidates = _candidates([K, P, K, O])
    buckets = partition_by_type(candidates)
    assert buckets[K] == [candidates[0], candidates[2]]
    assert buckets[P] == [candidates[1]]
    assert buckets[O] == [candidates[3]]
