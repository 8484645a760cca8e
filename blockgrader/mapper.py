"""
Variable mapper.

Matches submitted variables to reference variables by comparing their
usage fingerprints, so a learner who names a counter "apples" instead of
"counter" is not penalized.

The default policy is greedy: candidate pairs are taken
highest-similarity-first and a reference variable, once claimed, is no
longer available. This is a heuristic, not an optimal assignment; an
exact search is available for small variable counts via
`exact_variable_matching`.
"""

import logging
import math

from .config import MAPPING_COUNT_WEIGHT, MAPPING_POSITION_WEIGHT
from .config_loader import GradingSettings
from .models import UsageKind, VariableMapping, VariableUsageProfile

logger = logging.getLogger(__name__)

# Float tolerance when comparing similarities and written numeric values
EPSILON = 1e-9
VALUE_EPSILON = 0.01


def pattern_similarity(
    submitted: VariableUsageProfile,
    reference: VariableUsageProfile,
    count_weight: float = MAPPING_COUNT_WEIGHT,
    position_weight: float = MAPPING_POSITION_WEIGHT,
) -> float:
    """
    Similarity between two usage fingerprints, in [0, 1].

    Combines agreement of write/delta/read counts with agreement of
    opcodes (and written values) at corresponding positions. Declared
    names are ignored. A list never matches a scalar variable.

    Args:
        submitted: Profile from the submitted program.
        reference: Profile from the reference program.
        count_weight: Weight of the kind-count agreement.
        position_weight: Weight of the positional agreement.

    Returns:
        Similarity score.
    """
    if submitted.is_list != reference.is_list:
        return 0.0

    total_weight = count_weight + position_weight
    if total_weight <= 0:
        return 0.0

    score = (
        count_weight * _count_agreement(submitted, reference)
        + position_weight * _positional_agreement(submitted, reference)
    ) / total_weight
    return round(score, 6)


def _count_agreement(submitted: VariableUsageProfile, reference: VariableUsageProfile) -> float:
    a = submitted.kind_counts()
    b = reference.kind_counts()
    total = sum(max(a[kind], b[kind]) for kind in UsageKind)
    if total == 0:
        return 1.0
    return 1.0 - sum(abs(a[kind] - b[kind]) for kind in UsageKind) / total


def _positional_agreement(submitted: VariableUsageProfile, reference: VariableUsageProfile) -> float:
    first, second = submitted.usages, reference.usages
    if not first and not second:
        return 1.0
    if not first or not second:
        return 0.0

    matches = 0.0
    for usage_a, usage_b in zip(first, second):
        if usage_a.opcode != usage_b.opcode:
            continue
        matches += 0.5
        if _same_value(usage_a.value, usage_b.value):
            matches += 0.5
    return matches / max(len(first), len(second))


def _same_value(a, b) -> bool:
    if isinstance(a, (int, float)) and isinstance(b, (int, float)) and not isinstance(a, bool) and not isinstance(b, bool):
        return math.isclose(a, b, abs_tol=VALUE_EPSILON)
    return a == b


def map_variables(
    submitted: dict[str, VariableUsageProfile],
    reference: dict[str, VariableUsageProfile],
    settings: GradingSettings | None = None,
) -> VariableMapping:
    """
    Map submitted variable ids to reference variable ids.

    Args:
        submitted: Submitted profiles keyed by id.
        reference: Reference profiles keyed by id.
        settings: Grading settings (weights, threshold, matching mode).

    Returns:
        VariableMapping; every id ends up either paired or unmatched.
    """
    settings = settings or GradingSettings()
    sub_profiles = sorted(submitted.values(), key=lambda p: p.declaration_index)
    ref_profiles = sorted(reference.values(), key=lambda p: p.declaration_index)

    similarity: dict[tuple[str, str], float] = {}
    for sub in sub_profiles:
        for ref in ref_profiles:
            score = pattern_similarity(
                sub,
                ref,
                count_weight=settings.mapping_count_weight,
                position_weight=settings.mapping_position_weight,
            )
            if score >= settings.mapping_min_similarity:
                similarity[(sub.id, ref.id)] = score

    use_exact = (
        settings.exact_variable_matching
        and len(sub_profiles) <= settings.exact_matching_max_variables
        and len(ref_profiles) <= settings.exact_matching_max_variables
    )
    if use_exact:
        pairs = _exact_pairs(sub_profiles, ref_profiles, similarity)
    else:
        pairs = _greedy_pairs(sub_profiles, ref_profiles, similarity)

    claimed = set(pairs.values())
    mapping = VariableMapping(
        pairs=pairs,
        similarities={sub_id: similarity[(sub_id, ref_id)] for sub_id, ref_id in pairs.items()},
        unmatched_submitted=[p.id for p in sub_profiles if p.id not in pairs],
        unmatched_reference=[p.id for p in ref_profiles if p.id not in claimed],
    )

    logger.debug(
        "Variable mapping (%s): %s; unmatched submitted=%s, unmatched reference=%s",
        "exact" if use_exact else "greedy",
        {submitted[s].declared_name: reference[r].declared_name for s, r in mapping.pairs.items()},
        mapping.unmatched_submitted,
        mapping.unmatched_reference,
    )
    return mapping


def _greedy_pairs(
    sub_profiles: list[VariableUsageProfile],
    ref_profiles: list[VariableUsageProfile],
    similarity: dict[tuple[str, str], float],
) -> dict[str, str]:
    sub_order = {p.id: i for i, p in enumerate(sub_profiles)}
    ref_order = {p.id: i for i, p in enumerate(ref_profiles)}
    candidates = sorted(
        similarity.items(),
        key=lambda item: (-item[1], sub_order[item[0][0]], ref_order[item[0][1]]),
    )

    pairs: dict[str, str] = {}
    claimed: set[str] = set()
    for (sub_id, ref_id), _ in candidates:
        if sub_id in pairs or ref_id in claimed:
            continue
        pairs[sub_id] = ref_id
        claimed.add(ref_id)
    return pairs


def _exact_pairs(
    sub_profiles: list[VariableUsageProfile],
    ref_profiles: list[VariableUsageProfile],
    similarity: dict[tuple[str, str], float],
) -> dict[str, str]:
    """
    Maximum total similarity assignment by exhaustive search.

    Ties keep the first assignment found in declaration order.
    """
    best_total = -1.0
    best_pairs: dict[str, str] = {}
    current: dict[str, str] = {}

    def search(index: int, claimed: set[str], total: float) -> None:
        nonlocal best_total, best_pairs
        if index == len(sub_profiles):
            if total > best_total + EPSILON:
                best_total = total
                best_pairs = dict(current)
            return
        sub_id = sub_profiles[index].id
        for ref in ref_profiles:
            score = similarity.get((sub_id, ref.id))
            if score is None or ref.id in claimed:
                continue
            current[sub_id] = ref.id
            claimed.add(ref.id)
            search(index + 1, claimed, total + score)
            claimed.discard(ref.id)
            del current[sub_id]
        search(index + 1, claimed, total)

    search(0, set(), 0.0)
    return best_pairs
