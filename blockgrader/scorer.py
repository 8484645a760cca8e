"""
Scorer.

Folds check results and extra elements into an integer score in
[0, 100]. Pure function of its inputs.
"""

import math
from collections import defaultdict

from .config_loader import GradingSettings
from .models import CheckResult, CheckStatus, ExtraElementReport, MismatchSeverity


def requirement_credit(result: CheckResult, settings: GradingSettings) -> float:
    """Fraction of a requirement's share earned by a check result."""
    if result.status == CheckStatus.SATISFIED:
        return 1.0
    if result.status == CheckStatus.COUNT_MISMATCH:
        expected = result.requirement.expected_count
        found = result.found_count
        return settings.count_mismatch_credit * min(found, expected) / max(found, expected)
    if result.status == CheckStatus.VALUE_MISMATCH:
        if result.severity == MismatchSeverity.MINOR:
            return settings.minor_value_credit
        return settings.major_value_credit
    return 0.0


def compute_score(
    block_results: list[CheckResult],
    order_results: list[CheckResult],
    extras: ExtraElementReport,
    settings: GradingSettings | None = None,
) -> int:
    """
    Compute the 0-100 score.

    Each requirement owns a share of 100 proportional to its weight (1 when
    unset). Order violations cost a fixed penalty, never more than what
    the requirements of that script earned. Extra blocks and variables
    cost a small penalty up to a cap.

    Args:
        block_results: One result per requirement.
        order_results: Order violations.
        extras: Extra blocks and variables.
        settings: Grading settings (credits and penalties).

    Returns:
        Integer score, rounded half up.
    """
    settings = settings or GradingSettings()

    weights = [result.requirement.weight or 1.0 for result in block_results]
    total_weight = sum(weights)

    # An empty checklist earns nothing
    earned_by_script: dict[str | None, float] = defaultdict(float)
    for result, weight in zip(block_results, weights):
        share = 100.0 * weight / total_weight
        earned_by_script[result.requirement.script_key] += share * requirement_credit(result, settings)

    violations_by_script: dict[str | None, int] = defaultdict(int)
    for result in order_results:
        if result.status == CheckStatus.ORDER_VIOLATION:
            violations_by_script[result.requirement.script_key] += 1

    score = 0.0
    for script_key, earned in earned_by_script.items():
        penalty = violations_by_script.get(script_key, 0) * settings.order_violation_penalty
        score += max(earned - penalty, 0.0)

    extra_penalty = (
        len(extras.blocks) * settings.extra_block_penalty
        + len(extras.variables) * settings.extra_variable_penalty
    )
    score -= min(extra_penalty, settings.extra_penalty_cap)

    score = min(max(score, 0.0), 100.0)
    return int(math.floor(score + 0.5))
