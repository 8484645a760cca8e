"""
Feedback generator.

Turns check results and extra elements into learner-facing feedback:
a summary keyed to the score band, one detail per problem (correct parts
are never listed) and at most three hints, most important first.
"""

from collections import Counter

from .checker import NESTING_SLOT
from .config import INVALID_INPUT_SUMMARY, SCORE_BANDS, SEVERITY_ICONS
from .config_loader import GradingSettings
from .models import (
    CheckResult,
    CheckStatus,
    ExtraElementReport,
    Feedback,
    FeedbackDetail,
    MismatchSeverity,
    Severity,
    ValueDiff,
)
from .opcodes import LIST_REPORTER_OPCODE, get_block_label
from .program_parser import VARIABLE_FIELDS

# Lower comes first, for both details and hints
PRIORITY_CATEGORY_SUMMARY = 0
PRIORITY_MISSING = 1
PRIORITY_MAJOR_VALUE = 2
PRIORITY_ORDER = 3
PRIORITY_MINOR_VALUE = 4
PRIORITY_COUNT = 5
PRIORITY_EXTRA = 6


class FeedbackBuilder:
    """
    Accumulates details and hint candidates, then renders a Feedback.

    Each generator call owns its own builder.
    """

    def __init__(self) -> None:
        self.details: list[FeedbackDetail] = []
        self.hints: list[tuple[int, str]] = []

    def add_detail(self, severity: Severity, message: str, priority: int, category: str | None = None) -> None:
        self.details.append(
            FeedbackDetail(
                severity=severity,
                icon=SEVERITY_ICONS[severity.value],
                message=message,
                priority=priority,
                category=category,
            )
        )

    def add_hint(self, hint: str, priority: int) -> None:
        self.hints.append((priority, hint))

    def build(self, summary: str, max_hints: int) -> Feedback:
        details = sorted(self.details, key=lambda d: d.priority)

        hints: list[str] = []
        for _, hint in sorted(self.hints, key=lambda item: item[0]):
            if hint not in hints:
                hints.append(hint)

        return Feedback(summary=summary, details=details, hints=hints[:max_hints])


def summary_for_score(score: int) -> str:
    for minimum, sentence in SCORE_BANDS:
        if score >= minimum:
            return sentence
    return SCORE_BANDS[-1][1]


def invalid_input_feedback() -> Feedback:
    return Feedback(summary=INVALID_INPUT_SUMMARY, details=[], hints=[])


def _format_value(value) -> str:
    if value is None:
        return "nothing"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def generate_feedback(
    block_results: list[CheckResult],
    order_results: list[CheckResult],
    extras: ExtraElementReport,
    score: int,
    settings: GradingSettings | None = None,
) -> Feedback:
    """
    Build the feedback for one evaluation.

    Args:
        block_results: One result per requirement.
        order_results: Order violations.
        extras: Extra blocks and variables.
        score: Final score.
        settings: Grading settings (hint cap, category summary threshold).

    Returns:
        Feedback with summary, prioritized details and capped hints.
    """
    settings = settings or GradingSettings()
    builder = FeedbackBuilder()
    issue_categories: Counter[str] = Counter()

    for result in block_results:
        if result.status == CheckStatus.SATISFIED:
            continue
        issue_categories[result.requirement.category] += 1
        _describe_requirement(builder, result)

    for result in order_results:
        if result.status != CheckStatus.ORDER_VIOLATION:
            continue
        issue_categories[result.requirement.category] += 1
        later = result.following.label if result.following else "the next block"
        builder.add_detail(
            Severity.ERROR,
            f"'{result.requirement.label}' should come before '{later}'.",
            PRIORITY_ORDER,
            result.requirement.category,
        )
        builder.add_hint("Try putting the blocks in the right order.", PRIORITY_ORDER)

    extra_counts: Counter[tuple[str, str]] = Counter((block.label, block.category) for block in extras.blocks)
    for (label, category), count in extra_counts.items():
        issue_categories[category] += 1
        suffix = f" ({count} extra)" if count > 1 else ""
        builder.add_detail(
            Severity.WARNING,
            f"The '{label}' block is not needed{suffix}.",
            PRIORITY_EXTRA,
            category,
        )
        builder.add_hint("Remove the blocks that the task does not need.", PRIORITY_EXTRA)

    for variable in extras.variables:
        kind = "list" if variable.is_list else "variable"
        builder.add_detail(
            Severity.WARNING,
            f"The {kind} '{variable.name}' is not needed.",
            PRIORITY_EXTRA,
            "Lists" if variable.is_list else "Variables",
        )
        builder.add_hint(f"Remove the {kind}s that the task does not need.", PRIORITY_EXTRA)

    if len(issue_categories) >= settings.category_summary_threshold:
        # Counter.most_common keeps first-seen order among ties
        category, count = issue_categories.most_common(1)[0]
        builder.add_detail(
            Severity.WARNING,
            f"Most of the issues are in the {category} category ({count} issue{'s' if count != 1 else ''}).",
            PRIORITY_CATEGORY_SUMMARY,
            category,
        )

    return builder.build(summary_for_score(score), settings.max_hints)


def _describe_diff(diff: ValueDiff) -> str:
    if diff.slot in VARIABLE_FIELDS:
        kind = "list" if diff.slot == "LIST" else "variable"
        actual = f"'{diff.actual}'" if diff.actual is not None else "missing"
        return f"the {kind} is {actual} instead of '{diff.expected}'"
    return f"{diff.slot} is {_format_value(diff.actual)} instead of {_format_value(diff.expected)}"


def _describe_requirement(builder: FeedbackBuilder, result: CheckResult) -> None:
    requirement = result.requirement
    label, category = requirement.label or requirement.opcode, requirement.category

    if result.status == CheckStatus.MISSING:
        if requirement.variable_id is not None:
            kind = "list" if requirement.opcode == LIST_REPORTER_OPCODE else "variable"
            builder.add_detail(Severity.ERROR, f"The {kind} '{label}' is missing.", PRIORITY_MISSING, category)
            builder.add_hint(f"Create the {kind} '{label}' and use it where the task needs it.", PRIORITY_MISSING)
            return
        builder.add_detail(Severity.ERROR, f"The '{label}' block is missing.", PRIORITY_MISSING, category)
        builder.add_hint(f"Add the '{label}' block from the {category} category.", PRIORITY_MISSING)
        return

    if result.status == CheckStatus.COUNT_MISMATCH:
        found, expected = result.found_count, requirement.expected_count
        if found < expected:
            message = f"You have {found} '{label}' block(s), but {expected} are needed."
        else:
            message = f"You have {found} '{label}' blocks, but {expected} is enough."
        # Missing or doubling the expected amount is an error, smaller gaps a warning
        severity = Severity.ERROR if abs(found - expected) >= expected else Severity.WARNING
        builder.add_detail(severity, message, PRIORITY_COUNT, category)
        builder.add_hint(f"Check how many '{label}' blocks you need.", PRIORITY_COUNT)
        return

    if result.status == CheckStatus.VALUE_MISMATCH:
        value_diffs = [diff for diff in result.value_diffs if diff.slot != NESTING_SLOT]
        placement = [diff for diff in result.value_diffs if diff.slot == NESTING_SLOT]

        if placement:
            container = get_block_label(placement[0].expected)
            builder.add_detail(
                Severity.ERROR,
                f"The '{label}' block should be inside '{container}'.",
                PRIORITY_MAJOR_VALUE,
                category,
            )
            builder.add_hint(f"Check which blocks belong inside '{container}'.", PRIORITY_MAJOR_VALUE)

        if not value_diffs:
            return
        changes = ", ".join(_describe_diff(diff) for diff in value_diffs)
        if all(diff.severity == MismatchSeverity.MINOR for diff in value_diffs):
            builder.add_detail(
                Severity.WARNING,
                f"A value in '{label}' is slightly off: {changes}.",
                PRIORITY_MINOR_VALUE,
                category,
            )
            builder.add_hint(f"Fine-tune the value in '{label}'.", PRIORITY_MINOR_VALUE)
        else:
            builder.add_detail(
                Severity.ERROR,
                f"A value in '{label}' is wrong: {changes}.",
                PRIORITY_MAJOR_VALUE,
                category,
            )
            builder.add_hint(f"Check the value you entered in '{label}'.", PRIORITY_MAJOR_VALUE)
