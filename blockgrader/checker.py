"""
Requirement checker.

Evaluates each requirement against the normalized submission (presence,
count, literal values, variable fields and enclosing block), checks that
every reference variable is used, and checks that requirements from the
same reference script keep their relative order.
"""

import math
from collections import Counter, defaultdict
from itertools import combinations
from typing import Any

from .config_loader import GradingSettings
from .indexer import iter_all_blocks, iter_program_blocks
from .models import (
    CheckResult,
    CheckStatus,
    FieldValue,
    IndexedBlock,
    IndexedProgram,
    MismatchSeverity,
    Requirement,
    ValueDiff,
)
from .requirement_extractor import literal_slots, variable_slots

# ValueDiff slot used when a block sits outside its expected container
NESTING_SLOT = "<nesting>"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compare_values(expected: Any, actual: Any, tolerance: float) -> ValueDiff | None:
    """
    Compare one expected literal with the submitted one.

    Numbers whose relative gap (against the expected magnitude, floored at
    1) is within `tolerance` are a minor mismatch. Strings that only differ
    in case or spacing are a minor mismatch. Anything else is major.

    Args:
        expected: Value from the requirement.
        actual: Value found in the submission (None if the slot holds no literal).
        tolerance: Largest relative gap still counted as minor.

    Returns:
        None when the values match, otherwise a ValueDiff with slot left blank.
    """
    if _is_number(expected) and _is_number(actual):
        if expected == actual:
            return None
        gap = abs(actual - expected) / max(abs(expected), 1.0)
        if not math.isfinite(gap):
            gap = math.inf
        severity = MismatchSeverity.MINOR if gap <= tolerance else MismatchSeverity.MAJOR
        return ValueDiff(slot="", expected=expected, actual=actual, severity=severity, relative_gap=gap)

    if expected == actual and type(expected) is type(actual):
        return None

    if isinstance(expected, str) and isinstance(actual, str) and _loose_text(expected) == _loose_text(actual):
        return ValueDiff(slot="", expected=expected, actual=actual, severity=MismatchSeverity.MINOR)

    return ValueDiff(slot="", expected=expected, actual=actual, severity=MismatchSeverity.MAJOR)


def _loose_text(text: str) -> str:
    return " ".join(text.split()).casefold()


def check_requirements(
    program: IndexedProgram,
    requirements: list[Requirement],
    settings: GradingSettings | None = None,
) -> list[CheckResult]:
    """
    Check every requirement against a normalized submission.

    Args:
        program: Normalized submitted program.
        requirements: Checklist to verify.
        settings: Grading settings (value tolerance).

    Returns:
        One CheckResult per requirement, in requirement order.
    """
    settings = settings or GradingSettings()
    occurrences: dict[str, list[IndexedBlock]] = defaultdict(list)
    variable_uses: Counter[str] = Counter()
    for _, block in iter_program_blocks(program):
        occurrences[block.opcode].append(block)
        for field in variable_slots(block).values():
            if field.ref_id is not None:
                variable_uses[field.ref_id] += 1

    results: list[CheckResult] = []
    for requirement in requirements:
        if requirement.variable_id is not None:
            results.append(_check_variable(requirement, variable_uses[requirement.variable_id]))
        else:
            results.append(_check_one(requirement, occurrences.get(requirement.opcode, []), settings))
    return results


def _check_variable(requirement: Requirement, uses: int) -> CheckResult:
    if uses == 0:
        return CheckResult(
            requirement=requirement,
            status=CheckStatus.MISSING,
            detail=f"variable {requirement.variable_id}: not used",
        )
    return CheckResult(
        requirement=requirement,
        status=CheckStatus.SATISFIED,
        detail=f"variable {requirement.variable_id}: ok",
        found_count=uses,
    )


def _compare_variable(expected: FieldValue, actual: FieldValue | None) -> ValueDiff | None:
    if actual is None:
        return ValueDiff(slot="", expected=expected.value, actual=None, severity=MismatchSeverity.MAJOR)
    # Author-written requirements may name a variable without its id
    if expected.ref_id is not None:
        same = actual.ref_id == expected.ref_id
    else:
        same = actual.value == expected.value
    if same:
        return None
    return ValueDiff(slot="", expected=expected.value, actual=actual.value, severity=MismatchSeverity.MAJOR)


def _block_diffs(requirement: Requirement, block: IndexedBlock, settings: GradingSettings) -> list[ValueDiff]:
    diffs: list[ValueDiff] = []

    slots = literal_slots(block)
    for slot, expected_value in requirement.expected_values.items():
        diff = compare_values(expected_value, slots.get(slot), settings.minor_value_tolerance)
        if diff is not None:
            diffs.append(diff.model_copy(update={"slot": slot}))

    for slot, expected_field in requirement.expected_variables.items():
        diff = _compare_variable(expected_field, block.fields.get(slot))
        if diff is not None:
            diffs.append(diff.model_copy(update={"slot": slot}))

    # Top-level placement is not enforced
    if requirement.nesting_context is not None and block.nesting_context != requirement.nesting_context:
        diffs.append(
            ValueDiff(
                slot=NESTING_SLOT,
                expected=requirement.nesting_context,
                actual=block.nesting_context,
                severity=MismatchSeverity.MAJOR,
            )
        )
    return diffs


def _check_one(requirement: Requirement, found: list[IndexedBlock], settings: GradingSettings) -> CheckResult:
    count = len(found)
    expected = requirement.expected_count
    matched_ids = [block.id for block in found[:expected]]

    if count == 0:
        return CheckResult(
            requirement=requirement,
            status=CheckStatus.MISSING,
            detail=f"{requirement.opcode}: not found",
        )

    if count != expected:
        return CheckResult(
            requirement=requirement,
            status=CheckStatus.COUNT_MISMATCH,
            detail=f"{requirement.opcode}: found {count}, expected {expected}",
            found_count=count,
            matched_block_ids=matched_ids,
        )

    diffs: list[ValueDiff] = []
    seen: set[tuple[str, str]] = set()
    for block in found:
        for diff in _block_diffs(requirement, block, settings):
            key = (diff.slot, repr(diff.actual))
            if key in seen:
                continue
            seen.add(key)
            diffs.append(diff)

    if not diffs:
        return CheckResult(
            requirement=requirement,
            status=CheckStatus.SATISFIED,
            detail=f"{requirement.opcode}: ok",
            found_count=count,
            matched_block_ids=matched_ids,
        )

    severity = (
        MismatchSeverity.MAJOR
        if any(diff.severity == MismatchSeverity.MAJOR for diff in diffs)
        else MismatchSeverity.MINOR
    )
    return CheckResult(
        requirement=requirement,
        status=CheckStatus.VALUE_MISMATCH,
        severity=severity,
        detail=f"{requirement.opcode}: {len(diffs)} value(s) differ",
        found_count=count,
        value_diffs=diffs,
        matched_block_ids=matched_ids,
    )


def check_order(program: IndexedProgram, requirements: list[Requirement]) -> list[CheckResult]:
    """
    Check relative order between requirements of the same reference script.

    A pair passes when some submitted script has an occurrence of the
    earlier block before an occurrence of the later one. Pairs where either
    block is absent are left to the presence check.

    Args:
        program: Normalized submitted program.
        requirements: Checklist; only requirements with an order rank take part.

    Returns:
        One ORDER_VIOLATION result per violated pair. Passing pairs produce nothing.
    """
    # opcode -> [(first position, last position) per script containing it]
    spans: dict[str, dict[str, tuple[int, int]]] = defaultdict(dict)
    for script in program.scripts:
        for position, block in enumerate(iter_all_blocks(script.blocks)):
            first, _ = spans[block.opcode].get(script.key, (position, position))
            spans[block.opcode][script.key] = (first, position)

    groups: dict[str | None, list[Requirement]] = defaultdict(list)
    for requirement in requirements:
        if requirement.order_rank is not None:
            groups[requirement.script_key].append(requirement)

    violations: list[CheckResult] = []
    for group in groups.values():
        ordered = sorted(group, key=lambda r: r.order_rank)
        for earlier, later in combinations(ordered, 2):
            if earlier.order_rank == later.order_rank or earlier.opcode == later.opcode:
                continue
            earlier_spans = spans.get(earlier.opcode)
            later_spans = spans.get(later.opcode)
            if not earlier_spans or not later_spans:
                continue
            in_order = any(
                script_key in later_spans and earlier_spans[script_key][0] < later_spans[script_key][1]
                for script_key in earlier_spans
            )
            if not in_order:
                violations.append(
                    CheckResult(
                        requirement=earlier,
                        following=later,
                        status=CheckStatus.ORDER_VIOLATION,
                        detail=f"{earlier.opcode} should come before {later.opcode}",
                    )
                )
    return violations
