"""
Grading engine entry point.

Runs the pipeline for one submission:
parse -> index -> profile -> map variables -> normalize -> extract
requirements -> check -> detect extras -> score -> feedback.
Every stage returns new values; nothing is shared between calls.
"""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from .checker import check_order, check_requirements
from .config_loader import GradingSettings
from .errors import InputError
from .extras import detect_extras
from .feedback import generate_feedback, invalid_input_feedback
from .indexer import index_program
from .mapper import map_variables
from .models import EvaluationResult, Program, Requirement
from .normalizer import identity_mapping, normalize_program
from .profiler import build_usage_profiles
from .program_parser import parse_program
from .requirement_extractor import complete_requirements, extract_requirements
from .scorer import compute_score

logger = logging.getLogger(__name__)


def evaluate(
    submitted_program: dict | Program | None,
    reference_program: dict | Program | None,
    requirements: Iterable[Requirement | dict[str, Any]] | None = None,
    settings: GradingSettings | None = None,
) -> EvaluationResult:
    """
    Grade a submitted program against a reference program.

    Never raises for wrong answers. An absent or target-less document, a
    reference with no gradable script or an empty requirement list yields
    a zero score with an "invalid data" summary.

    Args:
        submitted_program: Learner's parsed manifest.
        reference_program: Reference solution's parsed manifest.
        requirements: Optional curated checklist replacing automatic extraction.
        settings: Calibratable grading constants.

    Returns:
        EvaluationResult with score, correctness and feedback.
    """
    settings = settings or GradingSettings()
    try:
        submitted = parse_program(submitted_program)
        reference = parse_program(reference_program)
        curated = _validate_requirements(requirements)
        reference_index = index_program(reference, settings.max_chain_length, settings.max_nesting_depth)
        if not reference_index.scripts:
            raise InputError("Reference program has no gradable scripts")
    except InputError as e:
        logger.warning("Invalid grading input: %s", e)
        return EvaluationResult(score=0, is_correct=False, feedback=invalid_input_feedback())

    submitted_index = index_program(submitted, settings.max_chain_length, settings.max_nesting_depth)

    submitted_profiles = build_usage_profiles(submitted_index)
    reference_profiles = build_usage_profiles(reference_index)
    logger.debug("Reference variables: %s", _describe_profiles(reference_profiles))
    logger.debug("Submitted variables: %s", _describe_profiles(submitted_profiles))

    mapping = map_variables(submitted_profiles, reference_profiles, settings)

    normalized_reference = normalize_program(reference_index, identity_mapping(reference_index))
    normalized_submitted = normalize_program(submitted_index, mapping, reference_index.variables)

    checklist = curated if curated is not None else extract_requirements(normalized_reference)

    block_results = check_requirements(normalized_submitted, checklist, settings)
    order_results = check_order(normalized_submitted, checklist)
    extras = detect_extras(normalized_submitted, block_results, mapping, submitted_profiles)

    score = compute_score(block_results, order_results, extras, settings)
    feedback = generate_feedback(block_results, order_results, extras, score, settings)

    return EvaluationResult(score=score, is_correct=score >= settings.passing_score, feedback=feedback)


def _validate_requirements(requirements) -> list[Requirement] | None:
    if requirements is None:
        return None
    try:
        parsed = [item if isinstance(item, Requirement) else Requirement.model_validate(item) for item in requirements]
    except ValidationError as e:
        raise InputError(f"Invalid requirement list: {e}") from e
    if not parsed:
        raise InputError("Requirement list is empty")
    return complete_requirements(parsed)


def _describe_profiles(profiles) -> list[dict]:
    return [
        {"id": p.id, "name": p.declared_name, "usages": [u.kind.value for u in p.usages]}
        for p in profiles.values()
    ]
