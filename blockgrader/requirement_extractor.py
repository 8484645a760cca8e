"""
Requirement extraction.

Derives the grading checklist from the normalized reference program: one
requirement per distinct opcode, with its occurrence count, the literal
slot values and variable fields all its occurrences agree on, the
enclosing block they share and where it first appears. Every variable or
list the reference uses becomes a requirement of its own.
"""

from collections import Counter
from collections.abc import Iterable
from typing import Any

from .indexer import iter_all_blocks, iter_statements
from .models import FieldValue, IndexedBlock, IndexedProgram, Requirement
from .opcodes import LIST_REPORTER_OPCODE, VARIABLE_REPORTER_OPCODE, get_block_category, get_opcode_info
from .program_parser import VARIABLE_FIELDS


def literal_slots(block: IndexedBlock) -> dict[str, Any]:
    """
    Literal values bound to a block's slots.

    Covers literal inputs and dropdown fields; variable and list fields
    and expression slots are not literals.
    """
    slots = dict(block.literals)
    for name, field in block.fields.items():
        if name in VARIABLE_FIELDS or name in slots:
            continue
        slots[name] = field.value
    return slots


def variable_slots(block: IndexedBlock) -> dict[str, FieldValue]:
    """Variable and list fields of a block that name something."""
    return {
        name: field
        for name, field in block.fields.items()
        if name in VARIABLE_FIELDS and (field.ref_id is not None or field.value is not None)
    }


def _agreeing(common: dict[str, Any], current: dict[str, Any]) -> dict[str, Any]:
    return {slot: value for slot, value in common.items() if slot in current and current[slot] == value}


def extract_requirements(program: IndexedProgram) -> list[Requirement]:
    """
    Build the checklist for a normalized reference program.

    Args:
        program: Normalized reference program.

    Returns:
        Block requirements in order of first appearance, followed by one
        requirement per used variable or list.
    """
    counts: Counter[str] = Counter()
    first_seen: dict[str, dict[str, Any]] = {}
    common_values: dict[str, dict[str, Any]] = {}
    common_variables: dict[str, dict[str, FieldValue]] = {}
    used_variables: dict[str, tuple[str, bool]] = {}

    for script in program.scripts:
        ranks = {block.id: rank for rank, block in enumerate(iter_statements(script.blocks))}
        for block in iter_all_blocks(script.blocks):
            opcode = block.opcode
            counts[opcode] += 1
            slots = literal_slots(block)
            variables = variable_slots(block)

            for slot, field in variables.items():
                if field.ref_id is not None and field.ref_id not in used_variables:
                    used_variables[field.ref_id] = (str(field.value), slot == "LIST")

            if opcode not in first_seen:
                first_seen[opcode] = {
                    "script_key": script.key,
                    "order_rank": ranks.get(block.id),
                    "nesting_context": block.nesting_context,
                }
                common_values[opcode] = slots
                common_variables[opcode] = variables
                continue

            # Keep only what every occurrence agrees on
            common_values[opcode] = _agreeing(common_values[opcode], slots)
            common_variables[opcode] = _agreeing(common_variables[opcode], variables)
            if first_seen[opcode]["nesting_context"] != block.nesting_context:
                first_seen[opcode]["nesting_context"] = None

    requirements: list[Requirement] = []
    for opcode, origin in first_seen.items():
        info = get_opcode_info(opcode)
        requirements.append(
            Requirement(
                opcode=opcode,
                expected_count=counts[opcode],
                expected_values=common_values[opcode],
                expected_variables=common_variables[opcode],
                label=info.label,
                category=info.category,
                **origin,
            )
        )

    for var_id, (name, is_list) in used_variables.items():
        declared = program.variables.get(var_id)
        opcode = LIST_REPORTER_OPCODE if is_list else VARIABLE_REPORTER_OPCODE
        requirements.append(
            Requirement(
                opcode=opcode,
                variable_id=var_id,
                label=declared.name if declared else name,
                category=get_block_category(opcode),
            )
        )
    return requirements


def complete_requirements(requirements: Iterable[Requirement]) -> list[Requirement]:
    """Fill in labels and categories missing from caller-supplied requirements."""
    completed: list[Requirement] = []
    for requirement in requirements:
        info = get_opcode_info(requirement.opcode)
        completed.append(
            requirement.model_copy(
                update={
                    "label": requirement.label or info.label,
                    "category": requirement.category or info.category,
                }
            )
        )
    return completed
