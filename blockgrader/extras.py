"""
Extra-element detection.

Finds submitted blocks that no requirement occurrence accounts for and
submitted variables the mapper could not pair with a reference variable.
"""

from .indexer import iter_program_blocks
from .models import (
    CheckResult,
    CheckStatus,
    ExtraBlock,
    ExtraElementReport,
    ExtraVariable,
    IndexedProgram,
    VariableMapping,
    VariableUsageProfile,
)
from .opcodes import get_block_category, get_block_label

CLAIMING_STATUSES = {CheckStatus.SATISFIED, CheckStatus.COUNT_MISMATCH, CheckStatus.VALUE_MISMATCH}


def detect_extras(
    program: IndexedProgram,
    results: list[CheckResult],
    mapping: VariableMapping,
    submitted_profiles: dict[str, VariableUsageProfile],
) -> ExtraElementReport:
    """
    Collect unclaimed blocks and unmatched variables of a submission.

    Args:
        program: Normalized submitted program.
        results: Requirement check results.
        mapping: Variable mapping from submitted to reference ids.
        submitted_profiles: Submitted variable profiles (for names).

    Returns:
        ExtraElementReport; empty for an empty submission.
    """
    claimed: set[str] = set()
    for result in results:
        if result.status in CLAIMING_STATUSES:
            claimed.update(result.matched_block_ids)

    blocks: list[ExtraBlock] = []
    for script, block in iter_program_blocks(program):
        if block.id in claimed:
            continue
        blocks.append(
            ExtraBlock(
                block_id=block.id,
                opcode=block.opcode,
                label=get_block_label(block.opcode),
                category=get_block_category(block.opcode),
                script_key=script.key,
            )
        )

    variables: list[ExtraVariable] = []
    for var_id in mapping.unmatched_submitted:
        profile = submitted_profiles.get(var_id)
        variables.append(
            ExtraVariable(
                id=var_id,
                name=profile.declared_name if profile else var_id,
                is_list=profile.is_list if profile else False,
            )
        )

    return ExtraElementReport(blocks=blocks, variables=variables)
