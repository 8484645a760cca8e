"""
Variable usage profiler.

Builds a name-independent fingerprint for every variable and list: the
ordered sequence of write/delta/read events of the blocks that use it.
"""

import logging

from .indexer import iter_program_blocks
from .models import IndexedBlock, IndexedProgram, UsageEvent, VariableUsageProfile
from .opcodes import get_opcode_info

logger = logging.getLogger(__name__)

# Slots holding the literal a write/delta block stores
VALUE_SLOTS = ("VALUE", "ITEM")


def build_usage_profiles(program: IndexedProgram) -> dict[str, VariableUsageProfile]:
    """
    Profile every declared variable of an indexed program.

    Variables referenced by blocks but never declared are profiled too,
    after the declared ones.

    Args:
        program: Indexed (and possibly normalized) program.

    Returns:
        Variable id to profile, in declaration order.
    """
    profiles: dict[str, VariableUsageProfile] = {}
    names: dict[tuple[str, bool], str] = {}
    for var_id, record in program.variables.items():
        profiles[var_id] = VariableUsageProfile(
            id=var_id,
            declared_name=record.name,
            is_list=record.is_list,
            declaration_index=len(profiles),
        )
        names.setdefault((record.name, record.is_list), var_id)

    usages: dict[str, list[UsageEvent]] = {var_id: [] for var_id in profiles}

    for position, (_, block) in enumerate(iter_program_blocks(program)):
        info = get_opcode_info(block.opcode)
        if not info.touches_variable:
            continue
        field = block.fields.get(info.variable_field)
        if field is None or (field.ref_id is None and field.value is None):
            continue

        is_list = info.variable_field == "LIST"
        var_id = field.ref_id or names.get((str(field.value), is_list))
        if var_id is None:
            var_id = str(field.value)
        if var_id not in profiles:
            logger.debug("Profiling undeclared %s '%s'", "list" if is_list else "variable", var_id)
            profiles[var_id] = VariableUsageProfile(
                id=var_id,
                declared_name=str(field.value if field.value is not None else var_id),
                is_list=is_list,
                declaration_index=len(profiles),
            )
            usages[var_id] = []

        usages[var_id].append(
            UsageEvent(
                kind=info.usage_kind,
                opcode=block.opcode,
                position_hint=position,
                value=_written_value(block),
            )
        )

    return {var_id: profile.model_copy(update={"usages": usages[var_id]}) for var_id, profile in profiles.items()}


def _written_value(block: IndexedBlock):
    for slot in VALUE_SLOTS:
        if slot in block.literals:
            return block.literals[slot]
    return None
