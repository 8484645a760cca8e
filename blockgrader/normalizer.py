"""
Program normalizer.

Rewrites variable references through a `VariableMapping` so the
submitted program speaks in the reference program's variable ids. The
reference goes through the same code path with an identity mapping.
"""

from .models import (
    FieldValue,
    IndexedBlock,
    IndexedProgram,
    Script,
    VariableMapping,
    VariableRecord,
)
from .opcodes import get_opcode_info

# Appended to unmapped ids that collide with a reference id
UNMAPPED_SUFFIX = "#unmapped"


def identity_mapping(program: IndexedProgram) -> VariableMapping:
    return VariableMapping(
        pairs={var_id: var_id for var_id in program.variables},
        similarities={var_id: 1.0 for var_id in program.variables},
    )


def normalize_program(
    program: IndexedProgram,
    mapping: VariableMapping,
    reference_variables: dict[str, VariableRecord] | None = None,
) -> IndexedProgram:
    """
    Return a copy of `program` with variable references rewritten.

    Mapped variables take the reference id and declared name; unmapped
    variables keep their submitted identity (suffixed if the id happens to
    collide with a reference id).

    Args:
        program: Indexed program to rewrite.
        mapping: Submitted id -> reference id mapping.
        reference_variables: Reference declarations, used for display names.

    Returns:
        New IndexedProgram; the input is not modified.
    """
    if reference_variables is None:
        reference_variables = program.variables
    rewriter = _Rewriter(mapping, reference_variables)

    variables: dict[str, VariableRecord] = {}
    for var_id, record in program.variables.items():
        target_id = rewriter.target_id(var_id)
        variables[target_id] = record.model_copy(
            update={"id": target_id, "name": rewriter.display_name(var_id, record.name)}
        )

    scripts = [
        Script(target_name=script.target_name, index=script.index, blocks=[rewriter.block(b) for b in script.blocks])
        for script in program.scripts
    ]
    return IndexedProgram(scripts=scripts, variables=variables, skipped_targets=list(program.skipped_targets))


class _Rewriter:
    def __init__(self, mapping: VariableMapping, reference_variables: dict[str, VariableRecord]) -> None:
        self.mapping = mapping
        self.reference_variables = reference_variables

    def target_id(self, var_id: str) -> str:
        if var_id in self.mapping.pairs:
            return self.mapping.pairs[var_id]
        if var_id in self.reference_variables:
            return var_id + UNMAPPED_SUFFIX
        return var_id

    def display_name(self, var_id: str, fallback: str) -> str:
        if var_id in self.mapping.pairs:
            reference = self.reference_variables.get(self.mapping.pairs[var_id])
            if reference is not None:
                return reference.name
        return fallback

    def block(self, block: IndexedBlock) -> IndexedBlock:
        return block.model_copy(
            update={
                "fields": self.fields(block),
                "expressions": {slot: self.block(expr) for slot, expr in block.expressions.items()},
                "substacks": {slot: [self.block(b) for b in body] for slot, body in block.substacks.items()},
            }
        )

    def fields(self, block: IndexedBlock) -> dict[str, FieldValue]:
        fields = dict(block.fields)
        variable_field = get_opcode_info(block.opcode).variable_field
        field = fields.get(variable_field) if variable_field else None
        if field is None or field.ref_id is None:
            return fields

        fields[variable_field] = FieldValue(
            value=self.display_name(field.ref_id, field.value),
            ref_id=self.target_id(field.ref_id),
        )
        return fields
