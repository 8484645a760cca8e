"""
Loader for hand-curated requirement lists.

A rubric file is YAML (or JSON, which YAML also reads) holding either a
list of requirements or a mapping with a `requirements` key:

    requirements:
      - opcode: control_repeat
        expected_values: {TIMES: 10}
        order_rank: 0
      - opcode: motion_movesteps
        expected_count: 1
        expected_values: {STEPS: 10}
        order_rank: 1
        nesting_context: control_repeat
        weight: 2
      - opcode: data_variable
        variable_id: v1
        label: counter
"""

from pathlib import Path

import yaml

from .models import Requirement
from .opcodes import LIST_REPORTER_OPCODE, get_block_label
from .requirement_extractor import complete_requirements


def load_requirements(rubric_path: Path) -> list[Requirement]:
    """
    Load a curated requirement list from a YAML or JSON file.

    Labels and categories missing from the file are filled in from the
    opcode table.

    Args:
        rubric_path: Path to the rubric file.

    Returns:
        List of Requirement objects, in file order.

    Raises:
        FileNotFoundError: If the rubric file doesn't exist.
        ValueError: If no requirements are found.
        ValidationError: If an entry is not a valid requirement.
    """
    if not rubric_path.exists():
        raise FileNotFoundError(f"Rubric not found: {rubric_path}")

    with open(rubric_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("requirements")

    if not data or not isinstance(data, list):
        raise ValueError(f"No requirements found in {rubric_path}")

    return complete_requirements(Requirement(**entry) for entry in data)


def format_requirements(requirements: list[Requirement]) -> str:
    """
    Format a requirement list as a readable checklist.

    Args:
        requirements: Requirements to format.

    Returns:
        Multi-line string, one requirement per line.
    """
    lines = [f"Checklist ({len(requirements)} requirements):"]
    for requirement in requirements:
        if requirement.variable_id is not None:
            kind = "list" if requirement.opcode == LIST_REPORTER_OPCODE else "variable"
            lines.append(f"  - {kind} '{requirement.label or requirement.variable_id}'")
            continue
        line = f"  - {requirement.label or requirement.opcode} x{requirement.expected_count}"
        values = [f"{slot}={value}" for slot, value in requirement.expected_values.items()]
        values += [f"{slot}={field.value}" for slot, field in requirement.expected_variables.items()]
        if values:
            line += f" [{', '.join(values)}]"
        if requirement.nesting_context is not None:
            line += f" inside {get_block_label(requirement.nesting_context)}"
        if requirement.order_rank is not None:
            line += f" (step {requirement.order_rank + 1})"
        if requirement.weight is not None:
            line += f" weight {requirement.weight}"
        lines.append(line)
    return "\n".join(lines)
