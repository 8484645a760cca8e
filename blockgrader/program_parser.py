"""
Parser for raw project manifests.

Turns the untyped nested JSON of a project manifest into a typed
`Program`, decoding the integer discriminants of input arrays into
explicit input variants so nothing downstream needs to sniff array
shapes again.
"""

import logging
import math
import re
from typing import Any

from .errors import InputError
from .models import (
    Block,
    ExpressionInput,
    FieldValue,
    InputValue,
    LiteralInput,
    Program,
    SubstackInput,
    Target,
    VariableRecord,
)
from .opcodes import LIST_REPORTER_OPCODE, VARIABLE_REPORTER_OPCODE

logger = logging.getLogger(__name__)

# Input array discriminants (first element)
INPUT_SAME_BLOCK_SHADOW = 1
INPUT_BLOCK_NO_SHADOW = 2
INPUT_DIFF_BLOCK_SHADOW = 3

# Primitive array discriminants ([type, value, ...]); 4-11 are number, text, color and broadcast literals
VAR_PRIMITIVE = 12
LIST_PRIMITIVE = 13

SUBSTACK_PREFIX = "SUBSTACK"
VARIABLE_FIELDS = ("VARIABLE", "LIST")

_HIRAGANA = re.compile(r"[ぁ-ゖ]")


def hiragana_to_katakana(text: str) -> str:
    return _HIRAGANA.sub(lambda m: chr(ord(m.group(0)) + 0x60), text)


def normalize_literal(value: Any) -> Any:
    """
    Normalize a literal slot or field value.

    Numeric strings become numbers (ints when integral), other strings are
    trimmed and hiragana is folded to katakana.

    Args:
        value: Raw value from the manifest.

    Returns:
        Normalized value.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isfinite(value) and value.is_integer():
            return int(value)
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            return hiragana_to_katakana(text)
        if not math.isfinite(number):
            return hiragana_to_katakana(text)
        return int(number) if number.is_integer() else number
    return value


def parse_program(raw: Any) -> Program:
    """
    Parse a raw manifest into a typed Program.

    Args:
        raw: Parsed `project.json` contents.

    Returns:
        Program with typed targets, variables and blocks.

    Raises:
        InputError: If the document is absent or has no targets.
    """
    if isinstance(raw, Program):
        if not raw.targets:
            raise InputError("Program has no targets")
        return raw
    if raw is None:
        raise InputError("Program document is missing")
    if not isinstance(raw, dict):
        raise InputError(f"Program document must be a mapping, got {type(raw).__name__}")

    raw_targets = raw.get("targets")
    if not isinstance(raw_targets, list) or not raw_targets:
        raise InputError("Program document has no targets")

    targets: list[Target] = []
    for position, raw_target in enumerate(raw_targets):
        if not isinstance(raw_target, dict):
            logger.warning("Skipping target #%d: expected a mapping, got %s", position, type(raw_target).__name__)
            continue
        targets.append(_parse_target(raw_target, position))

    if not targets:
        raise InputError("Program document has no usable targets")

    return Program(targets=targets)


def _parse_target(raw_target: dict, position: int) -> Target:
    name = str(raw_target.get("name") or f"target{position}")

    variables: dict[str, VariableRecord] = {}
    for key, is_list in (("variables", False), ("lists", True)):
        declared = raw_target.get(key) or {}
        if not isinstance(declared, dict):
            continue
        for var_id, data in declared.items():
            record = _parse_variable(str(var_id), data, is_list)
            if record is not None:
                variables[record.id] = record

    blocks: dict[str, Block] = {}
    raw_blocks = raw_target.get("blocks") or {}
    if isinstance(raw_blocks, dict):
        for block_id, raw_block in raw_blocks.items():
            for block in _parse_block(str(block_id), raw_block):
                blocks[block.id] = block

    return Target(
        name=name,
        is_stage=bool(raw_target.get("isStage", False)),
        variables=variables,
        blocks=_collapse_menu_shadows(blocks),
    )


def _parse_variable(var_id: str, data: Any, is_list: bool) -> VariableRecord | None:
    if isinstance(data, (list, tuple)) and data:
        value = data[1] if len(data) > 1 else None
        return VariableRecord(id=var_id, name=str(data[0]), value=value, is_list=is_list)
    if isinstance(data, dict) and "name" in data:
        return VariableRecord(id=var_id, name=str(data["name"]), value=data.get("value"), is_list=is_list)
    logger.debug("Ignoring malformed variable entry %r", var_id)
    return None


def _parse_block(block_id: str, raw_block: Any) -> list[Block]:
    """
    Parse one entry of a target's block map.

    Returns the block plus any reporter blocks synthesized for inline
    variable/list primitives in its inputs.
    """
    # Compressed top-level reporter: [12, name, id, x, y]
    if isinstance(raw_block, list):
        if len(raw_block) >= 3 and raw_block[0] in (VAR_PRIMITIVE, LIST_PRIMITIVE):
            return [_reporter_block(block_id, raw_block, top_level=True)]
        logger.debug("Ignoring compressed primitive block %s", block_id)
        return []

    if not isinstance(raw_block, dict) or not raw_block.get("opcode"):
        logger.debug("Ignoring block %s without opcode", block_id)
        return []

    synthesized: list[Block] = []
    inputs: dict[str, InputValue] = {}
    for slot, raw_input in _mapping(block_id, "inputs", raw_block.get("inputs")).items():
        parsed = _parse_input(block_id, str(slot), raw_input, synthesized)
        if parsed is not None:
            inputs[str(slot)] = parsed

    fields: dict[str, FieldValue] = {}
    for field_name, raw_field in _mapping(block_id, "fields", raw_block.get("fields")).items():
        fields[str(field_name)] = _parse_field(str(field_name), raw_field)

    block = Block(
        id=block_id,
        opcode=str(raw_block["opcode"]),
        inputs=inputs,
        fields=fields,
        next=_optional_id(raw_block.get("next")),
        parent=_optional_id(raw_block.get("parent")),
        top_level=bool(raw_block.get("topLevel", False)),
        shadow=bool(raw_block.get("shadow", False)),
    )
    return [block] + synthesized


def _mapping(block_id: str, key: str, value: Any) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring malformed %s on block %s", key, block_id)
        return {}
    return value


def _optional_id(value: Any) -> str | None:
    return str(value) if value is not None else None


def _parse_input(block_id: str, slot: str, raw_input: Any, synthesized: list[Block]) -> InputValue | None:
    if isinstance(raw_input, dict):
        # Object form: {"block": id, "shadow": [type, value]}
        if raw_input.get("block"):
            return _reference(slot, str(raw_input["block"]))
        shadow = raw_input.get("shadow")
        if isinstance(shadow, list) and len(shadow) >= 2:
            return LiteralInput(value=normalize_literal(shadow[1]))
        return None

    if not isinstance(raw_input, list) or len(raw_input) < 2:
        return None

    discriminant, payload = raw_input[0], raw_input[1]
    if discriminant not in (INPUT_SAME_BLOCK_SHADOW, INPUT_BLOCK_NO_SHADOW, INPUT_DIFF_BLOCK_SHADOW):
        logger.debug("Unknown input discriminant %r on %s.%s", discriminant, block_id, slot)

    if payload is None:
        return None
    if isinstance(payload, str):
        return _reference(slot, payload)
    if isinstance(payload, list) and len(payload) >= 2:
        primitive_type = payload[0]
        if primitive_type in (VAR_PRIMITIVE, LIST_PRIMITIVE) and len(payload) >= 3:
            reporter_id = f"{block_id}:{slot}"
            synthesized.append(_reporter_block(reporter_id, payload, parent=block_id))
            return ExpressionInput(block_id=reporter_id)
        # Number, text, color and broadcast primitives all carry their value second
        return LiteralInput(value=normalize_literal(payload[1]))
    return None


def _reference(slot: str, target_id: str) -> InputValue:
    if slot.startswith(SUBSTACK_PREFIX):
        return SubstackInput(block_id=target_id)
    return ExpressionInput(block_id=target_id)


def _reporter_block(block_id: str, primitive: list, parent: str | None = None, top_level: bool = False) -> Block:
    is_list = primitive[0] == LIST_PRIMITIVE
    return Block(
        id=block_id,
        opcode=LIST_REPORTER_OPCODE if is_list else VARIABLE_REPORTER_OPCODE,
        fields={
            "LIST" if is_list else "VARIABLE": FieldValue(value=str(primitive[1]), ref_id=str(primitive[2])),
        },
        parent=parent,
        top_level=top_level,
    )


def _parse_field(field_name: str, raw_field: Any) -> FieldValue:
    if isinstance(raw_field, list):
        value = raw_field[0] if raw_field else None
        ref_id = raw_field[1] if len(raw_field) > 1 else None
    elif isinstance(raw_field, dict):
        value = raw_field.get("value", raw_field.get("name"))
        ref_id = raw_field.get("id")
    else:
        value, ref_id = raw_field, None

    if field_name in VARIABLE_FIELDS:
        value = str(value).strip() if value is not None else None
    else:
        value = normalize_literal(value)
    return FieldValue(value=value, ref_id=str(ref_id) if ref_id is not None else None)


def _collapse_menu_shadows(blocks: dict[str, Block]) -> dict[str, Block]:
    """
    Replace expression inputs that point at shadow menu blocks with literals.

    A shadow block with a single field and no inputs (e.g. a sound menu or
    an uncompressed number shadow) only carries a value, so the slot gets
    that value directly.
    """
    menu_values: dict[str, Any] = {}
    for block in blocks.values():
        if block.shadow and len(block.fields) == 1 and not block.inputs:
            menu_values[block.id] = next(iter(block.fields.values())).value

    if not menu_values:
        return blocks

    collapsed: dict[str, Block] = {}
    for block_id, block in blocks.items():
        if block_id in menu_values:
            continue
        new_inputs: dict[str, InputValue] = {}
        changed = False
        for slot, value in block.inputs.items():
            if isinstance(value, ExpressionInput) and value.block_id in menu_values:
                new_inputs[slot] = LiteralInput(value=normalize_literal(menu_values[value.block_id]))
                changed = True
            else:
                new_inputs[slot] = value
        collapsed[block_id] = block.model_copy(update={"inputs": new_inputs}) if changed else block
    return collapsed
