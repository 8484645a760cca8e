import json
import logging

import pytest


def num(value):
    return [1, [4, str(value)]]


def text(value):
    return [1, [10, str(value)]]


def substack(block_id):
    return [2, block_id]


def var_input(name, var_id, default=""):
    return [3, [12, name, var_id], [10, str(default)]]


def block(opcode, inputs=None, fields=None):
    return {"opcode": opcode, "inputs": inputs or {}, "fields": fields or {}}


def variable_field(name, var_id):
    return {"VARIABLE": [name, var_id]}


def stack(prefix, *entries, parent=None):
    """
    Link blocks into a chain with ids `{prefix}0`, `{prefix}1`, ...

    The first block is top level unless a parent is given (substack bodies).
    """
    blocks = {}
    for i, entry in enumerate(entries):
        block_id = f"{prefix}{i}"
        data = dict(entry)
        data["next"] = f"{prefix}{i + 1}" if i + 1 < len(entries) else None
        data["parent"] = f"{prefix}{i - 1}" if i > 0 else parent
        data["topLevel"] = i == 0 and parent is None
        data["shadow"] = False
        blocks[block_id] = data
    return blocks


def target(name="Sprite1", blocks=None, variables=None, lists=None, is_stage=False):
    return {
        "isStage": is_stage,
        "name": name,
        "variables": variables or {},
        "lists": lists or {},
        "blocks": blocks or {},
    }


def project(*targets):
    return {"targets": list(targets)}


def flag_and_move(steps):
    return project(target(blocks=stack("a", block("event_whenflagclicked"), block("motion_movesteps", {"STEPS": num(steps)}))))


def repeat_program(times=10, steps=10, with_repeat=True):
    if not with_repeat:
        return flag_and_move(steps)
    blocks = stack(
        "a",
        block("event_whenflagclicked"),
        block("control_repeat", {"TIMES": num(times), "SUBSTACK": substack("r0")}),
    )
    blocks.update(stack("r", block("motion_movesteps", {"STEPS": num(steps)}), parent="a1"))
    return project(target(blocks=blocks))


def counter_program(var_name="counter", var_id="v1", extra_variables=None):
    variables = {var_id: [var_name, 0]}
    variables.update(extra_variables or {})
    blocks = stack(
        "a",
        block("event_whenflagclicked"),
        block("data_setvariableto", {"VALUE": text(0)}, variable_field(var_name, var_id)),
        block("data_changevariableby", {"VALUE": num(1)}, variable_field(var_name, var_id)),
    )
    return project(target(blocks=blocks, variables=variables))


@pytest.fixture
def reference_move():
    return flag_and_move(10)


@pytest.fixture
def reference_repeat():
    return repeat_program()


@pytest.fixture
def reference_counter():
    return counter_program()


@pytest.fixture
def write_project(tmp_path):
    """Factory fixture writing a manifest to `<tmp>/<name>.json`."""

    def _write(name, data):
        path = tmp_path / f"{name}.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def reset_cli_logger():
    """Drop handlers the CLI attaches so they don't outlive captured streams."""
    yield
    logger = logging.getLogger("blockgrader")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
