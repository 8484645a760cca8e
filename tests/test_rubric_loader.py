import json

import pytest
from pydantic import ValidationError

from blockgrader.models import FieldValue, Requirement
from blockgrader.requirement_extractor import complete_requirements
from blockgrader.rubric_loader import format_requirements, load_requirements

RUBRIC = """
requirements:
  - opcode: control_repeat
    expected_values: {TIMES: 10}
    order_rank: 0
  - opcode: motion_movesteps
    expected_values: {STEPS: 10}
    order_rank: 1
    weight: 2
"""


def test_load_mapping_form(tmp_path):
    path = tmp_path / "rubric.yml"
    path.write_text(RUBRIC, encoding="utf-8")

    requirements = load_requirements(path)

    assert [r.opcode for r in requirements] == ["control_repeat", "motion_movesteps"]
    assert requirements[0].label == "repeat ()"
    assert requirements[0].category == "Control"
    assert requirements[1].weight == 2
    assert requirements[1].expected_count == 1


def test_load_json_list_form(tmp_path):
    path = tmp_path / "rubric.json"
    path.write_text(json.dumps([{"opcode": "looks_show", "label": "appear"}]), encoding="utf-8")

    requirements = load_requirements(path)

    assert requirements[0].label == "appear"
    assert requirements[0].category == "Looks"


def test_missing_rubric(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_requirements(tmp_path / "missing.yml")


@pytest.mark.parametrize("content", ["", "requirements: []\n", "just text\n"])
def test_rubric_without_requirements(tmp_path, content):
    path = tmp_path / "rubric.yml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_requirements(path)


def test_invalid_entry(tmp_path):
    path = tmp_path / "rubric.yml"
    path.write_text("- opcode: looks_show\n  expected_count: 0\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_requirements(path)


def test_format_requirements(tmp_path):
    path = tmp_path / "rubric.yml"
    path.write_text(RUBRIC, encoding="utf-8")

    text = format_requirements(load_requirements(path))

    assert text.splitlines() == [
        "Checklist (2 requirements):",
        "  - repeat () x1 [TIMES=10] (step 1)",
        "  - move () steps x1 [STEPS=10] (step 2) weight 2.0",
    ]


def test_format_variable_requirements_and_placement():
    requirements = complete_requirements(
        [
            Requirement(
                opcode="data_changevariableby",
                expected_values={"VALUE": 1},
                expected_variables={"VARIABLE": FieldValue(value="counter", ref_id="v1")},
                nesting_context="control_forever",
            ),
            Requirement(opcode="data_variable", variable_id="v1", label="counter"),
            Requirement(opcode="data_listcontents", variable_id="l1", label="items"),
        ]
    )

    assert format_requirements(requirements).splitlines()[1:] == [
        "  - change variable by () x1 [VALUE=1, VARIABLE=counter] inside forever",
        "  - variable 'counter'",
        "  - list 'items'",
    ]
