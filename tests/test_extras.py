from blockgrader.checker import check_requirements
from blockgrader.extras import detect_extras
from blockgrader.indexer import index_program
from blockgrader.mapper import map_variables
from blockgrader.models import Requirement, VariableMapping
from blockgrader.profiler import build_usage_profiles
from blockgrader.program_parser import parse_program

from conftest import block, counter_program, num, project, stack, target


def _index(raw):
    return index_program(parse_program(raw))


def test_unclaimed_blocks_are_extra():
    program = _index(
        project(
            target(
                blocks=stack(
                    "a",
                    block("event_whenflagclicked"),
                    block("motion_movesteps", {"STEPS": num(10)}),
                    block("looks_show"),
                )
            )
        )
    )
    results = check_requirements(program, [Requirement(opcode="event_whenflagclicked"), Requirement(opcode="motion_movesteps")])

    report = detect_extras(program, results, VariableMapping(), {})

    assert [(b.block_id, b.opcode, b.label, b.category) for b in report.blocks] == [("a2", "looks_show", "show", "Looks")]
    assert report.blocks[0].script_key == "Sprite1#0"


def test_surplus_occurrences_are_extra():
    program = _index(
        project(target(blocks=stack("a", block("looks_show"), block("looks_show"), block("looks_show"))))
    )
    results = check_requirements(program, [Requirement(opcode="looks_show", expected_count=2)])

    report = detect_extras(program, results, VariableMapping(), {})

    assert [b.block_id for b in report.blocks] == ["a2"]


def test_unmatched_variables_are_extra():
    submitted = _index(counter_program(var_name="apples", var_id="s1", extra_variables={"s2": ["spare", 0]}))
    reference = _index(counter_program())
    sub_profiles = build_usage_profiles(submitted)
    mapping = map_variables(sub_profiles, build_usage_profiles(reference))

    report = detect_extras(submitted, [], mapping, sub_profiles)

    assert [(v.id, v.name) for v in report.variables] == [("s2", "spare")]


def test_empty_submission_has_no_extras():
    program = _index(project(target()))
    report = detect_extras(program, [], VariableMapping(), {})
    assert report.blocks == []
    assert report.variables == []
