import copy

import pytest

from blockgrader import evaluate
from blockgrader.config import INVALID_INPUT_SUMMARY
from blockgrader.config_loader import GradingSettings
from blockgrader.models import Severity

from conftest import (
    block,
    counter_program,
    flag_and_move,
    num,
    project,
    repeat_program,
    stack,
    target,
    text,
    var_input,
    variable_field,
)


def test_exact_match_scores_100(reference_repeat):
    result = evaluate(copy.deepcopy(reference_repeat), reference_repeat)

    assert result.score == 100
    assert result.is_correct
    assert result.feedback.details == []
    assert result.feedback.hints == []
    assert result.feedback.summary.startswith("Perfect!")


def test_value_drift_is_a_major_mismatch(reference_move):
    result = evaluate(flag_and_move(100), reference_move)

    assert result.score == 70
    assert not result.is_correct
    assert len(result.feedback.details) == 1
    detail = result.feedback.details[0]
    assert detail.severity == Severity.ERROR
    assert "STEPS is 100 instead of 10" in detail.message


def test_small_value_drift_is_minor(reference_move):
    result = evaluate(flag_and_move(11), reference_move)

    assert result.score == 88
    assert result.is_correct
    assert result.feedback.details[0].severity == Severity.WARNING


def test_missing_control_block(reference_repeat):
    result = evaluate(repeat_program(with_repeat=False), reference_repeat)

    assert result.score == 67
    assert not result.is_correct
    assert [d.message for d in result.feedback.details] == ["The 'repeat ()' block is missing."]
    assert result.feedback.hints == ["Add the 'repeat ()' block from the Control category."]


def test_severity_is_monotonic(reference_move):
    minor = evaluate(flag_and_move(11), reference_move).score
    major = evaluate(flag_and_move(100), reference_move).score
    missing = evaluate(project(target(blocks=stack("a", block("event_whenflagclicked")))), reference_move).score

    assert 100 > minor > major > missing


def test_renamed_variable_scores_like_the_original(reference_counter):
    renamed = counter_program(var_name="apples", var_id="xyz")

    assert evaluate(renamed, reference_counter) == evaluate(counter_program(), reference_counter)
    assert evaluate(renamed, reference_counter).score == 100


def test_rename_with_extra_variable(reference_counter):
    submitted = counter_program(var_name="apples", var_id="xyz", extra_variables={"u1": ["unused", 0]})
    result = evaluate(submitted, reference_counter)

    assert result.score == 98
    assert [d.message for d in result.feedback.details] == ["The variable 'unused' is not needed."]


def test_extra_block_lowers_the_score(reference_move):
    submitted = project(
        target(
            blocks=stack(
                "a",
                block("event_whenflagclicked"),
                block("motion_movesteps", {"STEPS": num(10)}),
                block("looks_show"),
            )
        )
    )
    result = evaluate(submitted, reference_move)

    assert result.score == 97
    assert [d.message for d in result.feedback.details] == ["The 'show' block is not needed."]


def test_wrong_order_is_penalized():
    def program(*names):
        entries = {
            "say": block("looks_say", {"MESSAGE": text("hello")}),
            "move": block("motion_movesteps", {"STEPS": num(10)}),
        }
        return project(target(blocks=stack("a", block("event_whenflagclicked"), *(entries[n] for n in names))))

    result = evaluate(program("move", "say"), program("say", "move"))

    assert result.score == 95
    assert [d.message for d in result.feedback.details] == ["'say ()' should come before 'move () steps'."]


def test_evaluation_is_idempotent(reference_repeat):
    submitted = repeat_program(times=3, steps=12)
    first = evaluate(submitted, reference_repeat)
    second = evaluate(submitted, reference_repeat)
    assert first == second


def test_inputs_are_not_modified(reference_repeat):
    submitted = repeat_program(times=3)
    before_submitted = copy.deepcopy(submitted)
    before_reference = copy.deepcopy(reference_repeat)

    evaluate(submitted, reference_repeat)

    assert submitted == before_submitted
    assert reference_repeat == before_reference


@pytest.mark.parametrize("submitted", [None, {}, {"targets": []}, "not a project", {"targets": [42]}])
def test_invalid_submission(submitted, reference_move):
    result = evaluate(submitted, reference_move)

    assert result.score == 0
    assert not result.is_correct
    assert result.feedback.summary == INVALID_INPUT_SUMMARY
    assert result.feedback.details == []


def test_invalid_reference(reference_move):
    result = evaluate(reference_move, None)
    assert result.score == 0
    assert result.feedback.summary == INVALID_INPUT_SUMMARY


def test_empty_submission_against_non_empty_reference(reference_repeat):
    result = evaluate(project(target()), reference_repeat)

    assert result.score == 0
    # Three missing blocks from three categories, plus the category summary line
    assert len(result.feedback.details) == 4
    assert len(result.feedback.hints) == 3


def test_empty_reference_is_invalid_input():
    result = evaluate(project(target()), project(target()))

    assert result.score == 0
    assert not result.is_correct
    assert result.feedback.summary == INVALID_INPUT_SUMMARY


def test_reference_with_only_a_malformed_target_is_invalid_input():
    looped = stack("b", block("event_whenflagclicked"), block("looks_show"))
    looped["b1"]["next"] = "b0"

    result = evaluate(flag_and_move(10), project(target(blocks=looped)))

    assert result.score == 0
    assert result.feedback.summary == INVALID_INPUT_SUMMARY


def test_empty_curated_requirements_are_an_input_error(reference_move):
    result = evaluate(flag_and_move(10), reference_move, [])

    assert result.score == 0
    assert result.feedback.summary == INVALID_INPUT_SUMMARY


def test_malformed_submission_target_is_skipped(reference_move):
    looped = stack("b", block("looks_show"))
    looped["b0"]["next"] = "b0"
    good = flag_and_move(10)["targets"][0]
    submitted = project(target(name="Broken", blocks=looped), good)

    result = evaluate(submitted, reference_move)

    assert result.score == 100


def test_curated_requirements_replace_extraction(reference_move):
    requirements = [{"opcode": "motion_movesteps", "expected_values": {"STEPS": 10}}]
    result = evaluate(flag_and_move(10), reference_move, requirements)

    # The hat block is not part of the checklist, so it counts as extra
    assert result.score == 97
    assert result.feedback.details[0].message == "The 'when green flag clicked' block is not needed."


def test_invalid_curated_requirements_are_an_input_error(reference_move):
    result = evaluate(flag_and_move(10), reference_move, [{"opcode": "motion_movesteps", "expected_count": 0}])
    assert result.score == 0
    assert result.feedback.summary == INVALID_INPUT_SUMMARY


def test_settings_change_the_pass_mark(reference_move):
    result = evaluate(flag_and_move(100), reference_move, settings=GradingSettings(passing_score=60))
    assert result.score == 70
    assert result.is_correct


def test_numbers_compare_across_text_and_number_literals(reference_move):
    submitted = project(
        target(
            blocks=stack(
                "a",
                block("event_whenflagclicked"),
                block("motion_movesteps", {"STEPS": [1, [10, " 10.0 "]]}),
            )
        )
    )
    assert evaluate(submitted, reference_move).score == 100



def test_block_moved_out_of_its_loop(reference_repeat):
    submitted = project(
        target(
            blocks=stack(
                "a",
                block("event_whenflagclicked"),
                block("control_repeat", {"TIMES": num(10)}),
                block("motion_movesteps", {"STEPS": num(10)}),
            )
        )
    )
    result = evaluate(submitted, reference_repeat)

    assert result.score == 80
    assert [d.message for d in result.feedback.details] == ["The 'move () steps' block should be inside 'repeat ()'."]
    assert result.feedback.details[0].severity == Severity.ERROR
    assert result.feedback.hints == ["Check which blocks belong inside 'repeat ()'."]


def say_counter_program(set_name, set_id, change_name, change_id, variables):
    blocks = stack(
        "a",
        block("event_whenflagclicked"),
        block("data_setvariableto", {"VALUE": text(0)}, variable_field(set_name, set_id)),
        block("data_changevariableby", {"VALUE": num(1)}, variable_field(change_name, change_id)),
        block("looks_say", {"MESSAGE": var_input(change_name, change_id)}),
    )
    return project(target(blocks=blocks, variables=variables))


def test_wrong_variables_are_penalized():
    reference = say_counter_program("counter", "v1", "counter", "v1", {"v1": ["counter", 0]})
    submitted = say_counter_program("a", "va", "b", "vb", {"va": ["a", 0], "vb": ["b", 0]})

    result = evaluate(submitted, reference)

    # set, change and the reporter each use the wrong variable, counter itself is never used
    assert result.score == 49
    assert not result.is_correct
    messages = [d.message for d in result.feedback.details]
    assert messages[0] == "The variable 'counter' is missing."
    assert "A value in 'set variable to ()' is wrong: the variable is 'a' instead of 'counter'." in messages
    assert "A value in 'change variable by ()' is wrong: the variable is 'b' instead of 'counter'." in messages
    assert result.feedback.hints[0] == "Create the variable 'counter' and use it where the task needs it."


def test_same_variable_under_its_own_name_passes():
    reference = say_counter_program("counter", "v1", "counter", "v1", {"v1": ["counter", 0]})
    submitted = say_counter_program("total", "t1", "total", "t1", {"t1": ["total", 0]})

    assert evaluate(submitted, reference).score == 100


def scoreboard_program(score, lives, items, declare_reversed=False):
    """Two variables and a list, each given as (name, id)."""
    blocks = stack(
        "a",
        block("event_whenflagclicked"),
        block("data_setvariableto", {"VALUE": text(0)}, variable_field(*score)),
        block("data_setvariableto", {"VALUE": text(3)}, variable_field(*lives)),
        block("data_deletealloflist", fields={"LIST": list(items)}),
        block("data_changevariableby", {"VALUE": num(1)}, variable_field(*score)),
        block("data_changevariableby", {"VALUE": num(-1)}, variable_field(*lives)),
        block("data_addtolist", {"ITEM": text("apple")}, {"LIST": list(items)}),
    )
    variables = {score[1]: [score[0], 0], lives[1]: [lives[0], 3]}
    if declare_reversed:
        variables = dict(reversed(list(variables.items())))
    return project(target(blocks=blocks, variables=variables, lists={items[1]: [items[0], []]}))


def test_swapped_variable_and_list_names_are_mapped_by_usage():
    reference = scoreboard_program(("score", "v1"), ("lives", "v2"), ("items", "l1"))
    # Same behaviour, but every name points at a different role and ids are new
    submitted = scoreboard_program(("lives", "s9"), ("score", "s8"), ("score", "q1"), declare_reversed=True)

    result = evaluate(submitted, reference)

    assert result == evaluate(copy.deepcopy(reference), reference)
    assert result.score == 100
    assert result.feedback.details == []


def test_malformed_inputs_in_submission_do_not_crash(reference_move):
    submitted = flag_and_move(10)
    submitted["targets"][0]["blocks"]["a1"]["inputs"] = ["x"]
    submitted["targets"][0]["blocks"]["a1"]["fields"] = "abc"

    result = evaluate(submitted, reference_move)

    # The move block survives but its STEPS value is gone
    assert result.score == 70
    assert result.feedback.details[0].message == "A value in 'move () steps' is wrong: STEPS is nothing instead of 10."
