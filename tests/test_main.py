import json
import zipfile

import main
from blockgrader.config import GRADES_SUMMARY_FILENAME

from conftest import flag_and_move


def test_find_submissions(tmp_path):
    (tmp_path / "alice.sb3").write_bytes(b"")
    (tmp_path / "bob.json").write_text("{}", encoding="utf-8")
    (tmp_path / "carol").mkdir()
    (tmp_path / "carol" / "project.json").write_text("{}", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")
    (tmp_path / "empty_dir").mkdir()
    (tmp_path / ".hidden.json").write_text("{}", encoding="utf-8")
    (tmp_path / "alice.grade.json").write_text("{}", encoding="utf-8")

    found = main.find_submissions(tmp_path)

    assert [p.name for p in found] == ["alice.sb3", "bob.json", "carol"]
    assert [main.submission_id_for(p) for p in found] == ["alice", "bob", "carol"]


def test_grade_command_prints_json(write_project, capsys):
    reference = write_project("reference", flag_and_move(10))
    submission = write_project("submission", flag_and_move(100))

    exit_code = main.main(["grade", str(reference), str(submission)])

    assert exit_code == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["score"] == 70
    assert printed["is_correct"] is False
    assert printed["feedback"]["details"][0]["severity"] == "error"


def test_grade_command_saves_output(write_project, tmp_path, capsys):
    reference = write_project("reference", flag_and_move(10))
    output = tmp_path / "out" / "result.json"

    exit_code = main.main(["grade", str(reference), str(reference), f"--output={output}"])

    assert exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8"))["score"] == 100


def test_grade_command_with_unreadable_submission(write_project, tmp_path, capsys):
    reference = write_project("reference", flag_and_move(10))

    exit_code = main.main(["grade", str(reference), str(tmp_path / "missing.sb3")])

    assert exit_code == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["score"] == 0
    assert printed["feedback"]["summary"] == "The submitted data is invalid."


def test_grade_command_with_missing_reference(tmp_path, capsys):
    exit_code = main.main(["grade", str(tmp_path / "nope.json"), str(tmp_path / "nope.json")])
    assert exit_code == 1
    assert "Error" in capsys.readouterr().err


def test_batch_mode(tmp_path, capsys):
    reference = tmp_path / "reference.json"
    reference.write_text(json.dumps(flag_and_move(10)), encoding="utf-8")

    submissions = tmp_path / "submissions"
    submissions.mkdir()
    (submissions / "alice.json").write_text(json.dumps(flag_and_move(10)), encoding="utf-8")
    with zipfile.ZipFile(submissions / "bob.sb3", "w") as zf:
        zf.writestr("project.json", json.dumps(flag_and_move(100)))
    (submissions / "carol.json").write_text("{broken", encoding="utf-8")

    config = tmp_path / "grader_config.yml"
    config.write_text(
        "reference_path: reference.json\nsubmissions_dir: submissions\ngrades_dir: grades\n",
        encoding="utf-8",
    )

    exit_code = main.main([f"--config={config}"])

    assert exit_code == 0
    summary = json.loads((tmp_path / "grades" / GRADES_SUMMARY_FILENAME).read_text(encoding="utf-8"))
    scores = {g["submission_id"]: g["result"]["score"] for g in summary["grades"]}
    assert scores == {"alice": 100, "bob": 70, "carol": 0}
    carol = next(g for g in summary["grades"] if g["submission_id"] == "carol")
    assert carol["error"]
    assert "GRADING COMPLETE" in capsys.readouterr().out


def test_batch_mode_missing_config(tmp_path, capsys):
    assert main.main([f"--config={tmp_path / 'missing.yml'}"]) == 1


def test_find_submissions_skips_grade_records_by_suffix(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "GRADE_OUTPUT_SUFFIX", ".result.json")
    (tmp_path / "alice.json").write_text("{}", encoding="utf-8")
    (tmp_path / "alice.result.json").write_text("{}", encoding="utf-8")

    assert [p.name for p in main.find_submissions(tmp_path)] == ["alice.json"]
