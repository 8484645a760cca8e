import csv
import json

from blockgrader.config import GRADES_CSV_FILENAME, GRADES_SUMMARY_FILENAME
from blockgrader.engine import evaluate
from blockgrader.grades_aggregator import GradesAggregator, load_grades_from_dir
from blockgrader.models import SubmissionGrade

from conftest import flag_and_move


def _grade(submission_id, steps):
    result = evaluate(flag_and_move(steps), flag_and_move(10))
    return SubmissionGrade(submission_id=submission_id, source_path=f"/subs/{submission_id}.sb3", result=result)


def test_save_all_writes_every_output(tmp_path):
    aggregator = GradesAggregator(output_dir=tmp_path / "grades")
    aggregator.add_grade(_grade("bob", 100))
    aggregator.add_grade(_grade("alice", 10))

    output_files = aggregator.save_all()

    assert output_files["alice"] == tmp_path / "grades" / "alice.grade.json"
    assert json.loads(output_files["bob"].read_text(encoding="utf-8"))["result"]["score"] == 70

    summary = json.loads((tmp_path / "grades" / GRADES_SUMMARY_FILENAME).read_text(encoding="utf-8"))
    assert summary["total_submissions"] == 2
    assert [g["submission_id"] for g in summary["grades"]] == ["alice", "bob"]
    assert summary["statistics"] == {
        "average_score": 85.0,
        "highest_score": 100,
        "lowest_score": 70,
        "passed_count": 1,
        "passed_percent": 50.0,
        "unreadable_count": 0,
    }

    with open(tmp_path / "grades" / GRADES_CSV_FILENAME, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [row["submission_id"] for row in rows] == ["alice", "bob"]
    assert rows[0]["is_correct"] == "Yes"
    assert rows[1]["score"] == "70"
    assert "STEPS is 100 instead of 10" in rows[1]["issues"]


def test_statistics_empty():
    assert GradesAggregator().calculate_statistics() == {}


def test_round_trip_through_summary(tmp_path):
    aggregator = GradesAggregator(output_dir=tmp_path)
    grades = [_grade("carol", 11), _grade("dave", 10)]
    for grade in grades:
        aggregator.add_grade(grade)
    aggregator.save_all()

    assert load_grades_from_dir(tmp_path) == grades


def test_load_from_individual_files(tmp_path):
    aggregator = GradesAggregator(output_dir=tmp_path)
    aggregator.add_grade(_grade("erin", 10))
    aggregator.save_all()
    (tmp_path / GRADES_SUMMARY_FILENAME).unlink()

    loaded = load_grades_from_dir(tmp_path)

    assert [g.submission_id for g in loaded] == ["erin"]
    assert loaded[0].result.score == 100
