"""
Batch results export.

Collects one SubmissionGrade per graded file and writes them out as a
JSON record per submission, a summary JSON with class statistics and a
CSV sheet for gradebook import.
"""

import csv
import json
from datetime import datetime
from pathlib import Path

from .config import (
    DEFAULT_GRADES_DIR,
    GRADE_OUTPUT_SUFFIX,
    GRADES_CSV_FILENAME,
    GRADES_SUMMARY_FILENAME,
)
from .models import SubmissionGrade

CSV_HEADER = ["submission_id", "score", "is_correct", "summary", "issues", "error"]
# Keeps spreadsheet cells readable
MAX_ISSUES_LENGTH = 500


class GradesAggregator:
    """
    Holds the grades of one batch run and writes them to `output_dir`.
    """

    def __init__(self, output_dir: Path | None = None) -> None:
        """
        Args:
            output_dir: Destination folder, created on save. Defaults to ./grades/
        """
        self.output_dir = output_dir or DEFAULT_GRADES_DIR
        self.grades: list[SubmissionGrade] = []
        self.timestamp = datetime.now().isoformat()

    def add_grade(self, grade: SubmissionGrade) -> None:
        self.grades.append(grade)

    def save_all(self) -> dict[str, Path]:
        """
        Write every output file, grades sorted by submission id.

        Returns:
            Mapping of submission id (plus "summary_json" and "summary_csv")
            to the written path.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.grades.sort(key=lambda g: g.submission_id)

        written: dict[str, Path] = {}
        for grade in self.grades:
            record_path = self.output_dir / f"{grade.submission_id}{GRADE_OUTPUT_SUFFIX}"
            record_path.write_text(grade.model_dump_json(indent=2), encoding="utf-8")
            written[grade.submission_id] = record_path

        written["summary_json"] = self._save_summary(self.output_dir / GRADES_SUMMARY_FILENAME)
        written["summary_csv"] = self._save_csv(self.output_dir / GRADES_CSV_FILENAME)
        return written

    def calculate_statistics(self) -> dict:
        """
        Class-level statistics.

        Returns:
            Average, highest and lowest score, pass count and percentage,
            and the number of files that could not be read. Empty when no
            grades were added.
        """
        if not self.grades:
            return {}

        scores = [g.result.score for g in self.grades]
        passed = len([g for g in self.grades if g.result.is_correct])

        return {
            "average_score": sum(scores) / len(scores),
            "highest_score": max(scores),
            "lowest_score": min(scores),
            "passed_count": passed,
            "passed_percent": 100 * passed / len(scores),
            "unreadable_count": len([g for g in self.grades if g.error]),
        }

    def _save_summary(self, summary_path: Path) -> Path:
        payload = {
            "timestamp": self.timestamp,
            "total_submissions": len(self.grades),
            "statistics": self.calculate_statistics(),
            "grades": [g.model_dump(mode="json") for g in self.grades],
        }
        summary_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return summary_path

    def _save_csv(self, csv_path: Path) -> Path:
        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADER)
            writer.writerows(_csv_row(grade) for grade in self.grades)
        return csv_path


def _csv_row(grade: SubmissionGrade) -> list:
    feedback = grade.result.feedback
    issues = " | ".join(detail.message for detail in feedback.details)
    return [
        grade.submission_id,
        grade.result.score,
        "Yes" if grade.result.is_correct else "No",
        feedback.summary,
        issues[:MAX_ISSUES_LENGTH],
        grade.error or "",
    ]


def load_grades_from_dir(grades_dir: Path) -> list[SubmissionGrade]:
    """
    Read back the grades written by `GradesAggregator.save_all`.

    Uses the summary file when present, the per-submission records
    otherwise.

    Args:
        grades_dir: Folder passed as `output_dir` when saving.

    Returns:
        Grades sorted by submission id.
    """
    summary_path = grades_dir / GRADES_SUMMARY_FILENAME
    if summary_path.exists():
        records = json.loads(summary_path.read_text(encoding="utf-8")).get("grades", [])
    else:
        records = [
            json.loads(path.read_text(encoding="utf-8"))
            for path in grades_dir.glob(f"*{GRADE_OUTPUT_SUFFIX}")
        ]

    grades = [SubmissionGrade.model_validate(record) for record in records]
    return sorted(grades, key=lambda g: g.submission_id)
