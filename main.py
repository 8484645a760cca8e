"""
Block Grader: Semantic grading for visual block programs

Usage:
  main.py [--config=PATH]
  main.py grade <reference> <submission> [--requirements=PATH] [--output=PATH] [--verbose]
  main.py (-h | --help)

Options:
  --config=PATH        Path to YAML configuration file [default: grader_config.yml].
  --requirements=PATH  Curated requirements (YAML or JSON) replacing automatic extraction.
  --output=PATH        Also save the result as JSON to this file.
  --verbose            Print the checklist and debug logs.
  -h --help            Show this screen.
"""

from docopt import docopt
import json
import sys
from pathlib import Path

from blockgrader.config import DEFAULT_GRADES_DIR, GRADE_OUTPUT_SUFFIX, PROJECT_EXTENSIONS, PROJECT_FILENAME
from blockgrader.config_loader import GradingSettings, load_config
from blockgrader.engine import evaluate
from blockgrader.feedback import invalid_input_feedback
from blockgrader.grades_aggregator import GradesAggregator
from blockgrader.logger import create_logger
from blockgrader.models import EvaluationResult, Requirement, SubmissionGrade
from blockgrader.project_loader import load_project
from blockgrader.rubric_loader import format_requirements, load_requirements


def find_submissions(submissions_dir: Path) -> list[Path]:
    """
    Find all submissions in a directory.

    A submission is an `.sb3`/`.json` file or a folder containing
    `project.json`.

    Args:
        submissions_dir: Path to directory containing submissions.

    Returns:
        Sorted list of submission paths.
    """
    submissions: list[Path] = []

    for item in sorted(submissions_dir.iterdir()):
        # Skip hidden entries and grader output
        if item.name.startswith(".") or item.name in ("__pycache__", "grades", "GRADES"):
            continue

        if item.is_dir():
            if (item / PROJECT_FILENAME).exists():
                submissions.append(item)
        elif item.suffix.lower() in PROJECT_EXTENSIONS and not item.name.endswith(GRADE_OUTPUT_SUFFIX):
            submissions.append(item)

    return submissions


def submission_id_for(path: Path) -> str:
    return path.name if path.is_dir() else path.stem


def save_grade(output_path: Path, result: EvaluationResult) -> None:
    """
    Save an evaluation result as JSON.

    Args:
        output_path: Destination file.
        result: EvaluationResult to save.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(result.model_dump_json(indent=2))
    print(f"  Saved grade to {output_path}")


def print_grade_summary(grade: SubmissionGrade) -> None:
    """
    Print a summary of the grade to console.

    Args:
        grade: SubmissionGrade to summarize.
    """
    result = grade.result
    print(f"\n  {'='*50}")
    print(f"  Submission: {grade.submission_id}")
    print(f"  Score: {result.score}/100")
    print(f"  Correct: {'Yes' if result.is_correct else 'No'}")
    print(f"  {result.feedback.summary}")
    print(f"  {'='*50}")

    if grade.error:
        print(f"  [!] {grade.error}")

    for detail in result.feedback.details:
        print(f"  [{detail.icon}] {detail.message}")

    for hint in result.feedback.hints:
        print(f"  Hint: {hint}")

    print()


def grade_submission(
    submission_path: Path,
    reference: dict,
    requirements: list[Requirement] | None,
    settings: GradingSettings,
) -> SubmissionGrade:
    """
    Load and grade one submission.

    A submission that cannot be read gets a zero score with the
    invalid-data summary and the loading error recorded.
    """
    submission_id = submission_id_for(submission_path)
    try:
        submitted = load_project(submission_path)
    except (FileNotFoundError, ValueError) as e:
        result = EvaluationResult(score=0, is_correct=False, feedback=invalid_input_feedback())
        return SubmissionGrade(
            submission_id=submission_id,
            source_path=str(submission_path),
            result=result,
            error=str(e),
        )

    result = evaluate(submitted, reference, requirements, settings)
    return SubmissionGrade(submission_id=submission_id, source_path=str(submission_path), result=result)


def run_grading_pipeline(
    reference_path: Path,
    submissions_dir: Path,
    requirements_path: Path | None = None,
    grades_dir: Path | None = None,
    settings: GradingSettings | None = None,
    verbose: bool = False,
) -> list[SubmissionGrade]:
    """
    Run the complete grading pipeline.

    Args:
        reference_path: Reference project (.sb3, project.json or folder).
        submissions_dir: Path to directory containing submissions.
        requirements_path: Optional curated requirements file.
        grades_dir: Optional path to save aggregated grades.
        settings: Grading settings.
        verbose: Print verbose output.

    Returns:
        List of SubmissionGrade objects for all submissions.
    """
    settings = settings or GradingSettings()

    print(f"Loading reference from {reference_path}...")
    reference = load_project(reference_path)

    requirements = None
    if requirements_path:
        print(f"Loading requirements from {requirements_path}...")
        requirements = load_requirements(requirements_path)
        print(f"Found {len(requirements)} requirements")
        if verbose:
            print(format_requirements(requirements))

    # Find submissions
    print(f"\nScanning {submissions_dir} for submissions...")
    submissions = find_submissions(submissions_dir)
    print(f"Found {len(submissions)} submissions")

    if not submissions:
        print("No submissions found!")
        return []

    aggregator = GradesAggregator(output_dir=grades_dir or DEFAULT_GRADES_DIR)
    results: list[SubmissionGrade] = []

    for i, submission_path in enumerate(submissions, 1):
        print(f"\n[{i}/{len(submissions)}] Grading {submission_path.name}...")
        grade = grade_submission(submission_path, reference, requirements, settings)
        aggregator.add_grade(grade)
        print_grade_summary(grade)
        results.append(grade)

    print("\nSaving aggregated grades...")
    output_files = aggregator.save_all()
    print(f"  Summary JSON: {output_files.get('summary_json')}")
    print(f"  Summary CSV:  {output_files.get('summary_csv')}")

    # Print summary
    statistics = aggregator.calculate_statistics()
    print("\n" + "=" * 60)
    print("GRADING COMPLETE")
    print("=" * 60)
    print(f"Total submissions processed: {len(results)}")
    print(f"Average score: {statistics['average_score']:.1f}/100")
    print(f"Passed: {statistics['passed_count']}/{len(results)} ({statistics['passed_percent']:.1f}%)")

    return results


def run_single_grade(
    reference_path: Path,
    submission_path: Path,
    requirements_path: Path | None = None,
    output_path: Path | None = None,
    verbose: bool = False,
) -> EvaluationResult:
    """
    Grade one submission and print the result as JSON.

    Args:
        reference_path: Reference project.
        submission_path: Submitted project.
        requirements_path: Optional curated requirements file.
        output_path: Optional file to also save the result to.
        verbose: Print the checklist before the result.

    Returns:
        The EvaluationResult.
    """
    reference = load_project(reference_path)
    requirements = load_requirements(requirements_path) if requirements_path else None
    if requirements and verbose:
        print(format_requirements(requirements), file=sys.stderr)

    try:
        submitted = load_project(submission_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Warning: {e}", file=sys.stderr)
        submitted = None

    result = evaluate(submitted, reference, requirements)
    print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))

    if output_path:
        save_grade(output_path, result)
    return result


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entrypoint.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    arguments = docopt(__doc__, argv=argv)

    if arguments["grade"]:
        create_logger(verbose=arguments["--verbose"])
        requirements_path = arguments["--requirements"]
        output_path = arguments["--output"]
        try:
            run_single_grade(
                reference_path=Path(arguments["<reference>"]),
                submission_path=Path(arguments["<submission>"]),
                requirements_path=Path(requirements_path) if requirements_path else None,
                output_path=Path(output_path) if output_path else None,
                verbose=arguments["--verbose"],
            )
            return 0
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    config_path = Path(arguments["--config"])
    if not config_path.exists():
        print(f"Error: Configuration file not found at {config_path}")
        return 1

    try:
        config = load_config(config_path)
        print(f"Loaded configuration from {config_path}")
    except Exception as e:
        print(f"Error loading config: {e}")
        return 1

    create_logger(verbose=config.verbose)

    if not config.submissions_dir.exists():
        print(f"Error: Submissions directory not found: {config.submissions_dir}")
        return 1

    if not config.reference_path.exists():
        print(f"Error: Reference project not found: {config.reference_path}")
        return 1

    try:
        run_grading_pipeline(
            reference_path=config.reference_path,
            submissions_dir=config.submissions_dir,
            requirements_path=config.requirements_path,
            grades_dir=config.grades_dir,
            settings=config.grading,
            verbose=config.verbose,
        )
        return 0
    except KeyboardInterrupt:
        print("\nGrading interrupted by user.")
        return 1
    except Exception as e:
        print(f"\nError: {e}")
        if config.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
