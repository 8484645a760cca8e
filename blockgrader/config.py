"""
Configuration constants for the Block Grader system.
"""

from pathlib import Path


# File patterns
PROJECT_FILENAME: str = "project.json"
PROJECT_EXTENSIONS: list[str] = [".sb3", ".json"]
GRADE_OUTPUT_SUFFIX: str = ".grade.json"

# Default paths (can be overridden via config)
DEFAULT_GRADES_DIR: Path = Path("grades")
GRADES_SUMMARY_FILENAME: str = "grades_summary.json"
GRADES_CSV_FILENAME: str = "grades_summary.csv"

# Indexer safety caps for malformed block graphs
MAX_CHAIN_LENGTH: int = 10_000
MAX_NESTING_DEPTH: int = 200

# Variable mapper
# Similarity = COUNT_WEIGHT * kind-count agreement + POSITION_WEIGHT * positional agreement
MAPPING_COUNT_WEIGHT: float = 0.7
MAPPING_POSITION_WEIGHT: float = 0.3
MAPPING_MIN_SIMILARITY: float = 0.5
# Exact assignment is only attempted below this many variables per side
EXACT_MATCHING_MAX_VARIABLES: int = 7

# Value comparison: relative gap at or below this is a minor mismatch
MINOR_VALUE_TOLERANCE: float = 0.1

# Partial credit, as a fraction of a requirement's share
COUNT_MISMATCH_CREDIT: float = 0.5
MINOR_VALUE_CREDIT: float = 0.75
MAJOR_VALUE_CREDIT: float = 0.4

# Penalties, in score points
ORDER_VIOLATION_PENALTY: float = 5.0
EXTRA_BLOCK_PENALTY: float = 3.0
EXTRA_VARIABLE_PENALTY: float = 2.0
EXTRA_PENALTY_CAP: float = 15.0

# Feedback
PASSING_SCORE: int = 80
MAX_HINTS: int = 3
CATEGORY_SUMMARY_THRESHOLD: int = 3

# (minimum score, summary sentence), checked top-down
SCORE_BANDS: list[tuple[int, str]] = [
    (100, "Perfect! Your program matches the model solution exactly."),
    (85, "Almost there! Just a few small things to polish."),
    (80, "Correct, well done!"),
    (60, "You're getting there. A few more fixes and you'll have it."),
    (0, "Keep going! Check the hints below and give it another try."),
]
INVALID_INPUT_SUMMARY: str = "The submitted data is invalid."

SEVERITY_ICONS: dict[str, str] = {
    "success": "✓",
    "warning": "△",
    "error": "✗",
}
