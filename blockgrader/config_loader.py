"""
Configuration loader for the Block Grader system.

Handles parsing and validation of YAML configuration files, including the
calibratable grading constants.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .config import (
    CATEGORY_SUMMARY_THRESHOLD,
    COUNT_MISMATCH_CREDIT,
    EXACT_MATCHING_MAX_VARIABLES,
    EXTRA_BLOCK_PENALTY,
    EXTRA_PENALTY_CAP,
    EXTRA_VARIABLE_PENALTY,
    MAJOR_VALUE_CREDIT,
    MAPPING_COUNT_WEIGHT,
    MAPPING_MIN_SIMILARITY,
    MAPPING_POSITION_WEIGHT,
    MAX_CHAIN_LENGTH,
    MAX_HINTS,
    MAX_NESTING_DEPTH,
    MINOR_VALUE_CREDIT,
    MINOR_VALUE_TOLERANCE,
    ORDER_VIOLATION_PENALTY,
    PASSING_SCORE,
)


class GradingSettings(BaseModel):
    """
    Calibratable constants of the grading engine.

    Defaults come from `config.py`; a YAML config can override any of them
    under its `grading:` key.
    """

    max_chain_length: int = Field(MAX_CHAIN_LENGTH, ge=1, description="Maximum blocks in one chain")
    max_nesting_depth: int = Field(MAX_NESTING_DEPTH, ge=1, description="Maximum substack/expression depth")

    mapping_count_weight: float = Field(MAPPING_COUNT_WEIGHT, ge=0, description="Weight of usage-kind count agreement")
    mapping_position_weight: float = Field(MAPPING_POSITION_WEIGHT, ge=0, description="Weight of positional agreement")
    mapping_min_similarity: float = Field(MAPPING_MIN_SIMILARITY, ge=0, le=1, description="Minimum similarity to map")
    exact_variable_matching: bool = Field(False, description="Use exact assignment for small variable counts")
    exact_matching_max_variables: int = Field(EXACT_MATCHING_MAX_VARIABLES, ge=1, le=9)

    minor_value_tolerance: float = Field(MINOR_VALUE_TOLERANCE, ge=0, description="Relative gap counted as minor")

    count_mismatch_credit: float = Field(COUNT_MISMATCH_CREDIT, ge=0, le=1)
    minor_value_credit: float = Field(MINOR_VALUE_CREDIT, ge=0, le=1)
    major_value_credit: float = Field(MAJOR_VALUE_CREDIT, ge=0, le=1)
    order_violation_penalty: float = Field(ORDER_VIOLATION_PENALTY, ge=0)
    extra_block_penalty: float = Field(EXTRA_BLOCK_PENALTY, ge=0)
    extra_variable_penalty: float = Field(EXTRA_VARIABLE_PENALTY, ge=0)
    extra_penalty_cap: float = Field(EXTRA_PENALTY_CAP, ge=0)

    passing_score: int = Field(PASSING_SCORE, ge=0, le=100)
    max_hints: int = Field(MAX_HINTS, ge=0, le=3)
    category_summary_threshold: int = Field(CATEGORY_SUMMARY_THRESHOLD, ge=1)


class GraderConfig(BaseModel):
    """
    Configuration model for the batch grader.
    """
    reference_path: Path = Field(..., description="Path to the reference project (.sb3, project.json or folder)")
    submissions_dir: Path = Field(..., description="Path to directory containing submissions")
    requirements_path: Optional[Path] = Field(None, description="Path to a curated requirements YAML/JSON")
    grades_dir: Optional[Path] = Field(None, description="Path to save aggregated grades")
    verbose: bool = Field(False, description="Enable verbose output")
    grading: GradingSettings = Field(default_factory=GradingSettings, description="Engine constants")


def load_config(config_path: Path) -> GraderConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        GraderConfig object with loaded values.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
        ValueError: If the config file is empty.
        ValidationError: If config data is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        raise ValueError(f"Configuration file is empty: {config_path}")

    # Resolve relative paths relative to the config file location
    config_dir = config_path.parent
    for path_field in ["reference_path", "submissions_dir", "requirements_path", "grades_dir"]:
        if path_field in config_data and config_data[path_field]:
            path = Path(config_data[path_field])
            if not path.is_absolute():
                config_data[path_field] = config_dir / path

    return GraderConfig(**config_data)
