"""
Block Grader: Semantic grading for visual block programs

Compares a learner's block program against a reference solution by
structure rather than by text, tolerating renamed variables, and returns
a 0-100 score with prioritized feedback.
"""

__version__ = "0.1.0"

from .engine import evaluate

__all__ = ["evaluate"]
