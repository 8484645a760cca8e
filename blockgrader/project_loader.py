"""
Project manifest loading.

Reads the `project.json` manifest from a plain JSON file, a folder that
contains one, or an `.sb3` archive. Only the manifest is read; assets are
ignored.
"""

import json
import zipfile
from pathlib import Path

from .config import PROJECT_FILENAME


def load_project(project_path: Path) -> dict:
    """
    Load a project manifest.

    Args:
        project_path: `.sb3` archive, `.json` file or directory containing `project.json`.

    Returns:
        Parsed manifest dictionary.

    Raises:
        FileNotFoundError: If the path or the manifest doesn't exist.
        ValueError: If the manifest is not valid JSON or not a JSON object.
    """
    if not project_path.exists():
        raise FileNotFoundError(f"Project not found: {project_path}")

    if project_path.is_dir():
        manifest_path = project_path / PROJECT_FILENAME
        if not manifest_path.exists():
            raise FileNotFoundError(f"No {PROJECT_FILENAME} in {project_path}")
        text = manifest_path.read_text(encoding="utf-8")
    elif zipfile.is_zipfile(project_path):
        with zipfile.ZipFile(project_path) as zf:
            try:
                text = zf.read(PROJECT_FILENAME).decode("utf-8")
            except KeyError:
                raise FileNotFoundError(f"No {PROJECT_FILENAME} inside {project_path}") from None
    else:
        text = project_path.read_text(encoding="utf-8")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid project manifest in {project_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Project manifest in {project_path} is not a JSON object")
    return data
