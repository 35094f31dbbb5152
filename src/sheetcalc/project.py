"""Project-level configuration and scaffolding."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


CONFIG_FILENAME = "sheetcalc.yaml"

DEFAULT_CONFIG = {
    "workbook": "workbook.yaml",
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}

DEMO_CONFIG = """\
# sheetcalc project config
workbook: workbook.yaml
logging_fsync: false
"""

DEMO_WORKBOOK = """\
# sheetcalc workbook v1
# Formulas are lists of pre-split tokens.
version: 1
cells:
  A1:
    formula: ["1", "0"]
  A2:
    formula: ["2", "5"]
  B1:
    formula: ["A1", "*", "A2"]
  B2:
    formula: ["B1", "/", "4"]
  C1:
    formula: ["(", "A1", "+", "A2", ")", "*", "2"]
  D1:
    formula: ["A1", "/", "0"]
"""


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``sheetcalc.yaml``, with defaults.

    Args:
        project_dir: Root of the sheetcalc project.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the config file is unreadable or not a mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = Path(project_dir) / CONFIG_FILENAME
    if config_path.exists():
        try:
            user_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, UnicodeDecodeError) as exc:
            raise ValueError(f"{config_path}: invalid config: {exc}") from exc
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        config.update(user_config)
    return config


def workbook_path(project_dir: Path) -> Path:
    """Return the workbook file configured for *project_dir*."""
    config = load_project_config(project_dir)
    return Path(project_dir) / str(config["workbook"])


def scaffold_project(target_dir: Path) -> Path:
    """Create a new project with a demo workbook.

    Args:
        target_dir: Directory to create.

    Returns:
        The project directory.

    Raises:
        FileExistsError: If *target_dir* already contains a project.
    """
    target_dir = Path(target_dir)
    if (target_dir / CONFIG_FILENAME).exists():
        raise FileExistsError(f"Project already exists at {target_dir}")

    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / CONFIG_FILENAME).write_text(DEMO_CONFIG)
    (target_dir / "workbook.yaml").write_text(DEMO_WORKBOOK)
    (target_dir / "logs").mkdir(exist_ok=True)
    return target_dir
