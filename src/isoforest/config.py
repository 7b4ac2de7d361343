"""Forest settings, optionally loaded from a YAML file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, PositiveInt


def _load_yaml_config(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config at {path} must be a YAML mapping.")
    return data


class ForestConfig(BaseModel):
    num_trees: PositiveInt = 100
    sub_sampling_size: PositiveInt = 256
    n_jobs: int = 1
    random_state: Optional[int] = None
    missing: Literal["right", "left"] = "right"
    contamination: Optional[float] = Field(default=None, gt=0.0, le=0.5)


def load_config(path: str | Path) -> ForestConfig:
    return ForestConfig(**_load_yaml_config(Path(path)))
