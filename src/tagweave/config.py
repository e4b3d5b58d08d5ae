"""Layout and rendering configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CONFIG_ENV_VAR = "TAGWEAVE_CONFIG"
ENV_PREFIX = "TAGWEAVE_"


class GraphConfig(BaseModel):
    """Canvas size, physics constants and colours for the tag graph."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    width: float = Field(default=800.0, gt=0, description="Logical canvas width")
    height: float = Field(default=600.0, gt=0, description="Logical canvas height")
    pixel_ratio: float = Field(default=1.0, gt=0, description="Device pixel ratio")
    fps: float = Field(default=60.0, gt=0, description="Animation frames per second")

    repulsion: float = Field(default=30.0, ge=0, description="Pairwise repulsion numerator")
    attraction: float = Field(default=0.005, ge=0, description="Link spring coefficient")
    attraction_scale: float = Field(default=100.0, gt=0, description="Link spring divisor")
    damping: float = Field(default=0.85, description="Velocity retained per frame")
    boundary_margin: float = Field(default=50.0, ge=0)
    boundary_push: float = Field(default=1.0, ge=0)

    node_radius: float = Field(default=20.0, gt=0)
    label_length: int = Field(default=6, gt=0)
    label_size: float = Field(default=10.0, gt=0)

    spawn_x_min: float = 50.0
    spawn_x_max: float = 750.0
    spawn_y_min: float = 50.0
    spawn_y_max: float = 550.0

    background_color: str = "rgb(255, 255, 255)"
    link_color: str = "rgba(180, 180, 180, 0.4)"
    link_width: float = Field(default=1.5, gt=0)
    node_color: str = "#000000"
    hover_color: str = "#333333"
    label_color: str = "white"

    seed: Optional[int] = Field(default=None, description="Seed for spawn positions")

    @field_validator("damping")
    @classmethod
    def _check_damping(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("damping must be in (0, 1]")
        return value

    @model_validator(mode="after")
    def _check_spawn_box(self) -> "GraphConfig":
        if self.spawn_x_min >= self.spawn_x_max:
            raise ValueError("spawn_x_min must be less than spawn_x_max")
        if self.spawn_y_min >= self.spawn_y_max:
            raise ValueError("spawn_y_min must be less than spawn_y_max")
        return self

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.fps


def _env_overrides(environ: dict[str, str]) -> dict[str, str]:
    overrides = {}
    for name in GraphConfig.model_fields:
        value = environ.get(ENV_PREFIX + name.upper())
        if value is not None and value != "":
            overrides[name] = value
    return overrides


def load_config(
    path: str | Path | None = None,
    environ: Optional[dict[str, str]] = None,
) -> GraphConfig:
    """Load configuration: defaults, then a YAML file, then TAGWEAVE_* variables.

    The file is ``path`` if given, else the file named by TAGWEAVE_CONFIG.
    An explicitly named file that does not exist raises FileNotFoundError.
    """
    environ = dict(os.environ) if environ is None else environ
    if path is None and environ.get(CONFIG_ENV_VAR):
        path = environ[CONFIG_ENV_VAR]

    values: dict = {}
    if path is not None:
        path = Path(path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Could not parse {path.name}: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"{path.name}: expected a mapping of settings")
        values.update(loaded)

    values.update(_env_overrides(environ))
    return GraphConfig(**values)
