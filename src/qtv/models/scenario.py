"""Scenario document model."""

from typing import Any, Dict
from pathlib import Path
from pydantic import BaseModel, Field, field_validator
import yaml

from .scene import SceneDefinition


class Scenario(BaseModel):
    """A complete branching scenario: every scene keyed by its id."""

    title: str = Field(default="Untitled scenario", description="Scenario title")
    start_scene: str = Field(default="start", description="Scene the session begins with")
    scenes: Dict[str, SceneDefinition] = Field(default_factory=dict, description="Scenes by id")

    class Config:
        """Pydantic config."""
        frozen = True

    @field_validator("scenes", mode="before")
    @classmethod
    def _fill_scene_ids(cls, value: Any) -> Any:
        """Use the mapping key as the scene id when a scene body omits it."""
        if not isinstance(value, dict):
            return value
        filled = {}
        for key, body in value.items():
            if isinstance(body, dict) and "id" not in body:
                body = {**body, "id": key}
            filled[key] = body
        return filled

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        """Build a scenario from plain data."""
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> "Scenario":
        """Load scenario from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Scenario file {path} does not contain a mapping")
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save scenario to YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)
