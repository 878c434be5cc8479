"""Error types raised by the scenario registry and the scene scheduler."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class QTVError(Exception):
    """Base class for all player errors."""


class SceneNotFound(QTVError):
    """A requested scene id is absent from the scenario registry."""

    def __init__(self, scene_id: str) -> None:
        self.scene_id = scene_id
        super().__init__(f"Scene {scene_id} not found")


class PlaybackStartFailure(QTVError):
    """Media for a scene failed to begin playing."""

    def __init__(self, scene_id: str, source: Optional[str]) -> None:
        self.scene_id = scene_id
        self.source = source
        super().__init__(f"Video failed to play for scene {scene_id} (source: {source})")


class IssueSeverity(str, Enum):
    """Severity of a scenario validation finding."""
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ScenarioIssue:
    """A single validation finding against one scene."""

    scene_id: Optional[str]
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR

    def __str__(self) -> str:
        where = self.scene_id if self.scene_id is not None else "<scenario>"
        return f"[{self.severity.value}] {where}: {self.message}"


class MalformedScenarioData(QTVError, ValueError):
    """Scenario data failed load-time validation.

    Attributes:
        issues: Every finding that caused the failure.
    """

    def __init__(self, issues: List[ScenarioIssue]) -> None:
        self.issues = issues
        details = "; ".join(str(issue) for issue in issues)
        super().__init__(f"Malformed scenario data: {details}")
