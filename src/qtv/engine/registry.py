"""Scenario registry: the read-only scene table the scheduler branches on."""

import logging
from collections import Counter, deque
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Set

from ..errors import IssueSeverity, MalformedScenarioData, ScenarioIssue, SceneNotFound
from ..models import Scenario, SceneDefinition

logger = logging.getLogger(__name__)


class ScenarioRegistry:
    """Immutable mapping from scene id to scene definition."""

    def __init__(
        self,
        scenes: Mapping[str, SceneDefinition],
        start_scene: Optional[str] = None,
        validate: bool = True,
        strict: bool = False,
    ) -> None:
        """Initialize the registry.

        Args:
            scenes: Scene definitions keyed by id. Copied on construction.
            start_scene: Entry scene, used for reachability checks.
            validate: Run load-time validation and raise on errors.
            strict: Treat validation warnings as errors.

        Raises:
            MalformedScenarioData: If validation finds a blocking issue.
        """
        self._scenes: Mapping[str, SceneDefinition] = MappingProxyType(dict(scenes))
        self._start_scene = start_scene

        if validate:
            issues = self.validate(start_scene=start_scene)
            blocking = [
                issue for issue in issues
                if strict or issue.severity == IssueSeverity.ERROR
            ]
            if blocking:
                raise MalformedScenarioData(blocking)
            for issue in issues:
                logger.warning(f"Scenario issue: {issue}")

    @classmethod
    def from_scenario(cls, scenario: Scenario, **kwargs) -> "ScenarioRegistry":
        """Build a registry from a scenario document."""
        kwargs.setdefault("start_scene", scenario.start_scene)
        return cls(scenario.scenes, **kwargs)

    @classmethod
    def from_yaml(cls, path: Path, **kwargs) -> "ScenarioRegistry":
        """Load a scenario YAML file into a registry."""
        return cls.from_scenario(Scenario.from_yaml(path), **kwargs)

    @property
    def start_scene(self) -> Optional[str]:
        """Return the entry scene id, if known."""
        return self._start_scene

    @property
    def scene_ids(self) -> List[str]:
        """Return scene ids in authored order."""
        return list(self._scenes)

    def lookup(self, scene_id: str) -> SceneDefinition:
        """Return the definition for a scene id.

        Raises:
            SceneNotFound: If the id is absent.
        """
        try:
            return self._scenes[scene_id]
        except KeyError:
            raise SceneNotFound(scene_id) from None

    def __contains__(self, scene_id: object) -> bool:
        return scene_id in self._scenes

    def __iter__(self) -> Iterator[str]:
        return iter(self._scenes)

    def __len__(self) -> int:
        return len(self._scenes)

    def validate(self, start_scene: Optional[str] = None) -> List[ScenarioIssue]:
        """Check the scene graph for authoring mistakes.

        Args:
            start_scene: Entry scene. Enables the unknown-start and
                reachability checks.

        Returns:
            Every finding, errors first in scene order, then warnings.
        """
        issues: List[ScenarioIssue] = []

        def error(scene_id: Optional[str], message: str) -> None:
            issues.append(ScenarioIssue(scene_id, message, IssueSeverity.ERROR))

        def warn(scene_id: Optional[str], message: str) -> None:
            issues.append(ScenarioIssue(scene_id, message, IssueSeverity.WARNING))

        for key, scene in self._scenes.items():
            if scene.id != key:
                error(key, f"registered under '{key}' but declares id '{scene.id}'")

            if not scene.is_terminal and not scene.media_source:
                error(key, "scene has no media source and is not terminal")

            duplicates = [
                event_id for event_id, count in Counter(e.id for e in scene.events).items()
                if count > 1
            ]
            for event_id in duplicates:
                error(key, f"duplicate event id '{event_id}'")

            if scene.next is not None and scene.next not in self._scenes:
                error(key, f"next scene '{scene.next}' does not exist")

            for event in scene.events:
                if event.on_success is not None and event.on_success not in self._scenes:
                    error(key, f"event '{event.id}' leads to unknown scene '{event.on_success}'")

            if not scene.is_terminal and scene.next is None:
                warn(key, "no next scene; natural end falls back to the generic end screen")

            if scene.is_terminal and not scene.terminal_title:
                warn(key, "terminal scene has no title")

        if start_scene is not None:
            if start_scene not in self._scenes:
                error(None, f"start scene '{start_scene}' does not exist")
            else:
                reachable = self._reachable_from(start_scene)
                for scene_id in self._scenes:
                    if scene_id not in reachable:
                        warn(scene_id, f"not reachable from '{start_scene}'")

        issues.sort(key=lambda issue: issue.severity != IssueSeverity.ERROR)
        return issues

    def _reachable_from(self, start_scene: str) -> Set[str]:
        """Return the scenes reachable from start via next and on_success."""
        seen = {start_scene}
        queue = deque([start_scene])
        while queue:
            scene = self._scenes.get(queue.popleft())
            if scene is None:
                continue
            targets = [scene.next] + [event.on_success for event in scene.events]
            for target in targets:
                if target is not None and target not in seen:
                    seen.add(target)
                    queue.append(target)
        return seen
