"""Scene and event data models."""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


Placement = Union[str, Dict[str, Any], None]


class EventDefinition(BaseModel):
    """A timed interactive prompt (quick-time event) inside a scene."""

    id: str = Field(..., description="Event identifier, unique within its scene")
    arm_time: float = Field(..., description="Seconds from scene start at which the event arms", ge=0)
    timeout_duration: float = Field(..., description="Seconds the prompt stays interactive", gt=0)
    label: str = Field(default="!", description="Prompt text")
    placement: Placement = Field(None, description="Positioning data passed through to presentation")
    on_success: Optional[str] = Field(None, description="Scene to load when the prompt is activated")

    class Config:
        """Pydantic config."""
        frozen = True


class SceneDefinition(BaseModel):
    """One playable video segment plus its events and transition rules."""

    id: str = Field(..., description="Unique scene identifier")
    media_source: Optional[str] = Field(None, description="Video locator")
    loop: bool = Field(default=False, description="Loop the clip instead of ending")
    next: Optional[str] = Field(None, description="Scene to load on natural end")
    is_terminal: bool = Field(default=False, description="Scene ends the session")
    terminal_title: Optional[str] = Field(None, description="End screen title")
    terminal_message: Optional[str] = Field(None, description="End screen message")
    events: List[EventDefinition] = Field(default_factory=list, description="Events in evaluation order")

    class Config:
        """Pydantic config."""
        frozen = True

    def event(self, event_id: str) -> Optional[EventDefinition]:
        """Return the event with the given id, or None."""
        for event in self.events:
            if event.id == event_id:
                return event
        return None
