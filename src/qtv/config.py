"""Configuration management."""

import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


class Config(BaseModel):
    """Application configuration."""

    # Scenario
    scenario_path: str = Field(
        default_factory=lambda: os.getenv("QTV_SCENARIO", ""),
        description="Path to scenario YAML (empty for the built-in demo)"
    )
    start_scene: str = Field(
        default_factory=lambda: os.getenv("QTV_START_SCENE", ""),
        description="Scene to start from (empty for the scenario's own start scene)"
    )
    strict_validation: bool = Field(
        default_factory=lambda: _env_flag("QTV_STRICT"),
        description="Treat scenario validation warnings as errors"
    )

    # Paths
    assets_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("QTV_ASSETS", ".")),
        description="Directory media locators are resolved against"
    )

    # Timing
    time_update_interval: float = Field(
        default_factory=lambda: float(os.getenv("QTV_TIME_UPDATE_INTERVAL", "0.25")),
        description="Seconds between playback time updates"
    )
    simulation_period: float = Field(
        default_factory=lambda: float(os.getenv("QTV_SIMULATION_PERIOD", "0.1")),
        description="Seconds between simulated clock ticks"
    )
    simulated_duration: float = Field(
        default_factory=lambda: float(os.getenv("QTV_SIMULATED_DURATION", "10.0")),
        description="Length of each scene's mock media in simulation mode"
    )

    class Config:
        """Pydantic config."""
        frozen = False

    def scenario_file(self) -> Optional[Path]:
        """Return the configured scenario path, if any."""
        return Path(self.scenario_path) if self.scenario_path else None

    def validate_timing(self) -> None:
        """Validate that timing settings are usable.

        Raises:
            ValueError: If any interval or duration is not positive.
        """
        invalid: list[str] = []

        if self.time_update_interval <= 0:
            invalid.append("QTV_TIME_UPDATE_INTERVAL")
        if self.simulation_period <= 0:
            invalid.append("QTV_SIMULATION_PERIOD")
        if self.simulated_duration <= 0:
            invalid.append("QTV_SIMULATED_DURATION")

        if invalid:
            raise ValueError(
                f"Timing settings must be positive: {', '.join(invalid)}. "
                "Check the corresponding environment variables."
            )


# Global config instance
config = Config()
