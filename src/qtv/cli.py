"""CLI entry point for the interactive video player."""

import asyncio
import logging
import sys
import typer
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import config
from .errors import MalformedScenarioData, SceneNotFound
from .models import Scenario, SchedulerState
from .scenarios import demo_scenario

app = typer.Typer(
    name="qte-video",
    help="Branching interactive video player with quick-time events",
    no_args_is_help=True
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"qte-video version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """QTE Video - Play branching videos driven by quick-time events."""
    pass


def load_scenario(path: Optional[Path]) -> Scenario:
    """Load a scenario file, the configured one, or the built-in demo."""
    path = path or config.scenario_file()
    if path is None:
        return demo_scenario()
    return Scenario.from_yaml(path)


def build_registry(scenario: Scenario, strict: bool):
    """Validate a scenario into a registry, exiting on failure."""
    from .engine import ScenarioRegistry

    try:
        return ScenarioRegistry.from_scenario(scenario, strict=strict)
    except MalformedScenarioData as e:
        typer.echo(f"❌ Scenario is malformed:")
        for issue in e.issues:
            typer.echo(f"   {issue}")
        raise typer.Exit(1)


ScenarioArgument = typer.Argument(
    None,
    help="Path to scenario YAML file (defaults to QTV_SCENARIO or the built-in demo)",
    exists=True,
    file_okay=True,
    dir_okay=False
)


@app.command()
def validate(
    scenario_path: Optional[Path] = ScenarioArgument,
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Treat warnings as errors"
    ),
    probe: bool = typer.Option(
        False,
        "--probe",
        help="Open each clip with MoviePy and report its duration"
    ),
    assets: Optional[Path] = typer.Option(
        None,
        "--assets",
        "-a",
        help="Directory media locators are resolved against"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Validate a scenario and show its scene graph."""
    from .engine import ScenarioRegistry
    from .errors import IssueSeverity
    from .presentation.media import probe_duration

    setup_logging(verbose)
    try:
        scenario = load_scenario(scenario_path)
    except Exception as e:
        typer.echo(f"❌ Error loading scenario: {e}")
        raise typer.Exit(1)

    # Findings are reported here, once, instead of through the registry's log.
    strict = strict or config.strict_validation
    registry = ScenarioRegistry.from_scenario(scenario, validate=False)
    issues = registry.validate(start_scene=scenario.start_scene)
    blocking = [issue for issue in issues if strict or issue.severity == IssueSeverity.ERROR]
    if blocking:
        typer.echo("❌ Scenario is malformed:")
        for issue in blocking:
            typer.echo(f"   {issue}")
        raise typer.Exit(1)
    assets_dir = assets or config.assets_dir

    typer.echo(f"📁 Scenario: {scenario.title}")
    typer.echo(f"   Start scene: {scenario.start_scene}")
    typer.echo(f"   Scenes: {len(registry)}")

    typer.echo("\n📽️  Scenes:")
    missing_media = 0
    for scene_id in registry.scene_ids:
        scene = registry.lookup(scene_id)
        kind = "🏁" if scene.is_terminal else "🎬"
        typer.echo(f"   {kind} {scene_id}: {scene.media_source or '(no media)'}")

        if probe and scene.media_source:
            clip_path = Path(scene.media_source)
            if not clip_path.is_absolute():
                clip_path = assets_dir / clip_path
            try:
                typer.echo(f"      duration: {probe_duration(clip_path):.1f}s")
            except Exception as e:
                missing_media += 1
                typer.echo(f"      ⚠️  {e}")

        for event in scene.events:
            target = event.on_success or "(resume)"
            typer.echo(
                f"      ⚡ {event.id} at {event.arm_time}s for {event.timeout_duration}s → {target}"
            )
        if scene.is_terminal:
            typer.echo(f"      → {scene.terminal_title or 'GAME OVER'}")
        elif scene.next:
            typer.echo(f"      → {scene.next} on end")

    if issues:
        typer.echo(f"\n⚠️  {len(issues)} warning(s):")
        for issue in issues:
            typer.echo(f"   {issue}")

    if missing_media:
        typer.echo(f"\n⚠️  {missing_media} clip(s) could not be opened")
        raise typer.Exit(1)

    typer.echo("\n✅ Scenario is valid")


@app.command()
def walk(
    scenario_path: Optional[Path] = ScenarioArgument,
    start: Optional[str] = typer.Option(
        None,
        "--start",
        "-s",
        help="Scene to start from"
    ),
    activate: Optional[List[str]] = typer.Option(
        None,
        "--activate",
        "-a",
        help="Event to activate when its prompt appears (repeatable; 'scene/event' to qualify)"
    ),
    reaction: float = typer.Option(
        0.0,
        "--reaction",
        "-r",
        help="Seconds between a prompt appearing and its activation",
        min=0.0
    ),
    duration: Optional[float] = typer.Option(
        None,
        "--duration",
        "-d",
        help="Simulated media length per scene in seconds"
    ),
    period: Optional[float] = typer.Option(
        None,
        "--period",
        "-p",
        help="Simulated clock period in seconds"
    ),
    max_time: float = typer.Option(
        600.0,
        "--max-time",
        help="Give up after this many simulated seconds"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Play a scenario unattended on simulated time.

    Prompts named with --activate are answered after --reaction seconds;
    every other prompt times out.

    Example:
        qte-video walk --activate qte_1
    """
    from .engine import Autopilot, PlaybackMode, Session, VirtualTimerService
    from .engine import walk as run_walk
    from .presentation import ConsolePresentation, SilentPlayer

    setup_logging(verbose)
    try:
        scenario = load_scenario(scenario_path)
    except Exception as e:
        typer.echo(f"❌ Error loading scenario: {e}")
        raise typer.Exit(1)
    registry = build_registry(scenario, config.strict_validation)

    timers = VirtualTimerService()
    presentation = ConsolePresentation(SilentPlayer())
    try:
        session = Session(
            registry,
            presentation,
            timers,
            mode=PlaybackMode.SIMULATED,
            simulation_period=period or config.simulation_period,
            simulated_duration=duration or config.simulated_duration,
        )
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)
    autopilot = Autopilot(session.scheduler, timers, activate or [], reaction)

    typer.echo(f"🚶 Walking: {scenario.title}")
    try:
        final_state = run_walk(
            session,
            timers,
            autopilot,
            start_scene=start or config.start_scene or None,
            max_time=max_time,
        )
    except SceneNotFound as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    typer.echo(f"\n📋 Path: {' → '.join(autopilot.scenes_visited)}")
    typer.echo(f"   Simulated time: {timers.now():.1f}s")

    for error in session.scheduler.errors:
        typer.echo(f"   ⚠️  {error}")

    if final_state != SchedulerState.TERMINAL:
        typer.echo(f"\n❌ Walk ended without reaching an end screen ({final_state.value})")
        raise typer.Exit(1)


@app.command()
def play(
    scenario_path: Optional[Path] = ScenarioArgument,
    start: Optional[str] = typer.Option(
        None,
        "--start",
        "-s",
        help="Scene to start from"
    ),
    simulate: bool = typer.Option(
        False,
        "--simulate",
        help="Run on a simulated clock instead of opening media files"
    ),
    assets: Optional[Path] = typer.Option(
        None,
        "--assets",
        "-a",
        help="Directory media locators are resolved against"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
) -> None:
    """Play a scenario interactively in the terminal."""
    setup_logging(verbose)

    try:
        config.validate_timing()
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    try:
        scenario = load_scenario(scenario_path)
    except Exception as e:
        typer.echo(f"❌ Error loading scenario: {e}")
        raise typer.Exit(1)
    registry = build_registry(scenario, config.strict_validation)
    start_scene = start or config.start_scene or scenario.start_scene
    if start_scene not in registry:
        typer.echo(f"❌ Start scene '{start_scene}' not found")
        raise typer.Exit(1)

    typer.echo(f"🎮 {scenario.title}")
    asyncio.run(_play_session(registry, start_scene, simulate, assets or config.assets_dir))


async def _play_session(registry, start_scene: str, simulate: bool, assets_dir: Path) -> None:
    """Run an interactive session until the player quits."""
    from .engine import LoopTimerService, PlaybackMode, Session
    from .presentation import ClipPlayer, ConsoleInput, ConsolePresentation, SilentPlayer

    loop = asyncio.get_running_loop()
    timers = LoopTimerService(loop)
    if simulate:
        player = SilentPlayer()
        mode = PlaybackMode.SIMULATED
    else:
        player = ClipPlayer(timers, assets_dir, update_interval=config.time_update_interval)
        mode = PlaybackMode.MEDIA

    presentation = ConsolePresentation(player)
    session = Session(
        registry,
        presentation,
        timers,
        mode=mode,
        simulation_period=config.simulation_period,
        simulated_duration=config.simulated_duration,
    )
    finished = asyncio.Event()
    # Restart before the first start behaves like start.
    console = ConsoleInput(
        presentation,
        on_start=lambda: session.start(start_scene),
        on_restart=lambda: session.start(start_scene),
    )

    def on_stdin() -> None:
        line = sys.stdin.readline()
        if not line or not console.handle(line):
            finished.set()

    session.scheduler.show_start_screen()
    loop.add_reader(sys.stdin.fileno(), on_stdin)
    try:
        await finished.wait()
    finally:
        loop.remove_reader(sys.stdin.fileno())
        session.close()
        typer.echo("👋 Bye")


if __name__ == "__main__":
    app()
