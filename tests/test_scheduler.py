"""Tests for the scene scheduler state machine."""

import pytest

from qtv.engine import ScenarioRegistry, SceneScheduler
from qtv.errors import SceneNotFound
from qtv.models import SceneDefinition, SchedulerState

from conftest import FakePresentation


def make_registry(*scenes: dict) -> ScenarioRegistry:
    return ScenarioRegistry(
        {scene["id"]: SceneDefinition(**scene) for scene in scenes},
        validate=False,
    )


class TestLoadScene:
    """Scene loading and runtime reset."""

    def test_initial_state_is_idle(self, scheduler):
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id is None
        assert scheduler.current_scene is None
        assert scheduler.armed_event_ids == frozenset()
        assert scheduler.fired_event_ids == frozenset()
        assert not scheduler.is_playing
        assert not scheduler.has_pending_timeout

    def test_load_sets_source_and_plays(self, scheduler, presentation):
        scheduler.load_scene("start")

        assert scheduler.state == SchedulerState.PLAYING
        assert scheduler.current_scene_id == "start"
        assert scheduler.current_scene.media_source == "assets/video_1.mp4"
        assert scheduler.is_playing
        assert presentation.commands == [
            ("set_source", "assets/video_1.mp4"),
            ("set_loop", False),
            ("play",),
        ]

    def test_unknown_scene_raises_and_leaves_state(self, scheduler, presentation):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        commands_before = list(presentation.commands)

        with pytest.raises(SceneNotFound) as exc_info:
            scheduler.load_scene("missing")

        assert exc_info.value.scene_id == "missing"
        assert scheduler.state == SchedulerState.EVENT_ARMED
        assert scheduler.current_scene_id == "start"
        assert scheduler.armed_event_ids == {"qte_1"}
        assert scheduler.fired_event_ids == {"qte_1"}
        assert scheduler.has_pending_timeout
        assert presentation.commands == commands_before

    def test_unknown_scene_from_idle(self, scheduler):
        with pytest.raises(SceneNotFound):
            scheduler.load_scene("nowhere")
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id is None

    def test_playback_failure_stays_idle(self, registry, timers):
        presentation = FakePresentation(playable=False)
        scheduler = SceneScheduler(registry, presentation, timers)

        scheduler.load_scene("start")

        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id == "start"
        assert not scheduler.is_playing
        assert len(scheduler.errors) == 1
        assert "start" in scheduler.errors[0]

        # Inert: ticks do nothing and nothing auto-advances.
        scheduler.tick(5.0)
        assert scheduler.armed_event_ids == frozenset()
        assert timers.pending == 0

    def test_terminal_scene_without_media_shows_end_screen(self, presentation, timers):
        registry = make_registry(
            {"id": "credits", "is_terminal": True, "terminal_title": "FIN", "terminal_message": "Thanks"},
        )
        scheduler = SceneScheduler(registry, presentation, timers)

        scheduler.load_scene("credits")

        assert scheduler.state == SchedulerState.TERMINAL
        assert presentation.terminal_screen == ("FIN", "Thanks")
        assert "set_source" not in presentation.names()

    def test_reload_clears_fired_events(self, scheduler, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        timers.advance(1.5)
        assert scheduler.fired_event_ids == {"qte_1"}

        scheduler.load_scene("start")

        assert scheduler.fired_event_ids == frozenset()
        scheduler.tick(1.6)
        assert scheduler.armed_event_ids == {"qte_1"}

    def test_load_while_armed_cancels_timeout_and_prompt(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)

        scheduler.load_scene("fail")

        assert ("remove_prompt", "qte_1") in presentation.commands
        assert presentation.prompts == {}
        assert not scheduler.has_pending_timeout
        assert timers.pending == 0
        assert scheduler.current_scene_id == "fail"
        assert scheduler.state == SchedulerState.PLAYING


class TestTick:
    """Event arming driven by the playback clock."""

    def test_before_arm_time_arms_nothing(self, scheduler, presentation):
        scheduler.load_scene("start")
        for t in (0.0, 0.5, 1.0, 1.59):
            scheduler.tick(t)

        assert scheduler.state == SchedulerState.PLAYING
        assert scheduler.armed_event_ids == frozenset()
        assert "show_prompt" not in presentation.names()

    def test_arm_time_reached_arms_event(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)

        assert scheduler.state == SchedulerState.EVENT_ARMED
        assert scheduler.armed_event_ids == {"qte_1"}
        assert scheduler.fired_event_ids == {"qte_1"}
        assert not scheduler.is_playing
        assert not presentation.playing
        assert presentation.commands[-2:] == [
            ("pause",),
            ("show_prompt", "qte_1", "ACT!", {"top": "30%", "left": "30%"}),
        ]
        assert timers.next_due() == pytest.approx(1.5)

    def test_tick_ignored_when_not_playing(self, scheduler):
        scheduler.tick(5.0)
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.fired_event_ids == frozenset()

    def test_fired_event_never_rearms(self, scheduler, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        timers.advance(1.5)
        assert scheduler.state == SchedulerState.PLAYING

        for t in (1.6, 2.0, 3.0, 100.0):
            scheduler.tick(t)

        assert scheduler.state == SchedulerState.PLAYING
        assert scheduler.armed_event_ids == frozenset()

    def test_simultaneous_arm_times_arm_one_per_tick_in_list_order(self, presentation, timers):
        registry = make_registry({
            "id": "s",
            "media_source": "s.mp4",
            "events": [
                {"id": "a", "arm_time": 1.0, "timeout_duration": 1.0},
                {"id": "b", "arm_time": 1.0, "timeout_duration": 1.0},
            ],
        })
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("s")

        scheduler.tick(1.0)
        assert scheduler.armed_event_ids == {"a"}
        assert scheduler.fired_event_ids == {"a"}

        # Still armed: further ticks are ignored.
        scheduler.tick(1.0)
        assert scheduler.armed_event_ids == {"a"}

        timers.advance(1.0)
        scheduler.tick(1.0)
        assert scheduler.armed_event_ids == {"b"}
        assert scheduler.fired_event_ids == {"a", "b"}

    def test_events_evaluated_in_list_order_not_time_order(self, presentation, timers):
        registry = make_registry({
            "id": "s",
            "media_source": "s.mp4",
            "events": [
                {"id": "late", "arm_time": 2.0, "timeout_duration": 1.0},
                {"id": "early", "arm_time": 1.0, "timeout_duration": 1.0},
            ],
        })
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("s")

        scheduler.tick(2.5)

        assert scheduler.armed_event_ids == {"late"}


class TestResolution:
    """Success and timeout resolution."""

    def test_success_with_target_loads_that_scene(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)

        presentation.click("qte_1")

        assert scheduler.current_scene_id == "win"
        assert scheduler.state == SchedulerState.PLAYING
        assert scheduler.is_playing
        assert scheduler.armed_event_ids == frozenset()
        assert scheduler.fired_event_ids == frozenset()
        assert not scheduler.has_pending_timeout
        assert timers.pending == 0
        assert presentation.source == "assets/video_2.mp4"
        assert ("remove_prompt", "qte_1") in presentation.commands

    def test_success_without_target_resumes_in_place(self, presentation, timers):
        registry = make_registry({
            "id": "s",
            "media_source": "s.mp4",
            "next": "s",
            "events": [{"id": "dodge", "arm_time": 1.0, "timeout_duration": 2.0}],
        })
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("s")
        scheduler.tick(1.0)

        scheduler.activate("dodge")

        assert scheduler.current_scene_id == "s"
        assert scheduler.state == SchedulerState.PLAYING
        assert scheduler.is_playing
        assert presentation.playing
        assert scheduler.fired_event_ids == {"dodge"}
        assert timers.pending == 0

    def test_timeout_resumes_current_scene(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)

        timers.advance(1.0)
        assert scheduler.state == SchedulerState.EVENT_ARMED

        timers.advance(0.5)
        assert scheduler.state == SchedulerState.PLAYING
        assert scheduler.current_scene_id == "start"
        assert scheduler.is_playing
        assert presentation.playing
        assert scheduler.armed_event_ids == frozenset()
        assert presentation.prompts == {}
        assert presentation.commands[-2:] == [("remove_prompt", "qte_1"), ("play",)]

    def test_failed_resume_goes_idle(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        presentation.playable = False

        timers.advance(1.5)

        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id == "start"
        assert not scheduler.is_playing
        assert not presentation.playing
        assert len(scheduler.errors) == 1
        assert "start" in scheduler.errors[0]

        scheduler.tick(5.0)
        scheduler.on_media_ended()
        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id == "start"

    def test_activation_of_unarmed_event_is_ignored(self, scheduler, presentation):
        scheduler.load_scene("start")
        scheduler.activate("qte_1")
        scheduler.activate("nonexistent")

        assert scheduler.current_scene_id == "start"
        assert scheduler.state == SchedulerState.PLAYING

    def test_activation_after_timeout_is_ignored(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        on_activate = presentation.prompts["qte_1"]
        timers.advance(1.5)

        on_activate("qte_1")

        assert scheduler.current_scene_id == "start"
        assert scheduler.state == SchedulerState.PLAYING

    def test_double_activation_loads_once(self, scheduler, presentation):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        on_activate = presentation.prompts["qte_1"]

        on_activate("qte_1")
        on_activate("qte_1")

        assert presentation.names().count("set_source") == 2
        assert scheduler.current_scene_id == "win"

    def test_stale_timeout_has_no_effect(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        stale = scheduler._runtime.pending_timeout

        presentation.click("qte_1")
        commands_after_success = list(presentation.commands)

        # Fire the old callback directly, as if it had already been queued.
        scheduler._run(scheduler._on_timeout, stale)

        assert presentation.commands == commands_after_success
        assert scheduler.current_scene_id == "win"
        assert scheduler.state == SchedulerState.PLAYING

    def test_new_timeout_cancels_previous(self, presentation, timers):
        registry = make_registry({
            "id": "s",
            "media_source": "s.mp4",
            "next": "s",
            "events": [
                {"id": "a", "arm_time": 1.0, "timeout_duration": 5.0},
                {"id": "b", "arm_time": 1.0, "timeout_duration": 5.0},
            ],
        })
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("s")
        scheduler.tick(1.0)
        first = scheduler._runtime.pending_timeout

        scheduler.activate("a")
        scheduler.tick(1.0)

        assert first.handle.cancelled()
        assert scheduler._runtime.pending_timeout is not first
        assert timers.pending == 1

    def test_success_to_missing_scene_halts(self, presentation, timers):
        registry = make_registry({
            "id": "s",
            "media_source": "s.mp4",
            "events": [{"id": "a", "arm_time": 0.0, "timeout_duration": 1.0, "on_success": "gone"}],
        })
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("s")
        scheduler.tick(0.0)

        scheduler.activate("a")

        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id == "s"
        assert not scheduler.is_playing
        assert presentation.prompts == {}
        assert timers.pending == 0
        assert any("gone" in error for error in scheduler.errors)


class TestMediaEnded:
    """Natural end of a scene's media."""

    def test_terminal_scene_shows_its_screen(self, scheduler, presentation):
        scheduler.load_scene("fail")
        scheduler.on_media_ended()

        assert scheduler.state == SchedulerState.TERMINAL
        assert not scheduler.is_playing
        assert presentation.terminal_screen == ("FAILED", "You were too slow.")

    def test_next_scene_loads(self, scheduler, presentation):
        scheduler.load_scene("start")
        scheduler.on_media_ended()

        assert scheduler.current_scene_id == "fail"
        assert scheduler.state == SchedulerState.PLAYING

    def test_no_next_falls_back_to_generic_end(self, presentation, timers):
        registry = make_registry({"id": "s", "media_source": "s.mp4"})
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("s")

        scheduler.on_media_ended()

        assert scheduler.state == SchedulerState.TERMINAL
        assert presentation.terminal_screen == ("THE END", "Scenario Completed")

    def test_terminal_defaults(self, presentation, timers):
        registry = make_registry({"id": "s", "media_source": "s.mp4", "is_terminal": True})
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("s")

        scheduler.on_media_ended()

        assert presentation.terminal_screen == ("GAME OVER", "")

    def test_ignored_once_terminal(self, scheduler, presentation):
        scheduler.load_scene("win")
        scheduler.on_media_ended()
        count = len(presentation.commands)

        scheduler.on_media_ended()
        scheduler.tick(99.0)

        assert len(presentation.commands) == count
        assert scheduler.state == SchedulerState.TERMINAL

    def test_ignored_when_nothing_loaded(self, scheduler, presentation):
        scheduler.on_media_ended()
        assert presentation.commands == []

    def test_ignored_after_playback_failure(self, registry, timers):
        presentation = FakePresentation(playable=False)
        scheduler = SceneScheduler(registry, presentation, timers)
        scheduler.load_scene("start")
        count = len(presentation.commands)

        scheduler.on_media_ended()

        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id == "start"
        assert len(presentation.commands) == count


class TestSessionControl:
    """Start, restart, start screen and listeners."""

    def test_restart_reloads_entry_scene(self, scheduler, presentation, timers):
        scheduler.start("start")
        scheduler.tick(1.6)
        presentation.click("qte_1")
        scheduler.on_media_ended()
        assert scheduler.state == SchedulerState.TERMINAL

        scheduler.restart()

        assert scheduler.current_scene_id == "start"
        assert scheduler.state == SchedulerState.PLAYING
        assert scheduler.fired_event_ids == frozenset()

    def test_restart_before_start_raises(self, scheduler):
        with pytest.raises(RuntimeError):
            scheduler.restart()

    def test_start_screen_tears_down_scene(self, scheduler, presentation, timers):
        scheduler.start("start")
        scheduler.tick(1.6)

        scheduler.show_start_screen()

        assert scheduler.state == SchedulerState.IDLE
        assert scheduler.current_scene_id is None
        assert timers.pending == 0
        assert presentation.prompts == {}
        assert presentation.names()[-1] == "show_start_screen"

    def test_listeners_see_every_transition(self, scheduler, presentation, timers):
        seen = []
        scheduler.add_listener(seen.append)

        scheduler.load_scene("start")
        scheduler.tick(1.6)
        timers.advance(1.5)
        scheduler.on_media_ended()
        scheduler.on_media_ended()

        assert [(t.source, t.target, t.scene_id, t.scene_loaded) for t in seen] == [
            (SchedulerState.IDLE, SchedulerState.PLAYING, "start", True),
            (SchedulerState.PLAYING, SchedulerState.EVENT_ARMED, "start", False),
            (SchedulerState.EVENT_ARMED, SchedulerState.PLAYING, "start", False),
            (SchedulerState.PLAYING, SchedulerState.PLAYING, "fail", True),
            (SchedulerState.PLAYING, SchedulerState.TERMINAL, "fail", False),
        ]

    def test_reentrant_activation_runs_after_arming(self, registry, timers):
        class EagerPresentation(FakePresentation):
            def show_prompt(self, event_id, label, placement, on_activate):
                super().show_prompt(event_id, label, placement, on_activate)
                on_activate(event_id)

        presentation = EagerPresentation()
        scheduler = SceneScheduler(registry, presentation, timers)
        seen = []
        scheduler.add_listener(lambda t: seen.append(t.target))

        scheduler.load_scene("start")
        scheduler.tick(1.6)

        assert seen == [
            SchedulerState.PLAYING,
            SchedulerState.EVENT_ARMED,
            SchedulerState.PLAYING,
        ]
        assert scheduler.current_scene_id == "win"
        assert timers.pending == 0

    def test_failed_action_drops_queued_work(self, scheduler):
        def on_transition(transition):
            if transition.target == SchedulerState.EVENT_ARMED:
                scheduler.load_scene("missing")
                scheduler.activate("qte_1")

        scheduler.add_listener(on_transition)
        scheduler.load_scene("start")
        with pytest.raises(SceneNotFound):
            scheduler.tick(1.6)
        scheduler.remove_listener(on_transition)

        scheduler.tick(2.0)

        assert scheduler.current_scene_id == "start"
        assert scheduler.state == SchedulerState.EVENT_ARMED

    def test_shutdown_cancels_timeout(self, scheduler, presentation, timers):
        scheduler.start("start")
        scheduler.tick(1.6)

        scheduler.shutdown()

        assert timers.pending == 0
        assert not scheduler.is_playing
        assert not presentation.playing


class TestEndToEnd:
    """Full playthroughs of the demo scenario."""

    def test_success_path(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.0)
        assert scheduler.armed_event_ids == frozenset()

        scheduler.tick(1.6)
        assert scheduler.armed_event_ids == {"qte_1"}
        assert not presentation.playing
        assert "qte_1" in presentation.prompts

        presentation.click("qte_1")
        assert scheduler.current_scene_id == "win"
        assert "qte_1" not in presentation.prompts
        assert presentation.playing
        assert presentation.source == "assets/video_2.mp4"

        scheduler.on_media_ended()
        assert scheduler.state == SchedulerState.TERMINAL
        assert presentation.terminal_screen[0] == "SUCCESS"

    def test_timeout_path(self, scheduler, presentation, timers):
        scheduler.load_scene("start")
        scheduler.tick(1.6)
        assert scheduler.armed_event_ids == {"qte_1"}

        timers.advance(1.5)
        assert scheduler.current_scene_id == "start"
        assert scheduler.is_playing

        scheduler.tick(4.0)
        scheduler.on_media_ended()
        assert scheduler.current_scene_id == "fail"

        scheduler.on_media_ended()
        assert scheduler.state == SchedulerState.TERMINAL
        assert presentation.terminal_screen == ("FAILED", "You were too slow.")
