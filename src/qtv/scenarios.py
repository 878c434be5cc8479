"""Built-in demo scenario: one quick-time event deciding between two endings."""

from .models import Scenario

DEMO_SCENARIO = {
    "title": "Demo",
    "start_scene": "start",
    "scenes": {
        "start": {
            "id": "start",
            "media_source": "assets/video_1.mp4",
            "next": "fail",
            "loop": False,
            "events": [
                {
                    "id": "qte_1",
                    "arm_time": 1.6,
                    "timeout_duration": 1.5,
                    "placement": {"top": "30%", "left": "30%"},
                    "label": "ACT!",
                    "on_success": "win",
                },
            ],
        },
        "win": {
            "id": "win",
            "media_source": "assets/video_2.mp4",
            "next": None,
            "loop": False,
            "is_terminal": True,
            "terminal_title": "SUCCESS",
            "terminal_message": "",
        },
        "fail": {
            "id": "fail",
            "media_source": "assets/video_3.mp4",
            "next": None,
            "loop": False,
            "is_terminal": True,
            "terminal_title": "FAILED",
            "terminal_message": "You were too slow.",
        },
    },
}


def demo_scenario() -> Scenario:
    """Return the built-in demo scenario."""
    return Scenario.from_dict(DEMO_SCENARIO)
