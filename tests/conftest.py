"""Shared fixtures: small cast recordings built in memory."""

import json

import pytest

from cast_engine.scheduler import ManualScheduler


def build_cast(*events, header=None):
    """Cast text from event rows, with a v2 header unless header is False."""
    rows = []
    if header is not False:
        rows.append(json.dumps(header or {"version": 2, "width": 80, "height": 24}))
    rows.extend(json.dumps(list(e)) for e in events)
    return "\n".join(rows) + "\n"


@pytest.fixture
def make_cast():
    return build_cast


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def agent_cast():
    """A short agent session: output, an episode, a thinking marker, more output."""
    thinking = {
        "state_analysis": "Repository is cloned",
        "explanation": "Run the tests",
        "commands": [{"keystrokes": "pytest\n", "max_timeout_sec": 30}],
        "is_task_complete": False,
    }
    return build_cast(
        [100.0, "o", "$ git clone repo\r\n"],
        [101.0, "m", "Episode 1: 1 commands"],
        [102.0, "o", "\x1b[32mcloned\x1b[0m\r\n"],
        [105.0, "m", json.dumps(thinking)],
        [106.0, "i", "pytest\r"],
        [110.0, "o", "3 passed\r\n"],
    )


@pytest.fixture
def plain_cast():
    """Output only, 120s long, no markers."""
    return build_cast(
        [0.0, "o", "start\r\n"],
        [60.0, "o", "middle\r\n"],
        [120.0, "o", "end\r\n"],
    )
