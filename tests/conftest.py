"""Shared fixtures: isolated agent directories, a config snapshot and a fake HTTP session.

No network access anywhere in the suite; every loop gets a MagicMock session
through its session factory and an injected sleep that never blocks.
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from agent_comms.config import AgentConfig, AgentPaths
from agent_comms.machine import ResultMachine


def make_response(status_code: int = 200, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 400
    resp.text = text
    return resp


class StopAfter:
    """Injected sleep: lets `cycles` cycles run, then sets the stop event."""

    def __init__(self, cycles: int) -> None:
        self.cycles = cycles
        self.calls = 0

    def __call__(self, stop_event: threading.Event, seconds: float) -> bool:
        self.calls += 1
        if self.calls > self.cycles:
            stop_event.set()
            return True
        return False


def no_sleep(stop_event: threading.Event, seconds: float) -> bool:
    return stop_event.is_set()


@pytest.fixture
def paths(tmp_path) -> AgentPaths:
    p = AgentPaths.from_base(tmp_path)
    p.ensure()
    return p


@pytest.fixture
def config() -> AgentConfig:
    return AgentConfig.from_dict(
        {
            "idUrl": "http://c2.test/api/clientid",
            "clientUpdates": {"isEnabled": True, "cycleSleep": 10, "postUrl": "http://c2.test/api/clientupdates"},
            "clientResults": {"isEnabled": True, "cycleSleep": 10, "postUrl": "http://c2.test/api/clientresults"},
            "survey": {"isEnabled": True, "postUrl": "http://c2.test/api/clientsurvey"},
            "trustAllCertificates": False,
            "requestTimeoutSec": 5,
        }
    )


@pytest.fixture
def machine() -> ResultMachine:
    return ResultMachine(name="npc-workstation-01", fqdn="npc-workstation-01.range.local",
                         host="npc-workstation-01", ip_address="10.0.0.5", current_username="npc")


@pytest.fixture
def session() -> MagicMock:
    s = MagicMock()
    s.get.return_value = make_response(404)
    s.post.return_value = make_response(200, "{}")
    return s


@pytest.fixture
def stop_event() -> threading.Event:
    return threading.Event()
