"""Tests for AgentApp thread lifecycle and the runner entry point."""

from __future__ import annotations

import dataclasses
import json

import pytest

from agent_comms import jitter, runner
from agent_comms.app import AgentApp
from agent_comms.config import AgentConfig, AgentPaths

from conftest import make_response


@pytest.fixture(autouse=True)
def fast_jitter(monkeypatch):
    monkeypatch.setattr(jitter, "basic", lambda base_ms: 0.01)


@pytest.fixture
def app(config, paths, machine, session) -> AgentApp:
    return AgentApp(config, paths, session_factory=lambda m: session, machine_factory=lambda: machine)


def test_start_and_stop(app, paths, session) -> None:
    paths.results_log.write_text("line1\n")
    app.start()
    assert app.running

    # Give each loop time for at least one cycle
    for _ in range(200):
        if session.get.called and session.post.called:
            break
        app.wait(0.01)

    app.stop(timeout=5)

    assert not app.running
    assert app.stop_event.is_set()
    assert session.get.called
    body = session.post.call_args.kwargs["data"].decode("utf-8")
    assert json.loads(body) == {"Log": "line1\n"}


def test_disabled_loops_exit_on_their_own(config, paths, machine, session) -> None:
    config = dataclasses.replace(
        config,
        client_updates=dataclasses.replace(config.client_updates, is_enabled=False),
        client_results=dataclasses.replace(config.client_results, is_enabled=False),
    )
    app = AgentApp(config, paths, session_factory=lambda m: session, machine_factory=lambda: machine)
    app.start()
    for t in app._threads:
        t.join(5)

    assert not app.running
    session.get.assert_not_called()
    session.post.assert_not_called()


def test_report_survey_runs_once(app, paths, session) -> None:
    paths.survey_file.write_text(json.dumps({"Uptime": "1.00:00:00"}))

    app.report_survey().join(5)

    assert not paths.survey_file.exists()
    session.post.assert_called_once()


def test_report_survey_keeps_file_on_failure(app, paths, session) -> None:
    paths.survey_file.write_text("{}")
    session.post.return_value = make_response(500, "nope")

    app.report_survey().join(5)

    assert paths.survey_file.exists()


def test_runner_writes_default_config(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(runner, "setup_logging", lambda *args, **kwargs: None)

    assert runner.main(tmp_path, post_survey=True) is False

    paths = AgentPaths.from_base(tmp_path)
    assert paths.config_file.exists()
    assert AgentConfig.from_dict(json.loads(paths.config_file.read_text())) == AgentConfig()
    assert paths.logs_dir.is_dir()
    assert paths.instance_dir.is_dir()


def test_auto_restart_gives_up_on_bad_config(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(runner, "setup_logging", lambda *args, **kwargs: None)
    paths = AgentPaths.from_base(tmp_path)
    paths.ensure()
    paths.config_file.write_text('{"clientResults": {"cycleSleep": "later"}}')

    assert runner.run_with_auto_restart(tmp_path) == 1
