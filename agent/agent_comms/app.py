"""
AgentApp — owns the update poller and result relay threads.

Both loops share one stop event. stop() sets it and joins the threads;
the relay only checks the event between files, so a rotation that has
already started is allowed to finish before the thread exits.
"""

import threading
from functools import partial

from .constants import AGENT_VERSION, SHUTDOWN_JOIN_SEC
from .config import log
from .http_client import session_factory_for
from .machine import ResultMachine
from .orchestrator import ThreadedOrchestrator
from .relay import ResultRelay
from .survey import SurveyReporter
from .timelines import TimelineStore, HealthStore
from .updates import UpdatePoller


class AgentApp:
    def __init__(self, config, paths, orchestrator=None, session_factory=None, machine_factory=None):
        self._config = config
        self._paths = paths
        self.stop_event = threading.Event()
        self._threads = []

        machine_factory = machine_factory or partial(ResultMachine.current, paths.id_file)
        session_factory = session_factory or session_factory_for(config)

        self.poller = UpdatePoller(
            config,
            TimelineStore(paths.timeline_file, paths.timelines_dir),
            HealthStore(paths.health_file),
            orchestrator or ThreadedOrchestrator(),
            machine_factory,
            session_factory,
            self.stop_event,
        )
        self.relay = ResultRelay(
            config, paths.results_log, machine_factory, session_factory, self.stop_event,
        )
        self.survey = SurveyReporter(
            config, paths.survey_file, machine_factory, session_factory, self.stop_event,
        )

    @property
    def running(self):
        return any(t.is_alive() for t in self._threads)

    def start(self):
        """Start both loops on daemon threads. Returns immediately."""
        self._threads = [
            threading.Thread(target=self.poller.run, name="update-poller", daemon=True),
            threading.Thread(target=self.relay.run, name="result-relay", daemon=True),
        ]
        for t in self._threads:
            t.start()
        log.info("v%s started (updates=%s, results=%s)", AGENT_VERSION,
                 self._config.client_updates.is_enabled, self._config.client_results.is_enabled)

    def report_survey(self):
        """Fire the one-shot survey upload on a short-lived thread."""
        thread = threading.Thread(target=self.survey.post_survey, name="survey-reporter", daemon=True)
        thread.start()
        return thread

    def wait(self, timeout=None):
        """Block until stop() is called. Returns True once stopped."""
        return self.stop_event.wait(timeout)

    def stop(self, timeout=SHUTDOWN_JOIN_SEC):
        self.stop_event.set()
        for t in self._threads:
            t.join(timeout)
            if t.is_alive():
                log.warning("%s did not stop within %ss", t.name, timeout)
        log.info("AgentApp shut down.")
