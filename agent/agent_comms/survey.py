"""
Survey reporter — one-shot upload of the local survey artifact.

Called whenever the survey collaborator has written a new results file.
There is no retry loop here: on any failure the file stays put and the
next trigger tries again.
"""

import threading
from pathlib import Path

from . import api
from . import jitter
from .config import log
from .constants import SURVEY_JITTER_MS
from .envelope import encode_payload
from .models import Survey


class SurveyReporter:
    def __init__(self, config, survey_file, machine_factory, session_factory,
                 stop_event=None, sleep=jitter.sleep):
        self._config = config
        self._survey_file = Path(survey_file)
        self._machine_factory = machine_factory
        self._session_factory = session_factory
        self._stop = stop_event or threading.Event()
        self._sleep = sleep

    def post_survey(self):
        """Returns True when the survey was posted and the local file removed."""
        settings = self._config.survey
        if not settings.is_enabled:
            log.debug("Survey disabled — not posting")
            return False
        if not settings.post_url:
            log.error("Can't get survey post url!")
            return False

        try:
            if self._sleep(self._stop, jitter.basic(SURVEY_JITTER_MS)):
                return False
            if not self._survey_file.exists():
                return False

            survey = Survey.model_validate_json(self._survey_file.read_text(encoding="utf-8"))
            machine = self._machine_factory()
            body = encode_payload(survey, machine.name, settings.is_secure)

            session = self._session_factory(machine)
            try:
                api.post_json(session, settings.post_url, body, self._config.request_timeout_sec)
            finally:
                session.close()

            self._survey_file.unlink()
            log.info("Survey posted to server successfully")
            return True
        except Exception as e:
            log.error("Problem posting survey from %s to %s: %s",
                      self._survey_file, settings.post_url, e)
            return False
