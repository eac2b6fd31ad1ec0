"""
Update poller — pulls server updates and dispatches them by kind.

One cycle: jittered sleep → GET poll endpoint → decode envelope → dispatch.
  RequestForTimeline  → upload the requested local timeline(s)
  Timeline            → replace the local timeline file wholesale
  TimelinePartial     → fill in TrackableIds, hand each handler to the orchestrator
  Health              → overwrite the local health snapshot

Nothing that happens inside a cycle can stop the loop; only the stop event does.
"""

from . import api
from . import jitter
from .config import log
from .exceptions import PayloadError, TransportError
from .models import (
    RequestForTimelineUpdate, TimelineUpdate, TimelinePartialUpdate,
    HealthUpdate, UnknownUpdate, parse_update,
)


class UpdatePoller:
    def __init__(self, config, timeline_store, health_store, orchestrator,
                 machine_factory, session_factory, stop_event, sleep=jitter.sleep):
        self._config = config
        self._machine_factory = machine_factory
        self._timelines = timeline_store
        self._health = health_store
        self._orchestrator = orchestrator
        self._session_factory = session_factory
        self._stop = stop_event
        self._sleep = sleep
        self._handlers = {
            RequestForTimelineUpdate: self._on_request_for_timeline,
            TimelineUpdate: self._on_timeline,
            TimelinePartialUpdate: self._on_timeline_partial,
            HealthUpdate: self._on_health,
            UnknownUpdate: self._on_unknown,
        }

    # ─── Loop ────────────────────────────────────────────────

    def run(self):
        settings = self._config.client_updates
        if not settings.is_enabled:
            log.info("Client updates disabled — update poller not started")
            return

        log.info("Update poller started (cycle=%dms, url=%s)", settings.cycle_sleep_ms, settings.post_url)
        while not self._stop.is_set():
            if self._sleep(self._stop, jitter.basic(settings.cycle_sleep_ms)):
                break
            try:
                self.poll_once()
            except Exception as e:
                log.error("Problem polling for new configuration: %s", e, exc_info=True)
        log.info("Update poller stopped")

    def poll_once(self):
        """Run one poll/dispatch cycle. Returns the dispatched update, or None."""
        if self._stop.is_set():
            return None

        session = self._session_factory(self._machine_factory())
        try:
            try:
                body = api.fetch_update(
                    session, self._config.client_updates.post_url, self._config.request_timeout_sec)
            except TransportError as e:
                log.debug("%s", e)
                return None

            if body is None:
                return None

            try:
                update = parse_update(body)
            except PayloadError as e:
                log.warning("Discarding undecodable update: %s", e)
                return None

            self.dispatch(update, session)
            return update
        finally:
            session.close()

    def dispatch(self, update, session):
        self._handlers[type(update)](update, session)

    # ─── Handlers ────────────────────────────────────────────

    def _on_request_for_timeline(self, update, session):
        timelines = self._timelines.get_local_timelines()
        if update.timeline_id is not None:
            matching = [t for t in timelines if t.id == update.timeline_id]
            if matching:
                timelines = matching
            else:
                log.info("Requested timeline %s not found locally — sending all %d",
                         update.timeline_id, len(timelines))

        url = self._config.timeline_post_url
        if not url:
            log.error("Can't get timeline post url!")
            return 0

        posted = 0
        for timeline in timelines:
            if self._stop.is_set():
                break
            try:
                api.post_timeline(session, url, timeline, self._config.request_timeout_sec)
                posted += 1
                log.debug("Timeline %s posted to server", timeline.id)
            except Exception as e:
                log.error("Problem posting timeline %s to %s: %s", timeline.id, url, e)
        return posted

    def _on_timeline(self, update, session):
        self._timelines.set_local_timeline(update.raw)

    def _on_timeline_partial(self, update, session):
        timeline = update.timeline
        assigned = timeline.assign_trackable_ids()
        log.debug("Partial timeline: %d handler(s), %d trackable id(s) assigned",
                  len(timeline.handlers), assigned)

        for handler in timeline.handlers:
            try:
                self._orchestrator.run_command(timeline, handler)
            except Exception as e:
                log.error("Partial timeline handler %s failed to start: %s", handler.handler_type, e)

    def _on_health(self, update, session):
        self._health.save(update.health)

    def _on_unknown(self, update, session):
        log.debug("Update %s has no handler, ignoring...", update.type_name)
