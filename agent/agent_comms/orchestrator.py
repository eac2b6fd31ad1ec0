"""
Hand-off point to the automation layer for partial timelines.

The automation itself (browsers, shells, ...) lives outside this package.
Executors are registered per HandlerType and run on short-lived daemon
threads, so a slow or crashing handler never holds up the poller.
"""

import threading

from .config import log


class Orchestrator:
    def run_command(self, timeline, handler):
        raise NotImplementedError


class ThreadedOrchestrator(Orchestrator):
    """executors: {"BrowserFirefox": callable(timeline, handler), ...}"""

    def __init__(self, executors=None):
        self._executors = dict(executors or {})

    def register(self, handler_type, executor):
        self._executors[handler_type] = executor

    def run_command(self, timeline, handler):
        executor = self._executors.get(handler.handler_type)
        if executor is None:
            log.warning("No executor registered for handler %s — skipping", handler.handler_type)
            return None

        def _run():
            try:
                executor(timeline, handler)
            except Exception as e:
                log.error("Handler %s failed: %s", handler.handler_type, e, exc_info=True)

        thread = threading.Thread(target=_run, name=f"handler-{handler.handler_type}", daemon=True)
        thread.start()
        return thread
