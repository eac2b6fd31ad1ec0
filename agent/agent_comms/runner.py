"""
Entry point and auto-restart wrapper.
"""

import signal
import time

from .constants import AGENT_VERSION
from .config import (
    log, setup_logging, load_config, save_config, AgentConfig, AgentPaths,
)
from .exceptions import ConfigurationError
from .app import AgentApp


def _install_signal_handlers(app):
    def _handle(signum, frame):
        log.info("Received signal %d — shutting down", signum)
        app.stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def load_or_create_config(paths):
    config = load_config(paths.config_file)
    if config is None:
        config = AgentConfig()
        save_config(config, paths.config_file)
        log.info("No config found — wrote defaults to %s", paths.config_file)
    return config


def main(base_dir=None, post_survey=False):
    """Primary agent entry point. Blocks until a shutdown signal arrives."""
    paths = AgentPaths.from_base(base_dir)
    paths.ensure()
    setup_logging(paths.app_log)
    log.info("NPC agent comms v%s (home: %s)", AGENT_VERSION, paths.base_dir)

    config = load_or_create_config(paths)
    app = AgentApp(config, paths)

    if post_survey:
        return app.survey.post_survey()

    _install_signal_handlers(app)
    app.start()
    try:
        while app.running and not app.wait(1.0):
            pass
    finally:
        app.stop()
    return True


def run_with_auto_restart(base_dir=None):
    """
    Wrapper that auto-restarts on crash. Gives up only on a bad config.
    Crash counter resets if the agent ran for 2+ minutes (not a boot-loop).
    """
    crash_count = 0
    crash_window = 120
    max_rapid_crashes = 10

    while True:
        start_time = time.time()
        try:
            main(base_dir)
            return 0
        except KeyboardInterrupt:
            log.info("Agent stopped by user.")
            return 0
        except ConfigurationError as e:
            log.error("Invalid configuration: %s", e)
            return 1
        except Exception as e:
            elapsed = time.time() - start_time
            log.error("Agent crashed after %.0fs: %s", elapsed, e, exc_info=True)

            if elapsed > crash_window:
                crash_count = 0
            crash_count += 1

            if crash_count >= max_rapid_crashes:
                wait = 120
                log.warning("Many rapid crashes (%d). Waiting %ds...", crash_count, wait)
            else:
                wait = min(10 * crash_count, 60)

            log.info("Restarting in %ds (crash %d)...", wait, crash_count)
            time.sleep(wait)
