"""
Jittered cycle intervals and a sleep that wakes up on shutdown.
"""

import random

from .constants import JITTER_MIN_MS, JITTER_MAX_MS


def basic(base_ms):
    """Base interval plus a uniform random offset, in seconds (never below 1ms)."""
    sleep_ms = base_ms + random.randint(JITTER_MIN_MS, JITTER_MAX_MS)
    return max(sleep_ms, 1) / 1000.0


def sleep(stop_event, seconds):
    """Block for `seconds` or until stop_event is set. Returns True if stopped."""
    return stop_event.wait(seconds)
