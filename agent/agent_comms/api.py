"""
Server API calls — update poll, timeline report, JSON uploads.

All functions are blocking (called from the loop threads) and bounded by a
per-request timeout. Failures surface as TransportError; deciding whether a
failure is fatal is left to the caller.
"""

import json

import requests

from .config import log
from .constants import JSON_CONTENT_TYPE
from .exceptions import ConfigurationError, TransportError


# ─── Inbound ─────────────────────────────────────────────────────

def fetch_update(session, url, timeout):
    """GET the poll endpoint. Returns the body, or None when there is nothing new."""
    try:
        resp = session.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"API server appears to be not responding: {e}") from e

    if resp.status_code == 404:
        log.debug("No new configuration found")
        return None
    if not resp.ok:
        raise TransportError(f"Update poll failed: HTTP {resp.status_code}", resp.status_code)

    body = resp.text
    if not body or not body.strip():
        return None
    log.debug("Received new configuration (%d bytes)", len(body))
    return body


# ─── Outbound ────────────────────────────────────────────────────

def post_json(session, url, body, timeout):
    """POST an already-serialized JSON string."""
    try:
        resp = session.post(
            url,
            data=body.encode("utf-8"),
            headers={"Content-Type": JSON_CONTENT_TYPE},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise TransportError(f"POST {url} failed: {e}") from e

    if not resp.ok:
        raise TransportError(
            f"POST {url} failed: HTTP {resp.status_code} — {resp.text[:200]}", resp.status_code)
    return resp


def post_timeline(session, url, timeline, timeout):
    """The timeline endpoint takes the timeline as a JSON-encoded string."""
    if not url:
        raise ConfigurationError("Can't get timeline post url")
    body = json.dumps(timeline.to_json())
    return post_json(session, url, body, timeout)
