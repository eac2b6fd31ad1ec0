"""
Transport builder — a requests.Session bound to the agent identity.

Every request carries the ghosts-* identity headers so the server can keep
one record per agent across polls and uploads. Certificate policy is an
explicit per-session flag instead of a process-wide callback.
"""

import os
import certifi
import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .constants import (
    USER_AGENT, HEADER_ID, HEADER_NAME, HEADER_FQDN, HEADER_HOST,
    HEADER_IP, HEADER_USER, HEADER_VERSION,
)

_retry_strategy = Retry(
    total=2,
    backoff_factor=1,                           # Wait 1s, 2s between retries
    status_forcelist=[502, 503, 504],
    allowed_methods=["GET"],                    # Uploads are not idempotent
)


def _get_ca_bundle():
    """CA bundle path: env var override, else certifi."""
    env_ca = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    if env_ca and os.path.isfile(env_ca):
        return env_ca
    return certifi.where()


def identity_headers(machine, user_agent=USER_AGENT):
    headers = {
        "User-Agent": user_agent,
        HEADER_NAME: machine.name,
        HEADER_FQDN: machine.fqdn,
        HEADER_HOST: machine.host,
        HEADER_IP: machine.ip_address,
        HEADER_USER: machine.current_username,
        HEADER_VERSION: machine.version,
    }
    if machine.id:
        headers[HEADER_ID] = machine.id
    return headers


def create_session(machine, trust_all_certificates=False, user_agent=USER_AGENT):
    """Create a requests.Session with pooling, retry, identity headers and cert policy."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=2,
        max_retries=_retry_strategy,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update(identity_headers(machine, user_agent))

    if trust_all_certificates:
        session.verify = False
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    else:
        session.verify = _get_ca_bundle()
    return session


def session_factory_for(config):
    """Callable the loops use to get a fresh session for a machine snapshot."""
    def factory(machine):
        return create_session(
            machine,
            trust_all_certificates=config.trust_all_certificates,
            user_agent=config.user_agent,
        )
    return factory

