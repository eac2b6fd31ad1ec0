"""
ResultMachine — the agent identity sent with every request.

`name` doubles as the shared secret for encrypted payloads, so it must stay
stable for the life of the host. A fresh snapshot is cheap; loops build one
per session.
"""

import json
import socket
import getpass
from dataclasses import dataclass
from typing import Optional

from .constants import AGENT_VERSION
from .config import log


def _current_user():
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return ""


def _host_ip(host):
    try:
        return socket.gethostbyname(host)
    except OSError:
        return "127.0.0.1"


def read_agent_id(id_file):
    """Server-assigned id from instance/id.json, or None if not enrolled yet."""
    try:
        if not id_file.exists():
            return None
        raw = id_file.read_text(encoding="utf-8").strip()
    except OSError as e:
        log.warning("Could not read agent id from %s: %s", id_file, e)
        return None
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    if isinstance(data, dict):
        return data.get("id") or data.get("Id")
    return str(data)


@dataclass(frozen=True)
class ResultMachine:
    name: str
    fqdn: str = ""
    host: str = ""
    ip_address: str = ""
    current_username: str = ""
    version: str = AGENT_VERSION
    id: Optional[str] = None

    @classmethod
    def current(cls, id_file=None):
        host = socket.gethostname()
        return cls(
            name=host,
            fqdn=socket.getfqdn(),
            host=host,
            ip_address=_host_ip(host),
            current_username=_current_user(),
            id=read_agent_id(id_file) if id_file is not None else None,
        )
