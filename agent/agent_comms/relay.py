"""
Result relay — drains local result logs to the server.

Rotation of one file (primary or overflow):
  1. copy target → <stem>.<uuid>.proc (same directory)
  2. truncate target; producers keep appending to it from here on
  3. upload the copy's contents
  4. success → delete the copy (and the target, if it is an overflow file)
     failure → append the copy back onto the target, delete the copy

Bytes captured in step 1 are therefore either on the server or back on disk.
The restore is an append so anything written during the upload survives.
A .proc copy stranded by a crash or a failed restore is appended back onto
its target at the start of the next cycle.
"""

import enum
import shutil
import uuid
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Optional

from . import api
from . import jitter
from .config import log
from .constants import APP_LOG_NAME, LOG_GLOB, TEMP_SUFFIX
from .envelope import encode_payload
from .exceptions import RestoreError
from .models import TransferLogDump


class RelayStatus(enum.Enum):
    SENT = "sent"
    RESTORED = "restored"     # upload failed, content is back on disk for the next cycle
    SKIPPED = "skipped"       # nothing to send


@dataclass
class RelayResult:
    path: Path
    status: RelayStatus
    error: Optional[Exception] = None
    size: int = 0

    @property
    def ok(self):
        return self.status is not RelayStatus.RESTORED


# ─── Rotation ────────────────────────────────────────────────────

def temp_path_for(path):
    return path.with_name(f"{path.stem}.{uuid.uuid4()}{TEMP_SUFFIX}")


def target_path_for(temp, suffix):
    """Inverse of temp_path_for: <stem>.<uuid>.proc → <stem><suffix>."""
    stem = temp.name[:-len(TEMP_SUFFIX)].rsplit(".", 1)[0]
    return temp.with_name(stem + suffix)


def _read_capture(temp):
    data = temp.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        log.warning("%s is not valid UTF-8 (%s); invalid bytes sent as U+FFFD", temp, e.reason)
        return data.decode("utf-8", errors="replace")


def _restore(path, temp):
    """Append the captured copy back onto the target, then drop the copy."""
    try:
        with open(temp, "rb") as src, open(path, "ab") as dst:
            shutil.copyfileobj(src, dst)
        temp.unlink()
    except OSError as e:
        # The .proc copy is left behind so the bytes are still on disk
        raise RestoreError(path, e) from e


def relay_file(path, upload, deletable=False):
    """Rotate and upload one result file. `upload` takes the raw text.

    Upload failures come back as RelayStatus.RESTORED. Copy/truncate errors
    propagate untouched (nothing has been lost at that point), and a failed
    restore raises RestoreError.
    """
    path = Path(path)
    if path.stat().st_size == 0:
        if deletable:
            path.unlink(missing_ok=True)
        return RelayResult(path, RelayStatus.SKIPPED)

    temp = temp_path_for(path)
    shutil.copyfile(path, temp)
    try:
        with open(path, "w", encoding="utf-8"):
            pass
    except OSError:
        temp.unlink(missing_ok=True)
        raise

    try:
        raw = _read_capture(temp)
        upload(raw)
    except Exception as e:
        _restore(path, temp)
        return RelayResult(path, RelayStatus.RESTORED, error=e)

    temp.unlink(missing_ok=True)
    if deletable:
        path.unlink(missing_ok=True)
    return RelayResult(path, RelayStatus.SENT, size=len(raw))


# ─── Relay loop ──────────────────────────────────────────────────

class ResultRelay:
    def __init__(self, config, results_log, machine_factory, session_factory,
                 stop_event, sleep=jitter.sleep, excluded_names=(APP_LOG_NAME,)):
        self._config = config
        self._results_log = Path(results_log)
        self._machine_factory = machine_factory
        self._session_factory = session_factory
        self._stop = stop_event
        self._sleep = sleep
        self._excluded = frozenset(excluded_names)

    def run(self):
        settings = self._config.client_results
        if not settings.is_enabled:
            log.info("Client results disabled — result relay not started")
            return

        log.info("Result relay started (cycle=%dms, secure=%s, url=%s)",
                 settings.cycle_sleep_ms, settings.is_secure, settings.post_url)
        while not self._stop.is_set():
            if self._sleep(self._stop, jitter.basic(settings.cycle_sleep_ms)):
                break
            try:
                self.relay_once()
            except Exception as e:
                log.error("Problem posting logs to server: %s", e, exc_info=True)
        log.info("Result relay stopped")

    def relay_once(self):
        """Primary file first, then any overflow files. Returns the RelayResults."""
        self.recover_leftovers()

        results = []
        machine = self._machine_factory()
        session = self._session_factory(machine)
        try:
            upload = partial(self._upload, session, machine)

            if self._results_log.exists():
                results.append(self._relay(self._results_log, upload, deletable=False))
            else:
                log.debug("%s not found — sleeping...", self._results_log)

            for path in self.find_overflow_files():
                # Checked between files only, so a started rotation always finishes
                if self._stop.is_set():
                    break
                results.append(self._relay(path, upload, deletable=True))
        finally:
            session.close()
        return [r for r in results if r is not None]

    def recover_leftovers(self):
        """Append stranded .proc copies back onto their targets. Returns the targets restored."""
        directory = self._results_log.parent
        if not directory.is_dir():
            return []

        restored = []
        for temp in sorted(directory.glob(f"*{TEMP_SUFFIX}")):
            target = target_path_for(temp, self._results_log.suffix)
            try:
                _restore(target, temp)
            except RestoreError as e:
                log.error("Could not recover %s: %s", temp, e)
                continue
            log.warning("Recovered leftover %s into %s", temp.name, target.name)
            restored.append(target)
        return restored

    def find_overflow_files(self):
        directory = self._results_log.parent
        if not directory.is_dir():
            return []
        return sorted(
            p for p in directory.glob(LOG_GLOB)
            if p.is_file() and p != self._results_log and p.name not in self._excluded
        )

    def _relay(self, path, upload, deletable):
        try:
            result = relay_file(path, upload, deletable=deletable)
        except Exception as e:
            log.error("Problem relaying %s: %s", path, e)
            return None

        if result.status is RelayStatus.SENT:
            log.debug("%s posted to server successfully (%d chars)", path, result.size)
        elif result.status is RelayStatus.RESTORED:
            log.warning("Posting %s failed, content restored for next cycle: %s", path, result.error)
        return result

    def _upload(self, session, machine, raw):
        settings = self._config.client_results
        body = encode_payload(TransferLogDump(log=raw), machine.name, settings.is_secure)
        api.post_json(session, settings.post_url, body, self._config.request_timeout_sec)
