"""
Local timeline and health stores.

The poller is the only writer of both files. The timeline file itself is
owned by the automation layer; we only replace it wholesale or read it back.
"""

import json
from pathlib import Path

from pydantic import ValidationError

from .config import log
from .models import Timeline


class TimelineStore:
    def __init__(self, timeline_file, timelines_dir=None):
        self.timeline_file = Path(timeline_file)
        self.timelines_dir = Path(timelines_dir) if timelines_dir else None

    def set_local_timeline(self, raw):
        """Overwrite the local timeline with `raw` exactly as received."""
        self.timeline_file.parent.mkdir(parents=True, exist_ok=True)
        self.timeline_file.write_text(raw, encoding="utf-8")
        log.info("Local timeline replaced (%d bytes)", len(raw))

    def get_local_timelines(self):
        """Main timeline plus any extra *.json timelines. Unreadable files are skipped."""
        files = []
        if self.timeline_file.exists():
            files.append(self.timeline_file)
        if self.timelines_dir and self.timelines_dir.is_dir():
            files.extend(sorted(self.timelines_dir.glob("*.json")))

        timelines = []
        for path in files:
            try:
                timelines.append(Timeline.model_validate_json(path.read_text(encoding="utf-8")))
            except (OSError, UnicodeDecodeError, ValidationError) as e:
                log.warning("Skipping unreadable timeline %s: %s", path, e)
        return timelines


class HealthStore:
    def __init__(self, health_file):
        self.health_file = Path(health_file)

    def save(self, health):
        """Persist the snapshot as indented JSON, replacing whatever was there."""
        self.health_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.health_file, "w", encoding="utf-8") as f:
            json.dump(health.to_wire(), f, indent=2)
        log.debug("Health snapshot saved to %s", self.health_file)
