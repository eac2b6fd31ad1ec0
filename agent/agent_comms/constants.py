"""
Constants, defaults, header names and local file names.
"""

AGENT_VERSION = "1.0.0"

# ─── Cycle timing (milliseconds, jitter is added on top) ─────────
UPDATES_CYCLE_SLEEP_MS = 60_000     # Poll for server updates every minute
RESULTS_CYCLE_SLEEP_MS = 300_000    # Drain result logs every 5 minutes
SURVEY_JITTER_MS = 100              # Tiny pause before a one-shot survey post
JITTER_MIN_MS = -999
JITTER_MAX_MS = 1999

# ─── Network ─────────────────────────────────────────────────────
REQUEST_TIMEOUT_SEC = 30            # Bounds how long one cycle can stall on the wire
SHUTDOWN_JOIN_SEC = 60              # How long stop() waits for an in-flight rotation
USER_AGENT = "Ghosts Client"
JSON_CONTENT_TYPE = "application/json"

# Identity headers sent on every request (see http_client.create_session)
HEADER_ID = "ghosts-id"
HEADER_NAME = "ghosts-name"
HEADER_FQDN = "ghosts-fqdn"
HEADER_HOST = "ghosts-host"
HEADER_IP = "ghosts-ip"
HEADER_USER = "ghosts-user"
HEADER_VERSION = "ghosts-version"

# The timeline-report endpoint lives next to the id endpoint
ID_URL_TOKEN = "clientid"
TIMELINE_URL_TOKEN = "clienttimeline"

# ─── Crypto ──────────────────────────────────────────────────────
KDF_SALT = b"o6806642kbM7c5"
KDF_ITERATIONS = 1000
AES_KEY_BYTES = 32

# ─── Local files (relative to the agent base directory) ──────────
CONFIG_DIR_NAME = "config"
INSTANCE_DIR_NAME = "instance"
LOGS_DIR_NAME = "logs"

CONFIG_FILE_NAME = "application.json"
TIMELINE_FILE_NAME = "timeline.json"
TIMELINES_DIR_NAME = "timelines"     # Extra timelines, one *.json per timeline
HEALTH_FILE_NAME = "health.json"
ID_FILE_NAME = "id.json"
SURVEY_FILE_NAME = "survey-results.json"

RESULTS_LOG_NAME = "clientupdates.log"   # Primary result file (producers append here)
APP_LOG_NAME = "app.log"                 # Our own log; never relayed
LOG_GLOB = "*.log"
TEMP_SUFFIX = ".proc"

LOG_MAX_BYTES = 1_000_000
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# ─── Browser automation collaborator (consumed elsewhere) ────────
FIREFOX_MAJOR_VERSION_MINIMUM = 48
