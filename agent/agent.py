"""
NPC Agent — communications core
===============================
Polls the command server for timeline/health updates and relays local
result logs back to it.

Usage:
    python agent.py                     # run both loops until SIGINT/SIGTERM
    python agent.py --home /opt/agent   # use another base directory
    python agent.py --post-survey       # upload survey-results.json once and exit
"""

import argparse
import sys

from agent_comms.runner import main, run_with_auto_restart


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="NPC agent communications core")
    parser.add_argument("--home", default=None, help="Agent base directory (config/, instance/, logs/)")
    parser.add_argument("--post-survey", action="store_true", help="Post the survey results once and exit")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    if args.post_survey:
        sys.exit(0 if main(args.home, post_survey=True) else 1)
    sys.exit(run_with_auto_restart(args.home))
