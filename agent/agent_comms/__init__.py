"""
agent_comms — NPC agent communications core v1.0
================================================
Architecture: two daemon-thread loops (update poller, result relay) sharing
one stop event, plus a one-shot survey reporter.

  constants.py    → Version, cycle defaults, header and file names
  config.py       → Paths, logging, config load/save, AgentConfig snapshot
  exceptions.py   → CommsError taxonomy
  machine.py      → ResultMachine identity (headers + encryption secret)
  jitter.py       → Jittered intervals, cancellable sleep
  http_client.py  → requests.Session builder (retry, identity, cert policy)
  crypto.py       → AES-256-CBC keyed by the agent name
  envelope.py     → JSON / encrypted {"Payload": ...} envelope codec
  models.py       → Timeline, update envelope tagged union, payload models
  timelines.py    → Local timeline and health stores
  orchestrator.py → Partial-timeline hand-off to the automation layer
  api.py          → Server calls (poll, POST JSON, timeline report)
  updates.py      → UpdatePoller
  relay.py        → ResultRelay + crash-safe log rotation
  survey.py       → SurveyReporter
  app.py          → AgentApp (thread ownership, shutdown)
  runner.py       → main() + auto-restart wrapper
"""
