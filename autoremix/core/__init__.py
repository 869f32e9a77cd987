"""Core pipeline state: value types, run log, remix plan, orchestrator.

WHY: The core package contains the part of AutoRemix with real control
flow: the stage state machine and the editable plan. Adapters, HTTP, and
CLI depend on it.

HOW: models.py defines the value types, run_log.py the event record,
plan.py the stage-gated edit decision list, run.py the owned per-run
state, and orchestrator.py the driver that ties them together.

RULES:
- No network or filesystem I/O in this package
- Adapters are injected into the orchestrator, never constructed here
- Import submodules directly; this package re-exports nothing so that
  adapters.base can depend on core.models without a cycle
"""
