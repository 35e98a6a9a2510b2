"""Trigger subsystem — decide and schedule downstream builds.

Package structure
-----------------
triggers/
  models.py     — Result, Strategy, MatrixMode, TriggerPolicy, UpstreamCause, PollTask
  strategy.py   — threshold comparison table
  migration.py  — versioned configuration migration + strict loading
  changes.py    — ChangeDetector (local changeset, live downstream poll)
  scheduler.py  — SerializedPollScheduler (one FIFO worker per downstream project)
  engine.py     — TriggerDecisionEngine + DownstreamDependency (graph edge)
  matrix.py     — MatrixFanoutPolicy + MatrixAggregator (end-of-run hook)
  trigger.py    — DownstreamTrigger (configured on an upstream project)
  listeners.py  — rename / delete notifications
"""

from downstream_trigger.triggers.models import (
    Cause,
    Decision,
    MatrixMode,
    PollTask,
    Result,
    Strategy,
    TriggerPolicy,
    UpstreamCause,
)
from downstream_trigger.triggers.changes import ChangeDetector
from downstream_trigger.triggers.scheduler import SerializedPollScheduler
from downstream_trigger.triggers.engine import DownstreamDependency, TriggerDecisionEngine
from downstream_trigger.triggers.matrix import MatrixAggregator, MatrixFanoutPolicy
from downstream_trigger.triggers.migration import MigrationPipeline, load_policy
from downstream_trigger.triggers.trigger import DownstreamTrigger
from downstream_trigger.triggers.listeners import ItemListener

__all__ = [
    "Cause",
    "ChangeDetector",
    "Decision",
    "DownstreamDependency",
    "DownstreamTrigger",
    "ItemListener",
    "MatrixAggregator",
    "MatrixFanoutPolicy",
    "MatrixMode",
    "MigrationPipeline",
    "PollTask",
    "Result",
    "SerializedPollScheduler",
    "Strategy",
    "TriggerDecisionEngine",
    "TriggerPolicy",
    "UpstreamCause",
    "load_policy",
]
