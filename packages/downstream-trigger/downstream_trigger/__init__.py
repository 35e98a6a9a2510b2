"""Downstream Trigger — cascading build triggering for a CI orchestrator.

When an upstream job's build finishes, decide for every statically declared
downstream job whether it should be scheduled, and with which provenance.

Layers (bottom to top):
    1. Models    — results, strategies, matrix modes, immutable trigger policies
    2. Detection — threshold strategies and SCM change detection
    3. Scheduling — per-project serialized poll queues
    4. Decision  — the per-edge trigger decision engine
    5. Graph     — matrix fan-out and NetworkX dependency graph assembly

The host (job storage, build queue, SCM clients, UI) is reached only through
the interfaces in ``downstream_trigger.host``.
"""

__version__ = "0.1.0"
__author__ = "Downstream Trigger Contributors"
__license__ = "Apache-2.0"

from downstream_trigger.triggers.models import MatrixMode, Result, Strategy, TriggerPolicy

__all__ = [
    "__version__",
    "MatrixMode",
    "Result",
    "Strategy",
    "TriggerPolicy",
]
