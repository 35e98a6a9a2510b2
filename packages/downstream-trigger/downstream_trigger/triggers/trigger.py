"""DownstreamTrigger — the trigger configured on one upstream project.

Holds the immutable :class:`TriggerPolicy` and contributes its edges each
time the host rebuilds the dependency graph.  Renaming a downstream job
swaps in a renamed copy of the policy; the host persists it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from downstream_trigger.config import TriggerDefaultsConfig
from downstream_trigger.host import Project
from downstream_trigger.logging import get_logger
from downstream_trigger.triggers.engine import TriggerDecisionEngine
from downstream_trigger.triggers.matrix import MatrixAggregator, MatrixFanoutPolicy
from downstream_trigger.triggers.migration import load_policy
from downstream_trigger.triggers.models import TriggerPolicy

if TYPE_CHECKING:
    from downstream_trigger.graph.dependency import DependencyGraph

log = get_logger(__name__)


class DownstreamTrigger:
    def __init__(self, policy: TriggerPolicy, engine: TriggerDecisionEngine) -> None:
        self._policy = policy
        self._engine = engine
        self._fanout = MatrixFanoutPolicy(engine)

    @classmethod
    def from_config(
        cls,
        raw: Mapping[str, Any],
        engine: TriggerDecisionEngine,
        defaults: TriggerDefaultsConfig | None = None,
    ) -> "DownstreamTrigger":
        """Migrate and validate a stored configuration.

        Raises:
            InvalidConfigurationError: the configuration is invalid.
        """
        return cls(load_policy(raw, defaults=defaults), engine)

    @property
    def policy(self) -> TriggerPolicy:
        return self._policy

    def build_dependency_graph(self, owner: Project, graph: DependencyGraph) -> int:
        """Register this trigger's edges for *owner*.  Returns the number added."""
        added = 0
        for dependency in self._fanout.expand(owner, self._policy):
            if graph.add_dependency(dependency):
                added += 1
        return added

    def create_aggregator(self, graph: DependencyGraph) -> MatrixAggregator:
        """Return the end-of-run hook for one matrix build of the owner."""
        return MatrixAggregator(self._policy, self._engine, graph)

    def on_job_renamed(self, old_name: str, new_name: str) -> bool:
        """Follow a downstream job rename.

        Returns True if the policy changed and needs to be saved by the host.
        """
        policy, changed = self._policy.with_renamed_project(old_name, new_name)
        if changed:
            self._policy = policy
            log.info("downstream_project_renamed", old_name=old_name, new_name=new_name)
        return changed

    def __repr__(self) -> str:
        return f"DownstreamTrigger(child_projects={self._policy.child_projects_value!r})"
