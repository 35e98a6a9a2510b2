"""Matrix fan-out — which graph edges a configured trigger contributes.

For a plain upstream job every downstream project gets one edge from the
owner.  A matrix (multi-configuration) owner always contributes those
parent edges too; ONLY_CONFIGURATIONS and BOTH add one edge per active
configuration per downstream project.

ONLY_PARENT's "trigger once when the whole matrix run ends" is not an edge:
it is :class:`MatrixAggregator`, fired once after the last configuration
completes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from downstream_trigger.host import Build, MatrixProject, Project
from downstream_trigger.logging import get_logger
from downstream_trigger.triggers.engine import DownstreamDependency, TriggerDecisionEngine
from downstream_trigger.triggers.models import TriggerPolicy

if TYPE_CHECKING:
    from downstream_trigger.graph.dependency import DependencyGraph

log = get_logger(__name__)


def resolve_child_projects(owner: Project, policy: TriggerPolicy) -> list[Project]:
    """Resolve downstream names against the owner's group, skipping unknown names."""
    resolved: list[Project] = []
    group = owner.parent
    for name in policy.child_projects:
        project = group.get_project(name)
        if project is None:
            log.warning("downstream_project_not_found", owner=owner.identity, name=name)
            continue
        resolved.append(project)
    return resolved


class MatrixFanoutPolicy:
    """Pure expansion of (owner, policy) into dependency edges."""

    def __init__(self, engine: TriggerDecisionEngine) -> None:
        self._engine = engine

    def expand(self, owner: Project, policy: TriggerPolicy) -> list[DownstreamDependency]:
        downstreams = resolve_child_projects(owner, policy)
        edges = [DownstreamDependency(owner, d, policy, self._engine) for d in downstreams]

        if isinstance(owner, MatrixProject) and policy.matrix_mode.includes_configurations:
            for configuration in owner.active_configurations:
                edges.extend(
                    DownstreamDependency(configuration, d, policy, self._engine) for d in downstreams
                )
        return edges


class MatrixAggregator:
    """End-of-run hook for one matrix build.

    With ONLY_PARENT or BOTH the downstream projects are triggered once,
    from the parent build, after every configuration has finished.
    """

    def __init__(
        self,
        policy: TriggerPolicy,
        engine: TriggerDecisionEngine,
        graph: DependencyGraph,
    ) -> None:
        self._policy = policy
        self._engine = engine
        self._graph = graph
        self._fired = False

    def end_build(self, build: Build, actions: Sequence[Any] = ()) -> bool:
        if not self._policy.matrix_mode.triggers_on_parent_end:
            return True
        if self._fired:
            log.debug("matrix_end_already_handled", upstream=build.project.identity)
            return True
        self._fired = True
        log.info("matrix_build_ended", upstream=build.project.identity, build_number=build.number)
        return self._engine.trigger_downstream(build, self._graph, actions)

    # Host-facing name.
    on_matrix_build_end = end_build
