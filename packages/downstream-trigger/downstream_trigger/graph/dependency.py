"""Dependency graph — NetworkX DiGraph of downstream dependencies.

The host recomputes the graph from scratch whenever job configuration
changes; edges are never persisted.  Nodes are keyed by project identity,
and every edge carries exactly one :class:`DownstreamDependency` — the first
registered for a given (upstream, downstream) pair wins.

Usage::

    graph = DependencyGraphBuilder().build([(owner, trigger), ...])
    for dependency in graph.get_downstream_dependencies(owner):
        dependency.should_trigger_build(build)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import networkx as nx

from downstream_trigger.exceptions import UnknownProjectError
from downstream_trigger.host import Project
from downstream_trigger.logging import get_logger
from downstream_trigger.triggers.engine import DownstreamDependency

if TYPE_CHECKING:
    from downstream_trigger.triggers.trigger import DownstreamTrigger

log = get_logger(__name__)


class DependencyGraph:
    """Directed graph of project → project build dependencies."""

    def __init__(self) -> None:
        self._graph: nx.DiGraph = nx.DiGraph()

    def add_project(self, project: Project) -> None:
        self._graph.add_node(project.identity, project=project)

    def add_dependency(self, dependency: DownstreamDependency) -> bool:
        """Register *dependency*.  Returns False if its pair is already governed."""
        upstream, downstream = dependency.key
        if self._graph.has_edge(upstream, downstream):
            log.debug("duplicate_dependency_ignored", upstream=upstream, downstream=downstream)
            return False
        self.add_project(dependency.upstream)
        self.add_project(dependency.downstream)
        self._graph.add_edge(upstream, downstream, dependency=dependency)
        return True

    def get_dependency(self, upstream: str, downstream: str) -> DownstreamDependency | None:
        data = self._graph.get_edge_data(upstream, downstream)
        return None if data is None else data["dependency"]

    def get_downstream_dependencies(self, project: Project | str) -> list[DownstreamDependency]:
        """Outgoing edges of *project* in registration order (empty if unknown)."""
        identity = project if isinstance(project, str) else project.identity
        if identity not in self._graph:
            return []
        return [data["dependency"] for _, _, data in self._graph.out_edges(identity, data=True)]

    def get_downstream_projects(self, project: Project | str) -> list[Project]:
        return [dep.downstream for dep in self.get_downstream_dependencies(project)]

    def get_upstream_projects(self, project: Project | str) -> list[Project]:
        identity = project if isinstance(project, str) else project.identity
        if identity not in self._graph:
            raise UnknownProjectError(identity)
        return [self._graph.nodes[up]["project"] for up in self._graph.predecessors(identity)]

    def transitive_downstream(self, project: Project | str) -> set[str]:
        """Identities of every project reachable downstream of *project*."""
        identity = project if isinstance(project, str) else project.identity
        if identity not in self._graph:
            raise UnknownProjectError(identity)
        return nx.descendants(self._graph, identity)

    def has_cycle(self) -> bool:
        return not nx.is_directed_acyclic_graph(self._graph)

    def find_cycle(self) -> list[str]:
        """Project identities along one cycle, or an empty list."""
        try:
            cycle = nx.find_cycle(self._graph)
        except nx.NetworkXNoCycle:
            return []
        return [edge[0] for edge in cycle] + [cycle[-1][1]]

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def edges(self) -> list[DownstreamDependency]:
        return [data["dependency"] for _, _, data in self._graph.edges(data=True)]

    def __contains__(self, identity: object) -> bool:
        return identity in self._graph


class DependencyGraphBuilder:
    """Assembles a fresh :class:`DependencyGraph` from configured triggers."""

    def build(
        self,
        owners: Iterable[tuple[Project, DownstreamTrigger]],
        graph: DependencyGraph | None = None,
    ) -> DependencyGraph:
        graph = graph if graph is not None else DependencyGraph()
        for owner, trigger in owners:
            try:
                trigger.build_dependency_graph(owner, graph)
            except Exception as exc:
                # One broken configuration must not abort the whole rebuild.
                log.error(
                    "dependency_graph_owner_failed",
                    owner=owner.identity,
                    error=f"{type(exc).__name__}: {exc}",
                )
        if graph.has_cycle():
            log.warning("dependency_cycle_detected", cycle=graph.find_cycle())
        log.debug("dependency_graph_built", edges=graph.edge_count)
        return graph
