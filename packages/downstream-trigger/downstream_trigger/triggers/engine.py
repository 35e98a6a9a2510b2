"""Trigger decision engine — should this completed build trigger that downstream job?

The host calls :meth:`DownstreamDependency.should_trigger_build` once per
outgoing edge whenever an upstream build completes, from its own worker
threads.  The engine keeps no per-call state, so concurrent evaluations of
different (or the same) edges are independent.

Decision order (first match wins)::

    threshold strategy not satisfied       → SKIP
    downstream just recovered from failure → TRIGGER
    only_if_local_changes                  → TRIGGER iff build changeset non-empty
    only_if_downstream_changes
        exclusive-workspace SCM            → DEFERRED_ASYNC (PollTask queued)
        otherwise                          → TRIGGER iff synchronous poll finds changes
    no change gate                         → TRIGGER

The recovery shortcut bypasses both change gates so that a fix is never
silently skipped after a failed downstream run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from downstream_trigger.config import SchedulerConfig
from downstream_trigger.host import Build, Project
from downstream_trigger.logging import bind_trigger_context, clear_trigger_context, get_logger
from downstream_trigger.triggers.changes import ChangeDetector
from downstream_trigger.triggers.models import Decision, PollTask, TriggerPolicy, UpstreamCause
from downstream_trigger.triggers.scheduler import SerializedPollScheduler

if TYPE_CHECKING:
    from downstream_trigger.graph.dependency import DependencyGraph

log = get_logger(__name__)


def upstream_cause(build: Build) -> UpstreamCause:
    return UpstreamCause(
        upstream_project=build.project.identity,
        upstream_build=build.number,
        upstream_url=build.url,
    )


def just_recovered(project: Project) -> bool:
    """True if *project*'s last build directly follows its last unsuccessful build."""
    last = project.last_build
    last_unsuccessful = project.last_unsuccessful_build
    if last is None or last_unsuccessful is None:
        return False
    return last.number - 1 == last_unsuccessful.number


class TriggerDecisionEngine:
    """Evaluates dependency edges and issues schedule requests."""

    def __init__(
        self,
        scheduler: SerializedPollScheduler,
        detector: ChangeDetector | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._detector = detector or ChangeDetector()
        self._config = config or SchedulerConfig()

    @property
    def scheduler(self) -> SerializedPollScheduler:
        return self._scheduler

    # ---------------------------------------------------------------------------
    # Per-edge decision
    # ---------------------------------------------------------------------------

    def decide(
        self,
        dependency: DownstreamDependency,
        build: Build,
        actions: Sequence[Any] = (),
        listener: Any | None = None,
    ) -> Decision:
        policy = dependency.policy
        downstream = dependency.downstream
        bind_trigger_context(
            upstream=dependency.upstream.identity,
            downstream=downstream.identity,
            build_number=build.number,
        )
        try:
            return self._decide(policy, downstream, build, actions, listener)
        finally:
            clear_trigger_context()

    def _decide(
        self,
        policy: TriggerPolicy,
        downstream: Project,
        build: Build,
        actions: Sequence[Any],
        listener: Any | None,
    ) -> Decision:
        if not policy.strategy.evaluate(policy.threshold, build.result):
            log.info(
                "trigger_condition_not_met",
                strategy=policy.strategy.display_name,
                threshold=policy.threshold.value,
                result=build.result.value,
            )
            return Decision.SKIP

        if just_recovered(downstream):
            log.info("downstream_recovered", detail="triggering regardless of change gates")
            return Decision.TRIGGER

        if policy.only_if_local_changes:
            if self._detector.has_local_changes(build):
                return Decision.TRIGGER
            log.info("no_local_changes")
            return Decision.SKIP

        if policy.only_if_downstream_changes:
            if downstream.requires_exclusive_workspace():
                # Polling would lock the downstream workspace from this
                # (upstream) build thread for an unbounded time.
                task = PollTask(project=downstream, cause=upstream_cause(build), actions=tuple(actions))
                self._scheduler.submit(downstream, task)
                log.info("started_async_poll", task_id=task.task_id)
                return Decision.DEFERRED_ASYNC

            detector = self._detector if listener is None else ChangeDetector(listener)
            if detector.poll_or_false(downstream):
                return Decision.TRIGGER
            log.info("no_scm_changes")
            return Decision.SKIP

        return Decision.TRIGGER

    # ---------------------------------------------------------------------------
    # Fan-out over a project's outgoing edges
    # ---------------------------------------------------------------------------

    def trigger_downstream(
        self,
        build: Build,
        graph: DependencyGraph,
        actions: Sequence[Any] = (),
    ) -> bool:
        """Evaluate every outgoing edge of *build*'s project and schedule the winners.

        A failure on one edge is logged and never stops the remaining edges.
        Always returns True so the host does not fail the upstream build.
        """
        cause = upstream_cause(build)
        for dependency in graph.get_downstream_dependencies(build.project):
            downstream = dependency.downstream
            if downstream.is_disabled:
                log.info("downstream_disabled", downstream=downstream.identity)
                continue
            try:
                if self.decide(dependency, build, actions) is not Decision.TRIGGER:
                    continue
                quiet_period = downstream.quiet_period
                if quiet_period is None:
                    quiet_period = self._config.default_quiet_period
                if downstream.schedule_build(quiet_period, cause, tuple(actions)):
                    log.info("build_scheduled", downstream=downstream.identity, quiet_period=quiet_period)
                else:
                    log.info("build_already_queued", downstream=downstream.identity)
            except Exception as exc:
                log.error(
                    "downstream_trigger_failed",
                    upstream=build.project.identity,
                    downstream=downstream.identity,
                    error=f"{type(exc).__name__}: {exc}",
                )
        return True


class DownstreamDependency:
    """One upstream → downstream edge governed by a :class:`TriggerPolicy`.

    Equality and hashing use only the (upstream, downstream) identities: the
    host graph permits a single policy per pair, so two edges for the same
    pair from different configuration sources are the same edge.
    """

    def __init__(
        self,
        upstream: Project,
        downstream: Project,
        policy: TriggerPolicy,
        engine: TriggerDecisionEngine,
    ) -> None:
        self._upstream = upstream
        self._downstream = downstream
        self._policy = policy
        self._engine = engine

    @property
    def upstream(self) -> Project:
        return self._upstream

    @property
    def downstream(self) -> Project:
        return self._downstream

    @property
    def policy(self) -> TriggerPolicy:
        return self._policy

    @property
    def key(self) -> tuple[str, str]:
        return (self._upstream.identity, self._downstream.identity)

    def should_trigger(self, build: Build, actions: Sequence[Any] = (), listener: Any | None = None) -> Decision:
        return self._engine.decide(self, build, actions, listener)

    def should_trigger_build(
        self, build: Build, listener: Any | None = None, actions: Sequence[Any] = ()
    ) -> bool:
        """Host entry point.

        Only an immediate TRIGGER returns True.  DEFERRED_ASYNC returns False:
        the asynchronous poll has already been queued and will schedule the
        build itself if it finds changes.
        """
        return self.should_trigger(build, actions, listener) is Decision.TRIGGER

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DownstreamDependency):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"DownstreamDependency({self._upstream.identity!r} -> {self._downstream.identity!r})"
