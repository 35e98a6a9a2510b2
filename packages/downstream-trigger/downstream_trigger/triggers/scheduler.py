"""Per-project serialized poll scheduler.

When a downstream project's SCM needs exclusive access to its workspace for
polling, the upstream build thread must not poll it synchronously.  Instead
the decision engine hands a :class:`PollTask` to this scheduler.

Guarantees:

1. **One queue per downstream project** — created lazily on first deferral.
   Registration is first-writer-wins (``dict.setdefault``); a thread that
   loses the race discards its own executor and uses the winner's.

2. **Strict FIFO, single concurrency** — each queue has exactly one worker
   thread, so tasks for the same project never overlap and run in
   submission order, across every edge and upstream build targeting it.

3. **Independence** — no ordering exists between different projects' queues;
   a stalled poll only blocks its own project.

There is no coalescing, cancellation or timeout: every submitted task runs.
The registry entry is removed only when the host reports the project deleted.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from downstream_trigger.config import SchedulerConfig
from downstream_trigger.exceptions import PollFailedError, SchedulingError
from downstream_trigger.host import Project
from downstream_trigger.logging import bind_trigger_context, clear_trigger_context, get_logger
from downstream_trigger.triggers.changes import ChangeDetector
from downstream_trigger.triggers.models import PollTask

log = get_logger(__name__)


class SerializedPollScheduler:
    """Owned registry of single-worker queues keyed by project identity.

    Usage::

        scheduler = SerializedPollScheduler(settings.scheduler)
        scheduler.submit(downstream, PollTask(downstream, cause, actions))
        ...
        scheduler.deregister("deleted-job")    # on project deletion
        scheduler.shutdown()                    # on host shutdown
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        detector: ChangeDetector | None = None,
    ) -> None:
        self._config = config or SchedulerConfig()
        self._detector = detector or ChangeDetector()
        self._executors: dict[str, ThreadPoolExecutor] = {}
        self._closed = False

    # ---------------------------------------------------------------------------
    # Registry
    # ---------------------------------------------------------------------------

    def _executor_for(self, identity: str) -> ThreadPoolExecutor:
        executor = self._executors.get(identity)
        if executor is not None:
            return executor

        candidate = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"{self._config.thread_name_prefix}-{identity}",
        )
        executor = self._executors.setdefault(identity, candidate)
        if executor is not candidate:
            # Lost the registration race; no thread was started yet.
            candidate.shutdown(wait=False)
        else:
            log.debug("poll_queue_created", downstream=identity)
        return executor

    def is_registered(self, identity: str) -> bool:
        return identity in self._executors

    @property
    def queue_count(self) -> int:
        return len(self._executors)

    @property
    def registered_projects(self) -> list[str]:
        return sorted(self._executors)

    def deregister(self, identity: str) -> bool:
        """Drop *identity*'s queue.  Already queued tasks still drain best-effort.

        Returns True if a queue was registered.
        """
        executor = self._executors.pop(identity, None)
        if executor is None:
            return False
        executor.shutdown(wait=False)
        log.info("poll_queue_removed", downstream=identity)
        return True

    # ---------------------------------------------------------------------------
    # Submission
    # ---------------------------------------------------------------------------

    def submit(self, project: Project, task: PollTask) -> Future[bool]:
        """Enqueue *task* on *project*'s queue and return its future.

        The future resolves to True when a schedule request was issued.
        """
        if self._closed:
            raise SchedulingError(project.identity, "scheduler is shut down")

        identity = project.identity
        for _attempt in range(2):
            executor = self._executor_for(identity)
            try:
                future = executor.submit(self.run_task, task)
            except RuntimeError:
                # The queue was deregistered between lookup and submit.
                if self._executors.get(identity) is executor:
                    self._executors.pop(identity, None)
                continue
            log.info(
                "poll_task_queued",
                downstream=identity,
                task_id=task.task_id,
                upstream=task.cause.upstream_project,
            )
            return future

        raise SchedulingError(identity, "poll queue was shut down during submission")

    # ---------------------------------------------------------------------------
    # Task body (runs on the project's single worker thread)
    # ---------------------------------------------------------------------------

    def run_task(self, task: PollTask) -> bool:
        project = task.project
        identity = task.project_identity
        bind_trigger_context(
            upstream=task.cause.upstream_project,
            downstream=identity,
            build_number=task.cause.upstream_build,
        )
        try:
            return self._poll_and_schedule(project, identity, task)
        except PollFailedError as exc:
            log.error("scm_poll_failed", downstream=identity, reason=exc.reason, treated_as="no_changes")
            return False
        except Exception as exc:
            # Typically the project was deleted while the task sat in the queue.
            log.warning(
                "poll_task_failed",
                downstream=identity,
                task_id=task.task_id,
                error=f"{type(exc).__name__}: {exc}",
            )
            return False
        finally:
            clear_trigger_context()

    def _poll_and_schedule(self, project: Project, identity: str, task: PollTask) -> bool:
        log.info("polling_for_scm_changes", downstream=identity, task_id=task.task_id)
        if not self._detector.poll(project):
            log.info("no_scm_changes", downstream=identity)
            return False

        log.info("scm_changes_found", downstream=identity)
        quiet_period = self._quiet_period(project)
        accepted = project.schedule_build(quiet_period, task.cause, task.actions)
        if accepted:
            log.info("build_scheduled", downstream=identity, quiet_period=quiet_period)
        else:
            log.info(
                "build_already_queued",
                downstream=identity,
                detail="another build of this project is already in the queue",
            )
        return True

    def _quiet_period(self, project: Project) -> int:
        quiet_period = project.quiet_period
        if quiet_period is None:
            return self._config.default_quiet_period
        return quiet_period

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    def shutdown(self, wait: bool | None = None) -> None:
        """Stop accepting tasks and shut every queue down."""
        self._closed = True
        wait = self._config.shutdown_wait if wait is None else wait
        executors = list(self._executors.items())
        self._executors.clear()
        for _identity, executor in executors:
            executor.shutdown(wait=wait)
        log.debug("poll_scheduler_stopped", queues=len(executors))

    def __enter__(self) -> "SerializedPollScheduler":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()
