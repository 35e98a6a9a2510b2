"""ChangeDetector — "are there SCM changes?" for a build or a downstream project."""

from __future__ import annotations

from typing import Any

from downstream_trigger.exceptions import PollFailedError
from downstream_trigger.host import Build, Project
from downstream_trigger.logging import get_logger

log = get_logger(__name__)


class ChangeDetector:
    """Answers the two change questions the decision engine asks.

    ``poll`` never folds an SCM failure into ``False``; it raises
    :class:`PollFailedError`.  ``poll_or_false`` applies the policy of
    treating a failed poll as "no changes" for this cycle.
    """

    def __init__(self, listener: Any | None = None) -> None:
        # Passed through to Project.poll(); hosts may supply their own task listener.
        self._listener = listener if listener is not None else log

    def has_local_changes(self, build: Build) -> bool:
        return not build.changeset.is_empty()

    def poll(self, project: Project) -> bool:
        """Live-check *project*'s SCM.

        Callers must not call this synchronously when
        ``project.requires_exclusive_workspace()`` is True.
        """
        try:
            result = project.poll(self._listener)
        except PollFailedError:
            raise
        except Exception as exc:
            raise PollFailedError(project.identity, f"{type(exc).__name__}: {exc}") from exc
        return bool(result.has_changes)

    def poll_or_false(self, project: Project) -> bool:
        try:
            return self.poll(project)
        except PollFailedError as exc:
            log.error(
                "scm_poll_failed",
                downstream=exc.project,
                reason=exc.reason,
                treated_as="no_changes",
            )
            return False
