"""Host item-lifecycle notifications: job renamed, job deleted."""

from __future__ import annotations

from typing import Callable, Mapping

from downstream_trigger.host import Project
from downstream_trigger.logging import get_logger
from downstream_trigger.triggers.scheduler import SerializedPollScheduler
from downstream_trigger.triggers.trigger import DownstreamTrigger

log = get_logger(__name__)

# Callback used to persist an upstream project whose trigger changed.
SaveCallback = Callable[[str, DownstreamTrigger], None]


class ItemListener:
    """Keeps trigger configuration and the poll scheduler in step with the host."""

    def __init__(
        self,
        triggers: Mapping[str, DownstreamTrigger],
        scheduler: SerializedPollScheduler,
        save: SaveCallback | None = None,
    ) -> None:
        # upstream project identity → its configured trigger
        self._triggers = triggers
        self._scheduler = scheduler
        self._save = save

    def on_renamed(self, old_name: str, new_name: str) -> list[str]:
        """Rewrite every trigger pointing at *old_name*.

        Returns the identities of upstream projects whose trigger changed.
        A failing save is logged and does not stop the remaining projects.
        """
        changed: list[str] = []
        for owner, trigger in self._triggers.items():
            if not trigger.on_job_renamed(old_name, new_name):
                continue
            changed.append(owner)
            if self._save is None:
                continue
            try:
                self._save(owner, trigger)
            except Exception as exc:
                log.warning(
                    "trigger_save_failed",
                    owner=owner,
                    old_name=old_name,
                    new_name=new_name,
                    error=f"{type(exc).__name__}: {exc}",
                )
        return changed

    def on_deleted(self, project: Project | str) -> bool:
        """Evict the deleted project's poll queue."""
        identity = project if isinstance(project, str) else project.identity
        return self._scheduler.deregister(identity)
