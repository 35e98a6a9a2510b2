"""Host collaborator interfaces.

The CI host owns job storage, the build queue, SCM clients and the UI.  This
package only sees the narrow facets declared here.  Hosts adapt their own
objects by subclassing these ABCs (tests use small in-memory fakes).

Identity is always the explicit ``Project.identity`` string, never object
identity, so that registry keys and graph nodes survive object reloads.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from downstream_trigger.triggers.models import Cause, Result


@dataclass(frozen=True)
class PollingResult:
    """Outcome of a live SCM poll."""

    has_changes: bool

    @classmethod
    def changes(cls) -> "PollingResult":
        return cls(has_changes=True)

    @classmethod
    def no_changes(cls) -> "PollingResult":
        return cls(has_changes=False)


class ChangeSet(ABC):
    """The SCM changes that went into one build."""

    @abstractmethod
    def is_empty(self) -> bool: ...


class ProjectGroup(ABC):
    """Naming context used to resolve downstream project names lazily."""

    @abstractmethod
    def get_project(self, name: str) -> Project | None:
        """Return the project called *name*, or None if it does not exist."""
        ...


class Project(ABC):
    """A buildable job as seen by the trigger core."""

    @property
    @abstractmethod
    def identity(self) -> str:
        """Stable identifier (full job name)."""
        ...

    @property
    @abstractmethod
    def parent(self) -> ProjectGroup: ...

    @property
    def is_disabled(self) -> bool:
        return False

    @property
    def quiet_period(self) -> int | None:
        """Project-specific quiet period in seconds, None for the host default."""
        return None

    @property
    @abstractmethod
    def last_build(self) -> Build | None: ...

    @property
    @abstractmethod
    def last_unsuccessful_build(self) -> Build | None: ...

    @abstractmethod
    def requires_exclusive_workspace(self) -> bool:
        """True when polling this project's SCM needs sole workspace access."""
        ...

    @abstractmethod
    def poll(self, listener: Any) -> PollingResult:
        """Run a live SCM check.  May raise on I/O or SCM errors."""
        ...

    @abstractmethod
    def schedule_build(
        self, quiet_period: int, cause: Cause, actions: Sequence[Any] = ()
    ) -> bool:
        """Queue a build.  False means an equivalent build is already queued."""
        ...


class MatrixProject(Project):
    """A multi-configuration job: one parent plus N child configurations."""

    @property
    @abstractmethod
    def active_configurations(self) -> Sequence[Project]: ...


class Build(ABC):
    """A completed (or completing) run of a project."""

    @property
    @abstractmethod
    def project(self) -> Project: ...

    @property
    @abstractmethod
    def number(self) -> int: ...

    @property
    @abstractmethod
    def result(self) -> Result: ...

    @property
    @abstractmethod
    def changeset(self) -> ChangeSet: ...

    @property
    def url(self) -> str | None:
        return None
